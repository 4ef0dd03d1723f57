"""Maps boto3/botocore exceptions to plain-language error messages."""

import logging

logger = logging.getLogger("bucketview.errors")

# Maps S3 error codes to (user-facing message, suggestion)
ERROR_MESSAGES: dict[str, tuple[str, str]] = {
    "InvalidAccessKeyId": (
        "Invalid access key.",
        "Check the Access Key ID of this profile in Settings.",
    ),
    "SignatureDoesNotMatch": (
        "Invalid secret key.",
        "Check the Secret Access Key of this profile in Settings.",
    ),
    "ExpiredToken": (
        "Your credentials have expired.",
        "Update the profile credentials in Settings.",
    ),
    "AccessDenied": (
        "Access denied.",
        "These credentials don't have permission for this action.",
    ),
    "AllAccessDisabled": (
        "All access to this object has been disabled.",
        "",
    ),
    "NoSuchBucket": (
        "Bucket not found.",
        "The bucket may have been deleted or the name is misspelled.",
    ),
    "NoSuchKey": (
        "File not found.",
        "The object may have been deleted or moved by someone else.",
    ),
    "NoSuchUpload": (
        "The multipart upload no longer exists.",
        "It may have been completed or aborted already.",
    ),
    "InvalidBucketName": (
        "Invalid bucket name.",
        "Bucket names must be 3-63 characters of lowercase letters, numbers, dots and hyphens.",
    ),
    "KeyTooLongError": (
        "File name is too long.",
        "Object keys can be at most 1024 bytes.",
    ),
    "EntityTooSmall": (
        "An upload part is smaller than the service allows.",
        "Every part except the last must be at least 5 MB.",
    ),
    "EntityTooLarge": (
        "File is too large for this upload.",
        "",
    ),
    "InvalidRequest": (
        "The storage service rejected the request.",
        "The endpoint may not support this operation.",
    ),
    "SlowDown": (
        "The storage service is asking us to slow down.",
        "Wait a moment and try again.",
    ),
    "ServiceUnavailable": (
        "The storage service is temporarily unavailable.",
        "Try again in a few moments.",
    ),
    "InternalError": (
        "The storage service encountered an internal error.",
        "Try again in a few moments.",
    ),
    "RequestTimeout": (
        "The request timed out.",
        "Check your network connection and try again.",
    ),
}


def translate_error(exc: Exception) -> tuple[str, str]:
    """Translate a boto3 exception to (user_message, raw_detail).

    The first element is shown to the user, the second goes to the log and
    to the "Details" area of error dialogs.
    """
    raw_detail = str(exc)

    # botocore ClientError
    response = getattr(exc, "response", None)
    if isinstance(response, dict):
        error = response.get("Error", {})
        code = error.get("Code", "")
        if code in ERROR_MESSAGES:
            user_msg, suggestion = ERROR_MESSAGES[code]
            if suggestion:
                user_msg = f"{user_msg} {suggestion}"
            return user_msg, raw_detail
        message = error.get("Message", "")
        return (f"S3 error: {message}" if message else "The storage service returned an error."), raw_detail

    err_type = type(exc).__name__
    if err_type in ("NoCredentialsError", "PartialCredentialsError"):
        return "No usable credentials were found for this profile.", raw_detail

    if "ConnectTimeoutError" in err_type or "ReadTimeoutError" in err_type:
        return "The connection timed out. Check your network connection.", raw_detail

    if "EndpointConnectionError" in err_type or "ConnectionError" in err_type:
        endpoint = getattr(exc, "kwargs", {}).get("endpoint_url", "")
        target = f" at {endpoint}" if endpoint else ""
        return (
            f"Could not connect to the storage service{target}. "
            "Check the endpoint URL and your network connection.",
            raw_detail,
        )

    logger.debug("Untranslated exception type %s", err_type)
    return "An unexpected error occurred.", raw_detail
