"""Instrumented S3 client wrapping boto3."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from typing import TYPE_CHECKING

from bucketview.constants import (
    DEFAULT_PRESIGN_EXPIRY,
    DELETE_BATCH_SIZE,
    DELIMITER,
    LISTING_PAGE_SIZE,
    MAX_LISTING_PAGE_SIZE,
    MAX_PRESIGN_EXPIRY,
    MIN_PRESIGN_EXPIRY,
)
from bucketview.core.credentials import create_boto_client
from bucketview.core.errors import translate_error
from bucketview.core.paths import basename, compose_key
from bucketview.models.s3_objects import Bucket, ListingPage, ObjectInfo, S3Item

if TYPE_CHECKING:
    from bucketview.core.credentials import Profile

logger = logging.getLogger("bucketview.s3_client")

EXPIRY_ERROR = "Expires time must be between 1 second and 7 days (604800 seconds)."

_CONTENT_RANGE_RE = re.compile(r"bytes \d+-\d+/(\d+)")


class S3ClientError(Exception):
    """Wraps an S3 error with user-facing message and raw detail."""

    def __init__(self, user_message: str, detail: str = "") -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.detail = detail


def validate_expiry(expires_in) -> int:
    """Coerce a presign lifetime to whole seconds within the allowed window.

    Integers and integer strings are accepted. Raises S3ClientError otherwise.
    """
    if isinstance(expires_in, bool):
        raise S3ClientError(EXPIRY_ERROR)
    if isinstance(expires_in, int):
        value = expires_in
    elif isinstance(expires_in, str):
        try:
            value = int(expires_in.strip())
        except ValueError:
            raise S3ClientError(EXPIRY_ERROR) from None
    else:
        raise S3ClientError(EXPIRY_ERROR)
    if not MIN_PRESIGN_EXPIRY <= value <= MAX_PRESIGN_EXPIRY:
        raise S3ClientError(EXPIRY_ERROR)
    return value


class S3Client:
    """Wraps a boto3 S3 client with error translation and logging."""

    def __init__(self, profile: Profile) -> None:
        self._client = create_boto_client(profile)
        self._profile_name = profile.name
        logger.info(
            "S3Client created for profile '%s' region '%s' endpoint='%s' (aws_profile=%s)",
            profile.name,
            profile.effective_region(),
            profile.endpoint_url,
            profile.is_aws_profile,
        )

    @property
    def profile_name(self) -> str:
        return self._profile_name

    def _handle_error(self, exc: Exception, operation: str) -> None:
        user_msg, detail = translate_error(exc)
        logger.error("S3 operation '%s' failed: %s", operation, detail)
        raise S3ClientError(user_msg, detail) from exc

    # --- Bucket operations ---

    def list_buckets(self) -> list[Bucket]:
        """Return the buckets visible to these credentials."""
        try:
            logger.debug("list_buckets")
            response = self._client.list_buckets()
            return [
                Bucket(name=b["Name"], creation_date=b.get("CreationDate"))
                for b in response.get("Buckets", [])
            ]
        except Exception as e:
            self._handle_error(e, "list_buckets")

    # --- Listing ---

    def list_objects_page(
        self,
        bucket: str,
        prefix: str = "",
        continuation_token: str | None = None,
        max_keys: int = LISTING_PAGE_SIZE,
        delimiter: str = DELIMITER,
    ) -> ListingPage:
        """Fetch a single page of a prefix listing.

        Common prefixes become folders and contents become files. The key
        equal to ``prefix`` itself (a folder marker object) is skipped.
        """
        if not 1 <= max_keys <= MAX_LISTING_PAGE_SIZE:
            raise S3ClientError(f"Page size must be between 1 and {MAX_LISTING_PAGE_SIZE}.")
        try:
            logger.debug(
                "list_objects_page bucket=%s prefix='%s' token=%s max_keys=%d",
                bucket,
                prefix,
                bool(continuation_token),
                max_keys,
            )
            kwargs = {
                "Bucket": bucket,
                "Prefix": prefix,
                "Delimiter": delimiter,
                "MaxKeys": max_keys,
            }
            if continuation_token:
                kwargs["ContinuationToken"] = continuation_token
            response = self._client.list_objects_v2(**kwargs)
        except Exception as e:
            self._handle_error(e, "list_objects_page")

        page = ListingPage(
            prefix=prefix,
            continuation_token=response.get("NextContinuationToken"),
            is_truncated=bool(response.get("IsTruncated")),
        )
        for cp in response.get("CommonPrefixes", []):
            p = cp["Prefix"]
            name = p[len(prefix) :].rstrip(delimiter)
            page.folders.append(S3Item(name=name, key=p, is_prefix=True, size=0))

        for obj in response.get("Contents", []):
            key = obj["Key"]
            if key == prefix:
                continue
            page.files.append(
                S3Item(
                    name=key[len(prefix) :],
                    key=key,
                    is_prefix=False,
                    size=obj.get("Size"),
                    last_modified=obj.get("LastModified"),
                    storage_class=obj.get("StorageClass"),
                    etag=obj.get("ETag"),
                )
            )

        logger.debug(
            "list_objects_page returned %d folders, %d files (truncated=%s)",
            len(page.folders),
            len(page.files),
            page.is_truncated,
        )
        return page

    def iter_keys(self, bucket: str, prefix: str) -> Iterator[str]:
        """Yield every key under a prefix, recursively."""
        try:
            logger.debug("iter_keys bucket=%s prefix='%s'", bucket, prefix)
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    yield obj["Key"]
        except Exception as e:
            self._handle_error(e, "iter_keys")

    # --- Object metadata ---

    def head_object(self, bucket: str, key: str) -> S3Item:
        """Get full metadata for a single object."""
        try:
            logger.debug("head_object bucket=%s key='%s'", bucket, key)
            resp = self._client.head_object(Bucket=bucket, Key=key)
            return S3Item(
                name=basename(key),
                key=key,
                is_prefix=False,
                size=resp.get("ContentLength"),
                last_modified=resp.get("LastModified"),
                storage_class=resp.get("StorageClass"),
                etag=resp.get("ETag"),
                content_type=resp.get("ContentType"),
            )
        except Exception as e:
            self._handle_error(e, "head_object")

    def get_object_tagging(self, bucket: str, key: str) -> dict[str, str]:
        """Return the tag set of an object. Empty keys or values are dropped."""
        try:
            logger.debug("get_object_tagging bucket=%s key='%s'", bucket, key)
            resp = self._client.get_object_tagging(Bucket=bucket, Key=key)
        except Exception as e:
            self._handle_error(e, "get_object_tagging")
        tags = {}
        for tag in resp.get("TagSet", []):
            k = tag.get("Key") or ""
            v = tag.get("Value") or ""
            if k and v:
                tags[k] = v
        return tags

    def get_object_info(self, bucket: str, key: str) -> ObjectInfo:
        """HeadObject details plus tags. Tags are optional; failures yield {}."""
        try:
            logger.debug("get_object_info bucket=%s key='%s'", bucket, key)
            resp = self._client.head_object(Bucket=bucket, Key=key)
        except Exception as e:
            self._handle_error(e, "get_object_info")

        info = ObjectInfo(
            key=key,
            size=resp.get("ContentLength") or 0,
            content_type=resp.get("ContentType"),
            last_modified=resp.get("LastModified"),
            etag=resp.get("ETag"),
            storage_class=resp.get("StorageClass") or "STANDARD",
            metadata=dict(resp.get("Metadata") or {}),
        )
        try:
            info.tags = self.get_object_tagging(bucket, key)
        except S3ClientError as e:
            logger.warning("Could not read tags for '%s': %s", key, e.detail or e.user_message)
            info.tags = {}
        return info

    # --- Single object operations ---

    def put_object(
        self, bucket: str, key: str, body: bytes, content_type: str | None = None
    ) -> None:
        """Upload a small object in a single request."""
        try:
            logger.debug("put_object bucket=%s key='%s' size=%d", bucket, key, len(body))
            kwargs = {"Bucket": bucket, "Key": key, "Body": body}
            if content_type:
                kwargs["ContentType"] = content_type
            self._client.put_object(**kwargs)
        except Exception as e:
            self._handle_error(e, "put_object")

    def get_object(self, bucket: str, key: str, range_header: str | None = None):
        """Download an object (or a byte range). Returns the streaming body."""
        try:
            logger.debug("get_object bucket=%s key='%s' range=%s", bucket, key, range_header)
            kwargs = {"Bucket": bucket, "Key": key}
            if range_header:
                kwargs["Range"] = range_header
            return self._client.get_object(**kwargs)["Body"]
        except Exception as e:
            self._handle_error(e, "get_object")

    def read_object_range(
        self, bucket: str, key: str, start: int, length: int
    ) -> tuple[bytes, int]:
        """Read ``length`` bytes from ``start``. Returns (data, total object size)."""
        end = start + max(length, 1) - 1
        try:
            logger.debug("read_object_range bucket=%s key='%s' bytes=%d-%d", bucket, key, start, end)
            resp = self._client.get_object(Bucket=bucket, Key=key, Range=f"bytes={start}-{end}")
            data = resp["Body"].read()
        except Exception as e:
            self._handle_error(e, "read_object_range")
        match = _CONTENT_RANGE_RE.match(resp.get("ContentRange") or "")
        total = int(match.group(1)) if match else resp.get("ContentLength", len(data))
        return data, total

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete a single object."""
        try:
            logger.debug("delete_object bucket=%s key='%s'", bucket, key)
            self._client.delete_object(Bucket=bucket, Key=key)
        except Exception as e:
            self._handle_error(e, "delete_object")

    def delete_objects(self, bucket: str, keys: list[str]) -> list[str]:
        """Delete keys in batches of 1000. Returns the keys that failed."""
        failed: list[str] = []
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start : start + DELETE_BATCH_SIZE]
            try:
                logger.debug("delete_objects bucket=%s count=%d", bucket, len(batch))
                response = self._client.delete_objects(
                    Bucket=bucket,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
                )
            except Exception as e:
                self._handle_error(e, "delete_objects")
            errors = response.get("Errors", [])
            if errors:
                logger.warning("delete_objects partial failure: %d failed", len(errors))
                failed.extend(err["Key"] for err in errors)
        return failed

    def create_folder(self, bucket: str, prefix: str, name: str) -> str:
        """Create a zero-byte folder marker. Returns the new folder prefix."""
        try:
            key = compose_key(prefix, name.strip().strip(DELIMITER)) + DELIMITER
        except ValueError as e:
            raise S3ClientError("Folder name cannot be empty.") from e
        self.put_object(bucket, key, b"")
        logger.info("Created folder '%s' in bucket %s", key, bucket)
        return key

    # --- Multipart upload ---

    def create_multipart_upload(
        self, bucket: str, key: str, content_type: str | None = None
    ) -> str:
        """Initiate a multipart upload. Returns the upload_id."""
        try:
            logger.debug("create_multipart_upload bucket=%s key='%s'", bucket, key)
            kwargs = {"Bucket": bucket, "Key": key}
            if content_type:
                kwargs["ContentType"] = content_type
            response = self._client.create_multipart_upload(**kwargs)
        except Exception as e:
            self._handle_error(e, "create_multipart_upload")
        upload_id = response.get("UploadId")
        if not upload_id:
            logger.error("create_multipart_upload returned no upload id for '%s'", key)
            raise S3ClientError("Failed to start multipart upload.")
        logger.debug("Multipart upload initiated: upload_id=%s", upload_id)
        return upload_id

    def upload_part(
        self, bucket: str, key: str, upload_id: str, part_number: int, body: bytes
    ) -> str:
        """Upload a single part. Returns the ETag."""
        try:
            logger.debug(
                "upload_part bucket=%s key='%s' part=%d size=%d",
                bucket,
                key,
                part_number,
                len(body),
            )
            response = self._client.upload_part(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                PartNumber=part_number,
                Body=body,
            )
        except Exception as e:
            self._handle_error(e, "upload_part")
        etag = response.get("ETag")
        if not etag:
            logger.error("upload_part returned no ETag for part %d of '%s'", part_number, key)
            raise S3ClientError(f"Failed to upload part {part_number}")
        return etag

    def complete_multipart_upload(
        self, bucket: str, key: str, upload_id: str, parts: list[dict]
    ) -> None:
        """Complete a multipart upload. parts is a list of {'ETag': ..., 'PartNumber': ...}."""
        try:
            logger.debug(
                "complete_multipart_upload bucket=%s key='%s' parts=%d",
                bucket,
                key,
                len(parts),
            )
            self._client.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except Exception as e:
            self._handle_error(e, "complete_multipart_upload")

    def abort_multipart_upload(self, bucket: str, key: str, upload_id: str) -> None:
        """Abort a multipart upload and clean up parts."""
        try:
            logger.debug(
                "abort_multipart_upload bucket=%s key='%s' upload_id=%s",
                bucket,
                key,
                upload_id,
            )
            self._client.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)
        except Exception as e:
            self._handle_error(e, "abort_multipart_upload")

    # --- Presigned URLs ---

    def generate_presigned_url(
        self, bucket: str, key: str, expires_in=DEFAULT_PRESIGN_EXPIRY
    ) -> str:
        """Presign a GET for ``key``, valid for ``expires_in`` seconds."""
        if not key:
            raise S3ClientError("Object key cannot be empty.")
        seconds = validate_expiry(expires_in)
        try:
            logger.debug("generate_presigned_url bucket=%s key='%s' expires=%d", bucket, key, seconds)
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=seconds,
            )
        except Exception as e:
            self._handle_error(e, "generate_presigned_url")
