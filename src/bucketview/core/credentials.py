"""Connection profiles: keyring storage, AWS config discovery, and client construction."""

import json
import logging
import sys
from dataclasses import dataclass, field

import boto3
import botocore.session
import keyring
from botocore.config import Config

from bucketview.constants import DEFAULT_REGION, KEYRING_SERVICE
from bucketview.core.errors import translate_error

logger = logging.getLogger("bucketview.credentials")

PROFILES_INDEX_KEY = "profiles"


def _init_keyring_backend() -> None:
    """Detect a broken keyring backend (e.g. KDE 6 kwallet) and fall back to SecretService."""
    if sys.platform != "linux":
        return
    try:
        keyring.get_password(KEYRING_SERVICE, "__probe__")
    except keyring.errors.InitError:
        logger.warning("Default keyring backend failed, trying SecretService fallback")
        try:
            from keyring.backends import SecretService

            keyring.set_keyring(SecretService.Keyring())
            logger.info("Using SecretService keyring backend")
        except Exception:
            logger.warning("SecretService fallback unavailable", exc_info=True)
    except keyring.errors.KeyringError:
        logger.debug("Keyring probe failed", exc_info=True)


_init_keyring_backend()


class KeyringError(Exception):
    """Raised when the OS keyring backend is unavailable or fails."""


@dataclass
class Profile:
    """An endpoint plus the credentials used to reach it."""

    name: str
    access_key_id: str = ""
    secret_access_key: str = ""
    region: str = ""
    endpoint_url: str = ""
    is_aws_profile: bool = False  # True = use boto3 Session(profile_name=name)

    def effective_region(self) -> str:
        return self.region or DEFAULT_REGION

    def is_configured(self) -> bool:
        """AWS CLI profiles carry their own keys; manual ones need both."""
        if self.is_aws_profile:
            return True
        return bool(self.access_key_id and self.secret_access_key)

    def to_dict(self) -> dict:
        return {
            "access_key_id": self.access_key_id,
            "secret_access_key": self.secret_access_key,
            "region": self.region,
            "endpoint_url": self.endpoint_url,
            "is_aws_profile": self.is_aws_profile,
        }

    @classmethod
    def from_dict(cls, name: str, data: dict) -> "Profile":
        return cls(
            name=name,
            access_key_id=data.get("access_key_id", ""),
            secret_access_key=data.get("secret_access_key", ""),
            region=data.get("region", ""),
            endpoint_url=data.get("endpoint_url", ""),
            is_aws_profile=data.get("is_aws_profile", False),
        )


@dataclass
class TestResult:
    __test__ = False  # not a pytest class

    success: bool
    buckets: list[str] = field(default_factory=list)
    error_message: str = ""
    error_detail: str = ""


def client_config() -> Config:
    """botocore config shared by every client.

    Path-style addressing works against AWS and against every S3-compatible
    service (MinIO, Ceph, R2, ...), virtual-host style does not.
    """
    return Config(signature_version="s3v4", s3={"addressing_style": "path"})


def create_boto_client(profile: Profile):
    """Build a low-level boto3 S3 client for a profile."""
    endpoint = profile.endpoint_url.strip() or None
    if profile.is_aws_profile:
        session = boto3.Session(profile_name=profile.name)
        return session.client(
            "s3",
            region_name=profile.region or session.region_name or DEFAULT_REGION,
            endpoint_url=endpoint,
            config=client_config(),
        )
    return boto3.client(
        "s3",
        aws_access_key_id=profile.access_key_id,
        aws_secret_access_key=profile.secret_access_key,
        region_name=profile.effective_region(),
        endpoint_url=endpoint,
        config=client_config(),
    )


def discover_aws_profiles() -> list[str]:
    """Discover profile names from ~/.aws/config and ~/.aws/credentials."""
    try:
        session = botocore.session.Session()
        profiles = list(session.available_profiles)
    except Exception:
        logger.debug("Could not discover AWS profiles", exc_info=True)
        return []
    logger.debug("Discovered %d AWS profiles: %s", len(profiles), profiles)
    return sorted(profiles)


def get_aws_profile_region(profile_name: str) -> str:
    """Read the region configured for an AWS CLI profile, or empty string."""
    try:
        session = botocore.session.Session(profile=profile_name)
        return session.get_config_variable("region") or ""
    except Exception:
        logger.debug("Could not read region for AWS profile '%s'", profile_name, exc_info=True)
        return ""


class CredentialStore:
    """Keeps connection profiles in the OS keyring."""

    def list_profiles(self) -> list[str]:
        """Return names of all saved profiles."""
        try:
            raw = keyring.get_password(KEYRING_SERVICE, PROFILES_INDEX_KEY)
        except Exception:
            logger.warning("Keyring unavailable, cannot list profiles", exc_info=True)
            return []
        if not raw:
            return []
        try:
            names = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.error("Corrupt profile index in keyring")
            return []
        return [n for n in names if isinstance(n, str)]

    def get_profile(self, name: str) -> Profile | None:
        """Load a profile by name from the keyring."""
        try:
            raw = keyring.get_password(KEYRING_SERVICE, f"profile:{name}")
        except Exception:
            logger.warning("Keyring unavailable, cannot load profile '%s'", name, exc_info=True)
            return None
        if not raw:
            return None
        try:
            return Profile.from_dict(name, json.loads(raw))
        except (json.JSONDecodeError, AttributeError, TypeError):
            logger.error("Corrupt profile data for '%s'", name)
            return None

    def save_profile(self, profile: Profile) -> None:
        """Save a profile to the keyring and update the index.

        Raises KeyringError if the keyring backend is unavailable.
        """
        data = json.dumps(profile.to_dict())
        try:
            keyring.set_password(KEYRING_SERVICE, f"profile:{profile.name}", data)

            profiles = self.list_profiles()
            if profile.name not in profiles:
                profiles.append(profile.name)
                keyring.set_password(KEYRING_SERVICE, PROFILES_INDEX_KEY, json.dumps(profiles))
        except Exception as e:
            logger.error("Keyring unavailable, cannot save profile '%s'", profile.name, exc_info=True)
            raise KeyringError(str(e)) from e
        logger.info(
            "Saved profile '%s' (endpoint='%s', aws_profile=%s)",
            profile.name,
            profile.endpoint_url,
            profile.is_aws_profile,
        )

    def delete_profile(self, name: str) -> None:
        """Remove a profile from the keyring and index.

        Raises KeyringError if the keyring backend is unavailable.
        """
        try:
            keyring.delete_password(KEYRING_SERVICE, f"profile:{name}")

            profiles = self.list_profiles()
            if name in profiles:
                profiles.remove(name)
                keyring.set_password(KEYRING_SERVICE, PROFILES_INDEX_KEY, json.dumps(profiles))
        except Exception as e:
            logger.error("Keyring unavailable, cannot delete profile '%s'", name, exc_info=True)
            raise KeyringError(str(e)) from e
        logger.info("Deleted profile '%s'", name)

    def test_connection(self, profile: Profile) -> TestResult:
        """Check a profile by listing its buckets."""
        if not profile.is_configured():
            return TestResult(
                success=False,
                error_message="Access Key ID and Secret Access Key are required.",
            )
        try:
            client = create_boto_client(profile)
            response = client.list_buckets()
        except Exception as e:
            user_msg, detail = translate_error(e)
            logger.warning("Connection test failed for profile '%s': %s", profile.name, detail)
            return TestResult(
                success=False,
                buckets=[],
                error_message=user_msg,
                error_detail=detail,
            )
        bucket_names = [b["Name"] for b in response.get("Buckets", [])]
        logger.info(
            "Connection test succeeded for profile '%s': %d buckets",
            profile.name,
            len(bucket_names),
        )
        return TestResult(success=True, buckets=bucket_names)
