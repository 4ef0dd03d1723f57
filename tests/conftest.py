import gc
import os
from pathlib import Path

import pytest


def pytest_configure(config):
    """Work around PyQt6 SIGABRT crashes in the test suite.

    PyQt6's QThread destructor calls abort() when destroyed in a problematic
    state.  Two independent vectors trigger this:

    1. Python's cyclic GC destroys QThread instances at unpredictable times via
       reference chains (exception → traceback → frame → QThread).  Disabling
       the cyclic collector prevents this; objects are still freed via refcount.

    2. pytest-qt calls QApplication.processEvents() in its setup/call/teardown
       hooks.  Qt's event loop can destroy C++ objects during event dispatch,
       triggering abort() in QThread's destructor.  Replacing the hook-level
       ``_process_events`` with a no-op prevents this while leaving test-level
       event processing (qtbot.waitSignal, etc.) fully functional.

    Additionally ``sip.setdestroyonexit(False)`` prevents SIP from calling C++
    destructors at interpreter shutdown, and ``os._exit()`` in
    ``pytest_sessionfinish`` skips interpreter cleanup entirely.
    """
    gc.disable()

    try:
        from PyQt6 import sip

        sip.setdestroyonexit(False)
    except (ImportError, AttributeError):
        pass

    try:
        import pytestqt.plugin

        pytestqt.plugin._process_events = lambda: None
    except ImportError:
        pass


def pytest_sessionfinish(session, exitstatus):
    """Force-exit to avoid PyQt6 cleanup crash at interpreter shutdown."""
    os._exit(exitstatus)


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path for testing."""
    return tmp_path / "test.db"


@pytest.fixture(autouse=True)
def mock_keyring(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Mock the keyring module with a simple dict backend."""
    store: dict[str, str] = {}

    def get_password(service: str, key: str) -> str | None:
        return store.get(f"{service}:{key}")

    def set_password(service: str, key: str, value: str) -> None:
        store[f"{service}:{key}"] = value

    def delete_password(service: str, key: str) -> None:
        store.pop(f"{service}:{key}", None)

    monkeypatch.setattr("keyring.get_password", get_password)
    monkeypatch.setattr("keyring.set_password", set_password)
    monkeypatch.setattr("keyring.delete_password", delete_password)
    return store


@pytest.fixture(autouse=True)
def _no_real_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent tests from writing to the real ~/.bucketview directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr("bucketview.constants.APP_DIR", tmp_path / ".bucketview")
    monkeypatch.setattr("bucketview.constants.DB_PATH", tmp_path / ".bucketview" / "bucketview.db")
    monkeypatch.setattr("bucketview.constants.LOG_DIR", tmp_path / ".bucketview" / "logs")
    monkeypatch.setattr(
        "bucketview.constants.LOG_FILE", tmp_path / ".bucketview" / "logs" / "bucketview.log"
    )


@pytest.fixture(autouse=True)
def _fake_aws_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep boto3 away from real credentials and profiles."""
    for var in (
        "AWS_PROFILE",
        "AWS_DEFAULT_PROFILE",
        "AWS_SESSION_TOKEN",
        "AWS_ENDPOINT_URL",
        "AWS_CONFIG_FILE",
        "AWS_SHARED_CREDENTIALS_FILE",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def profile():
    from bucketview.core.credentials import Profile

    return Profile(
        name="test",
        access_key_id="testing",
        secret_access_key="testing",
        region="us-east-1",
    )


@pytest.fixture
def s3_env(profile):
    """Set up a mocked S3 environment with a test bucket."""
    import boto3
    from moto import mock_aws

    from bucketview.core.s3_client import S3Client

    with mock_aws():
        raw = boto3.client("s3", region_name="us-east-1")
        raw.create_bucket(Bucket="test-bucket")
        client = S3Client(profile)
        yield client, raw
