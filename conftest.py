"""Pytest configuration and shared fixtures for the upload_verify toolkit."""

# pylint: disable=wrong-import-position

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

from tests.fake_transport import FakeTransport
from upload_verify.config import TransferSettings

_CONFIG_VARIABLES = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "S3_BUCKET_NAME",
    "CONCURRENCY",
    "MAX_RETRIES",
    "QUEUE_SIZE",
    "CHUNK_SIZE_BYTES",
    "S3_TRANSFER_ACCELERATION",
)


@pytest.fixture(autouse=True)
def mock_env_file(tmp_path, monkeypatch):
    """Auto-use fixture that isolates tests from the real environment and .env file.

    Writes a temporary .env with mock credentials and a bucket name and points
    UPLOAD_VERIFY_ENV_FILE at it.
    """
    for name in _CONFIG_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text(
        "AWS_ACCESS_KEY_ID=test_key\n"
        "AWS_SECRET_ACCESS_KEY=test_secret\n"
        "AWS_REGION=us-east-1\n"
        "S3_BUCKET_NAME=test-bucket\n"
    )
    monkeypatch.setenv("UPLOAD_VERIFY_ENV_FILE", str(env_file))
    yield str(env_file)


@pytest.fixture(name="make_tree")
def fixture_make_tree(tmp_path):
    """Return a helper that writes {relative path: bytes} under a fresh root directory."""

    def _make_tree(files: dict, name: str = "root") -> Path:
        root = tmp_path / name
        root.mkdir()
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        return root

    return _make_tree


@pytest.fixture(name="small_settings")
def fixture_small_settings():
    """Transfer settings with a tiny threshold so multipart paths run on small files."""
    return TransferSettings(concurrency=4, retry_limit=2, size_threshold=16, chunk_size=8)


@pytest.fixture(name="fake_transport")
def fixture_fake_transport():
    return FakeTransport()
