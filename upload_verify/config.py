"""
Configuration for the upload and verification tool.

Values are loaded once at process start (``load_config``) and passed explicitly to
every component. ``SyncConfig`` and ``TransferSettings`` are frozen; nothing mutates
them after load.

The size threshold and chunk size are carried together in ``TransferSettings`` so the
upload strategy and the local fingerprint algorithm always agree for a run.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

from .errors import ConfigurationError

MIB = 1024 * 1024

# Files strictly larger than this are uploaded (and fingerprinted) as multipart.
DEFAULT_SIZE_THRESHOLD_BYTES: int = 3 * MIB
# Part size for multipart uploads and multipart fingerprints.
DEFAULT_CHUNK_SIZE_BYTES: int = 3 * MIB

DEFAULT_CONCURRENCY: int = 20
DEFAULT_RETRY_LIMIT: int = 2  # 3 attempts in total
DEFAULT_PART_CONCURRENCY: int = 20
# S3 rejects non-final multipart parts smaller than this with EntityTooSmall.
S3_MIN_PART_SIZE_BYTES: int = 5 * MIB

CONNECT_TIMEOUT_SECONDS: int = 120
READ_TIMEOUT_SECONDS: int = 166400

ENV_FILE_VARIABLE = "UPLOAD_VERIFY_ENV_FILE"

# Report file names written by the CLI
LISTING_REPORT_NAME = "s3_file_list.txt"
VERIFICATION_REPORT_NAME = "verification_report.txt"
FAILURES_REPORT_NAME = "failed_verifications.txt"
UPLOAD_FAILURES_REPORT_NAME = "failed_uploads.txt"


@dataclass(frozen=True)
class TransferSettings:
    """Run-wide transfer parameters shared by the dispatcher and the fingerprinter."""

    concurrency: int = DEFAULT_CONCURRENCY
    retry_limit: int = DEFAULT_RETRY_LIMIT
    size_threshold: int = DEFAULT_SIZE_THRESHOLD_BYTES
    chunk_size: int = DEFAULT_CHUNK_SIZE_BYTES
    part_concurrency: int = DEFAULT_PART_CONCURRENCY

    def validate(self) -> "TransferSettings":
        """Raise ConfigurationError when a value cannot drive a run."""
        if self.concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1 (got {self.concurrency})")
        if self.retry_limit < 0:
            raise ConfigurationError(f"retry limit must be >= 0 (got {self.retry_limit})")
        if self.size_threshold < 0:
            raise ConfigurationError(f"size threshold must be >= 0 (got {self.size_threshold})")
        if self.chunk_size < 1:
            raise ConfigurationError(f"chunk size must be >= 1 (got {self.chunk_size})")
        if self.part_concurrency < 1:
            raise ConfigurationError(
                f"part concurrency must be >= 1 (got {self.part_concurrency})"
            )
        return self

    @property
    def max_attempts(self) -> int:
        return self.retry_limit + 1

    def is_multipart(self, size_bytes: int) -> bool:
        """Return True when a file of this size uses the multipart strategy."""
        return size_bytes > self.size_threshold


@dataclass(frozen=True)
class AwsCredentials:
    access_key_id: str
    secret_access_key: str
    session_token: Optional[str] = field(default=None, repr=False)

    def __repr__(self) -> str:
        return f"AwsCredentials(access_key_id={self.access_key_id[:4]}...)"


@dataclass(frozen=True)
class SyncConfig:
    """Everything a run needs, loaded once."""

    bucket: str
    region: Optional[str] = None
    credentials: Optional[AwsCredentials] = None
    transfer: TransferSettings = field(default_factory=TransferSettings)
    use_accelerate_endpoint: bool = False

    def with_transfer(self, **changes) -> "SyncConfig":
        """Return a copy with selected transfer settings replaced."""
        return replace(self, transfer=replace(self.transfer, **changes).validate())


def parse_boolean(value: Optional[str]) -> bool:
    """Interpret the flag spellings accepted in .env files."""
    return (value or "").strip().lower() in {"true", "1"}


def _parse_int(values: Mapping[str, Optional[str]], name: str, default: int) -> int:
    raw = values.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer (got {raw!r})") from exc


def resolve_env_path(env_path: Optional[str] = None) -> Path:
    """
    Determine which .env file should be read.

    Priority order:
      1. Explicit parameter
      2. UPLOAD_VERIFY_ENV_FILE environment variable
      3. ./.env
    """
    if env_path:
        return Path(env_path).expanduser()
    override = os.environ.get(ENV_FILE_VARIABLE)
    if override:
        return Path(override).expanduser()
    return Path.cwd() / ".env"


def _read_environment(env_path: Optional[str]) -> dict[str, Optional[str]]:
    """Merge the .env file under the process environment (process wins)."""
    resolved = resolve_env_path(env_path)
    if env_path and not resolved.is_file():
        raise ConfigurationError(f"Environment file not found: {resolved}")
    values: dict[str, Optional[str]] = {}
    if resolved.is_file():
        values.update(dotenv_values(resolved))
    values.update(os.environ)
    return values


def _load_credentials(values: Mapping[str, Optional[str]]) -> Optional[AwsCredentials]:
    access_key = values.get("AWS_ACCESS_KEY_ID")
    secret_key = values.get("AWS_SECRET_ACCESS_KEY")
    if access_key and secret_key:
        return AwsCredentials(access_key, secret_key, values.get("AWS_SESSION_TOKEN") or None)
    if access_key or secret_key:
        raise ConfigurationError(
            "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set together"
        )
    # Fall back to boto3's default credential chain (profiles, instance roles).
    return None


def load_config(
    env_path: Optional[str] = None,
    *,
    bucket: Optional[str] = None,
    concurrency: Optional[int] = None,
    retry_limit: Optional[int] = None,
) -> SyncConfig:
    """
    Build the run configuration from the .env file, the process environment and CLI overrides.

    Raises:
        ConfigurationError: If the bucket is missing or a numeric value is invalid
    """
    values = _read_environment(env_path)
    bucket_name = bucket or values.get("S3_BUCKET_NAME")
    if not bucket_name:
        raise ConfigurationError("No bucket configured: pass --bucket or set S3_BUCKET_NAME")

    transfer = TransferSettings(
        concurrency=concurrency
        if concurrency is not None
        else _parse_int(values, "CONCURRENCY", DEFAULT_CONCURRENCY),
        retry_limit=retry_limit
        if retry_limit is not None
        else _parse_int(values, "MAX_RETRIES", DEFAULT_RETRY_LIMIT),
        size_threshold=DEFAULT_SIZE_THRESHOLD_BYTES,
        chunk_size=_parse_int(values, "CHUNK_SIZE_BYTES", DEFAULT_CHUNK_SIZE_BYTES),
        part_concurrency=_parse_int(values, "QUEUE_SIZE", DEFAULT_PART_CONCURRENCY),
    ).validate()
    if transfer.chunk_size < S3_MIN_PART_SIZE_BYTES:
        logging.warning(
            "Chunk size %d bytes is below the S3 minimum part size of %d bytes; "
            "multipart uploads of files over %d bytes may fail with EntityTooSmall",
            transfer.chunk_size,
            S3_MIN_PART_SIZE_BYTES,
            transfer.size_threshold,
        )

    return SyncConfig(
        bucket=bucket_name,
        region=values.get("AWS_REGION") or values.get("AWS_DEFAULT_REGION") or None,
        credentials=_load_credentials(values),
        transfer=transfer,
        use_accelerate_endpoint=parse_boolean(values.get("S3_TRANSFER_ACCELERATION")),
    )


__all__ = [
    "MIB",
    "DEFAULT_SIZE_THRESHOLD_BYTES",
    "DEFAULT_CHUNK_SIZE_BYTES",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_RETRY_LIMIT",
    "DEFAULT_PART_CONCURRENCY",
    "S3_MIN_PART_SIZE_BYTES",
    "LISTING_REPORT_NAME",
    "VERIFICATION_REPORT_NAME",
    "FAILURES_REPORT_NAME",
    "UPLOAD_FAILURES_REPORT_NAME",
    "AwsCredentials",
    "SyncConfig",
    "TransferSettings",
    "load_config",
    "parse_boolean",
    "resolve_env_path",
]
