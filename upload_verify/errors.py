"""Error kinds raised by the upload and verification pipeline."""

from __future__ import annotations

from pathlib import Path


class UploadVerifyError(Exception):
    """Base class for every error raised by upload_verify."""


class FilesystemError(UploadVerifyError, OSError):
    """Raised when a directory cannot be walked."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Cannot read directory {path}: {reason}")
        self.path = Path(path)


class ContentReadError(UploadVerifyError, OSError):
    """Raised when a file vanishes or becomes unreadable while hashing or uploading."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"Cannot read file {path}: {reason}")
        self.path = Path(path)


class RemoteListError(UploadVerifyError, RuntimeError):
    """Raised when the bucket listing fails; the partial catalog is discarded."""

    def __init__(self, bucket: str, pages_fetched: int, reason: str) -> None:
        super().__init__(
            f"Listing s3://{bucket} failed after {pages_fetched} page(s): {reason}"
        )
        self.bucket = bucket
        self.pages_fetched = pages_fetched


class RemoteWriteError(UploadVerifyError, RuntimeError):
    """Raised when a single upload attempt fails."""

    def __init__(self, bucket: str, key: str, reason: str) -> None:
        super().__init__(f"Upload of s3://{bucket}/{key} failed: {reason}")
        self.bucket = bucket
        self.key = key


class ConfigurationError(UploadVerifyError, ValueError):
    """Raised when required configuration is missing or invalid."""


__all__ = [
    "UploadVerifyError",
    "FilesystemError",
    "ContentReadError",
    "RemoteListError",
    "RemoteWriteError",
    "ConfigurationError",
]
