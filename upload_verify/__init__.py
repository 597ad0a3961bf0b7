"""Package for uploading directory trees to S3 and verifying them against local MD5 fingerprints."""

from .config import SyncConfig, TransferSettings, load_config
from .dispatcher import UploadDispatcher, UploadOutcome
from .fingerprint import compute_fingerprint, normalize_etag
from .lister import list_all_objects
from .reconciler import (
    ReconciliationReport,
    VerificationResult,
    VerificationStatus,
    reconcile_catalog,
    reconcile_uploads,
)
from .transport import RemoteEntry, S3Transport
from .walker import FileEntry, walk_directory

__all__ = [
    "FileEntry",
    "ReconciliationReport",
    "RemoteEntry",
    "S3Transport",
    "SyncConfig",
    "TransferSettings",
    "UploadDispatcher",
    "UploadOutcome",
    "VerificationResult",
    "VerificationStatus",
    "compute_fingerprint",
    "list_all_objects",
    "load_config",
    "normalize_etag",
    "reconcile_catalog",
    "reconcile_uploads",
    "walk_directory",
]
