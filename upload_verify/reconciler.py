"""Comparison of local fingerprints against remote ETags."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .config import TransferSettings
from .dispatcher import UploadOutcome
from .errors import ContentReadError
from .fingerprint import etag_part_count, expected_part_count, fingerprint_entry, normalize_etag
from .transport import RemoteEntry
from .walker import FileEntry


class VerificationStatus(Enum):
    """Classification of one file after reconciliation."""

    VERIFIED = "Verified"
    MISMATCH = "MD5 Mismatch"
    REMOTE_MISSING = "Missing in S3"
    LOCAL_UNREADABLE = "Local file unreadable"


@dataclass(frozen=True)
class VerificationResult:
    key: str
    local_fingerprint: Optional[str]
    remote_tag: Optional[str]
    status: VerificationStatus

    @property
    def verified(self) -> bool:
        return self.status is VerificationStatus.VERIFIED


@dataclass
class ReconciliationReport:
    """All results of one reconciliation plus the uploads that never completed."""

    results: List[VerificationResult] = field(default_factory=list)
    upload_failures: List[UploadOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[VerificationResult]:
        return partition_failures(self.results)

    @property
    def attempted(self) -> int:
        return len(self.results) + len(self.upload_failures)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.verified)

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    def counts(self) -> Dict[str, int]:
        """Per-status totals, including failed uploads."""
        totals = {status.value: 0 for status in VerificationStatus}
        for result in self.results:
            totals[result.status.value] += 1
        totals["Upload failed"] = len(self.upload_failures)
        return totals


def classify(
    local_fingerprint: Optional[str],
    remote_tag: Optional[str],
    expected_parts: Optional[int] = None,
) -> VerificationStatus:
    """
    Classify a fingerprint/tag pair.

    When expected_parts is given and the remote tag carries a ``-N`` part-count suffix,
    a differing count is a mismatch even if the digests agree.
    """
    if remote_tag is None:
        return VerificationStatus.REMOTE_MISSING
    if local_fingerprint is None:
        return VerificationStatus.LOCAL_UNREADABLE
    remote_parts = etag_part_count(remote_tag)
    if expected_parts is not None and remote_parts is not None and remote_parts != expected_parts:
        return VerificationStatus.MISMATCH
    if local_fingerprint.lower() == normalize_etag(remote_tag):
        return VerificationStatus.VERIFIED
    return VerificationStatus.MISMATCH


def _expected_parts(size_bytes: int, settings: Optional[TransferSettings]) -> Optional[int]:
    if settings is None:
        return None
    return expected_part_count(size_bytes, settings.chunk_size)


def reconcile_uploads(
    outcomes: Iterable[UploadOutcome],
    fingerprints: Mapping[str, Optional[str]],
    settings: Optional[TransferSettings] = None,
) -> ReconciliationReport:
    """
    Compare the ETag returned by each successful upload with its precomputed fingerprint.

    Failed uploads are collected in ``upload_failures`` and not compared. With settings,
    multipart tags must also carry the part count the chunk size implies.
    """
    report = ReconciliationReport()
    for outcome in outcomes:
        if not outcome.succeeded:
            report.upload_failures.append(outcome)
            continue
        local = fingerprints.get(outcome.key)
        if local is None:
            status = VerificationStatus.LOCAL_UNREADABLE
        else:
            expected = _expected_parts(outcome.size_bytes, settings) if outcome.multipart else None
            status = classify(local, outcome.integrity_tag, expected)
        result = VerificationResult(outcome.key, local, outcome.integrity_tag, status)
        if result.verified:
            logging.info("Uploaded and verified: %s", outcome.key)
        elif status is VerificationStatus.LOCAL_UNREADABLE:
            logging.error("No local fingerprint for %s; cannot verify upload", outcome.key)
        else:
            logging.error(
                "MD5 mismatch for %s. Local: %s, S3: %s", outcome.key, local, outcome.integrity_tag
            )
        report.results.append(result)
    return report


def reconcile_catalog(
    files: Sequence[FileEntry],
    catalog: Mapping[str, RemoteEntry],
    settings: TransferSettings,
    on_result: Optional[Callable[[FileEntry, VerificationResult], None]] = None,
) -> ReconciliationReport:
    """
    Fingerprint each local file and compare it with the listed remote object.

    A file that cannot be read is reported as LOCAL_UNREADABLE; it does not stop the run.
    """
    report = ReconciliationReport()
    for entry in files:
        remote = catalog.get(entry.relative_key)
        remote_tag = remote.integrity_tag if remote is not None else None
        try:
            local = fingerprint_entry(entry, settings)
        except ContentReadError as exc:
            logging.error("%s", exc)
            local = None
        expected = (
            _expected_parts(entry.size_bytes, settings)
            if settings.is_multipart(entry.size_bytes)
            else None
        )
        status = classify(local, remote_tag, expected)
        result = VerificationResult(entry.relative_key, local, remote_tag, status)
        report.results.append(result)
        if on_result is not None:
            on_result(entry, result)
    return report


def partition_failures(results: Iterable[VerificationResult]) -> List[VerificationResult]:
    """Return the results that did not verify, in their original order."""
    return [result for result in results if not result.verified]


def key_directory(key: str) -> str:
    """Directory part of an object key (``.`` for top-level keys)."""
    return posixpath.dirname(key) or "."


def group_by_directory(results: Iterable[VerificationResult]) -> Dict[str, List[VerificationResult]]:
    """Group results by key directory; directories keep first-appearance order."""
    groups: Dict[str, List[VerificationResult]] = {}
    for result in results:
        groups.setdefault(key_directory(result.key), []).append(result)
    return groups


__all__ = [
    "ReconciliationReport",
    "VerificationResult",
    "VerificationStatus",
    "classify",
    "group_by_directory",
    "key_directory",
    "partition_failures",
    "reconcile_catalog",
    "reconcile_uploads",
]
