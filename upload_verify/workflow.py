"""End-to-end runs: upload, upload-and-verify, verify and list."""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .config import (
    FAILURES_REPORT_NAME,
    LISTING_REPORT_NAME,
    UPLOAD_FAILURES_REPORT_NAME,
    VERIFICATION_REPORT_NAME,
    SyncConfig,
)
from .dispatcher import UploadDispatcher, UploadOutcome
from .format_utils import format_bytes, format_duration
from .lister import list_all_objects
from .progress import ProgressTracker
from .reconciler import ReconciliationReport, reconcile_catalog, reconcile_uploads
from .reports import (
    write_listing_report,
    write_upload_failures,
    write_verification_report,
)
from .walker import FileEntry, walk_directory


@dataclass
class RunSummary:
    """Totals printed at the end of a run."""

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_keys: Optional[List[str]] = None

    @property
    def has_failures(self) -> bool:
        return self.failed > 0


def _print_header(title: str) -> None:
    print("=" * 70)
    print(title)
    print("=" * 70)
    print()


def _print_summary(summary: RunSummary, start_time: float) -> None:
    print()
    print(f"  Attempted: {summary.attempted:,}")
    print(f"  Succeeded: {summary.succeeded:,}")
    print(f"  Failed:    {summary.failed:,}")
    print(f"  Elapsed:   {format_duration(time.time() - start_time)}")
    print()


def _scan(root: Path) -> List[FileEntry]:
    files = walk_directory(root)
    total_size = sum(entry.size_bytes for entry in files)
    print(f"Found {len(files):,} files ({format_bytes(total_size)}) under {root}")
    print()
    return files


def _dispatch(
    config: SyncConfig, transport, files: List[FileEntry], fingerprint: bool
) -> List[UploadOutcome]:
    dispatcher = UploadDispatcher(transport, config.transfer)
    progress = ProgressTracker(
        total_files=len(files),
        total_bytes=sum(entry.size_bytes for entry in files),
        label="Uploaded",
    )
    outcomes = dispatcher.upload_all(
        files,
        config.bucket,
        fingerprint=fingerprint,
        on_outcome=lambda outcome: progress.record(outcome.size_bytes, outcome.succeeded),
    )
    progress.finish()
    return outcomes


def run_upload(config: SyncConfig, transport, root: Path, output_dir: Path) -> RunSummary:
    """Upload every file under root to the configured bucket."""
    _print_header(f"UPLOADING {root} TO s3://{config.bucket}")
    start_time = time.time()
    files = _scan(root)
    outcomes = _dispatch(config, transport, files, fingerprint=False)
    failed = sorted(outcome.key for outcome in outcomes if not outcome.succeeded)
    summary = RunSummary(
        attempted=len(outcomes),
        succeeded=len(outcomes) - len(failed),
        failed=len(failed),
        failed_keys=failed,
    )
    if failed:
        write_upload_failures(outcomes, Path(output_dir) / UPLOAD_FAILURES_REPORT_NAME)
        print(f"⚠️  {len(failed):,} file(s) failed to upload")
    else:
        print("✓ All files uploaded successfully.")
    _print_summary(summary, start_time)
    return summary


def _summary_from_report(report: ReconciliationReport) -> RunSummary:
    failed_keys = sorted(
        [result.key for result in report.failures]
        + [outcome.key for outcome in report.upload_failures]
    )
    return RunSummary(
        attempted=report.attempted,
        succeeded=report.succeeded,
        failed=report.failed,
        failed_keys=failed_keys,
    )


def _write_verification_reports(report: ReconciliationReport, output_dir: Path) -> None:
    output_dir = Path(output_dir)
    write_verification_report(report.results, output_dir / VERIFICATION_REPORT_NAME)
    write_verification_report(report.failures, output_dir / FAILURES_REPORT_NAME)
    if report.upload_failures:
        write_upload_failures(report.upload_failures, output_dir / UPLOAD_FAILURES_REPORT_NAME)


def run_upload_verify(config: SyncConfig, transport, root: Path, output_dir: Path) -> RunSummary:
    """Upload every file and compare each returned ETag with the local fingerprint."""
    _print_header(f"UPLOADING AND VERIFYING {root} TO s3://{config.bucket}")
    start_time = time.time()
    files = _scan(root)
    outcomes = _dispatch(config, transport, files, fingerprint=True)
    fingerprints = {outcome.key: outcome.local_fingerprint for outcome in outcomes}
    report = reconcile_uploads(outcomes, fingerprints, config.transfer)
    _write_verification_reports(report, output_dir)
    summary = _summary_from_report(report)
    for status, count in report.counts().items():
        print(f"  {status:<22} {count:,}")
    _print_summary(summary, start_time)
    return summary


def run_verify(config: SyncConfig, transport, root: Path, output_dir: Path) -> RunSummary:
    """Verify local files against the bucket listing without uploading anything."""
    _print_header(f"VERIFYING {root} AGAINST s3://{config.bucket}")
    start_time = time.time()
    files = _scan(root)
    catalog = list_all_objects(transport, config.bucket)
    print(f"Listed {len(catalog):,} objects in s3://{config.bucket}")
    progress = ProgressTracker(
        total_files=len(files),
        total_bytes=sum(entry.size_bytes for entry in files),
        label="Verified",
    )
    report = reconcile_catalog(
        files,
        catalog,
        config.transfer,
        on_result=lambda entry, result: progress.record(entry.size_bytes, result.verified),
    )
    progress.finish()
    _write_verification_reports(report, output_dir)
    summary = _summary_from_report(report)
    for status, count in report.counts().items():
        if count:
            print(f"  {status:<22} {count:,}")
    _print_summary(summary, start_time)
    return summary


def run_list(config: SyncConfig, transport, output_dir: Path, prefix: Optional[str] = None) -> Path:
    """Write the bucket listing report and return its path."""
    catalog = list_all_objects(transport, config.bucket, prefix=prefix, include_placeholders=True)
    output_file = write_listing_report(list(catalog.values()), Path(output_dir) / LISTING_REPORT_NAME)
    print(f"File list written to {output_file}")
    return output_file


__all__ = ["RunSummary", "run_list", "run_upload", "run_upload_verify", "run_verify"]
