"""
Plain-text report generation.

Handles the bucket listing report, the verification reports (all results and
failures only) and the failed-upload report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence

from .dispatcher import UploadOutcome
from .format_utils import BYTES_PER_GIB, BYTES_PER_KIB, BYTES_PER_MIB, format_fixed_unit
from .reconciler import VerificationResult, group_by_directory, key_directory
from .transport import RemoteEntry


@dataclass
class DirectorySummary:
    directory: str
    total_files: int = 0
    total_size: int = 0


def summarize_catalog(entries: Iterable[RemoteEntry]) -> Dict[str, List[RemoteEntry]]:
    """Group listed objects by directory in first-appearance order."""
    directories: Dict[str, List[RemoteEntry]] = {}
    for entry in entries:
        directories.setdefault(key_directory(entry.key), []).append(entry)
    return directories


def directory_summaries(directories: Mapping[str, Sequence[RemoteEntry]]) -> List[DirectorySummary]:
    return [
        DirectorySummary(
            directory=directory,
            total_files=len(files),
            total_size=sum(entry.size_bytes for entry in files),
        )
        for directory, files in directories.items()
    ]


def render_listing_report(entries: Sequence[RemoteEntry]) -> List[str]:
    """Build the lines of the bucket listing report."""
    directories = summarize_catalog(entries)
    summaries = directory_summaries(directories)
    total_size = sum(summary.total_size for summary in summaries)
    lines = [
        f"Total Files: {len(entries)}",
        f"Total Size: {format_fixed_unit(total_size, BYTES_PER_GIB, 'GB')}",
        "",
    ]
    for summary in summaries:
        lines.append(f"Directory: {summary.directory}")
        lines.append(f"  Total Files: {summary.total_files}")
        lines.append(f"  Total Size: {format_fixed_unit(summary.total_size, BYTES_PER_MIB, 'MB')}")
        lines.append("")
    for summary in summaries:
        lines.append(f"Directory: {summary.directory}")
        for entry in directories[summary.directory]:
            lines.append(f"  {entry.key} - {format_fixed_unit(entry.size_bytes, BYTES_PER_KIB, 'KB')}")
        lines.append(f"Total Files: {summary.total_files}")
        lines.append(f"Total Size: {format_fixed_unit(summary.total_size, BYTES_PER_MIB, 'MB')}")
        lines.append("")
    return lines


def render_verification_report(results: Iterable[VerificationResult]) -> List[str]:
    """Build the lines of a verification report grouped by directory."""
    lines: List[str] = []
    for index, (directory, group) in enumerate(group_by_directory(results).items()):
        if index:
            lines.append("")
        lines.append(f"Directory: {directory}")
        for result in group:
            lines.append(f"  {result.key} - Status: {result.status.value}")
            lines.append(f"    Local MD5: {result.local_fingerprint or 'n/a'}")
            lines.append(f"    S3 ETag: {result.remote_tag or 'n/a'}")
    return lines


def render_upload_failures(outcomes: Iterable[UploadOutcome]) -> List[str]:
    """One line per failed upload, sorted by key."""
    return [
        f"{outcome.key} - attempts: {outcome.attempts_used} - error: {outcome.error}"
        for outcome in sorted(outcomes, key=lambda outcome: outcome.key)
        if not outcome.succeeded
    ]


def write_lines(output_file: Path, lines: Sequence[str]) -> Path:
    """Write lines to output_file, creating parent directories as needed."""
    output_file = Path(output_file)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    with output_file.open("w", encoding="utf-8") as handle:
        for line in lines:
            handle.write(f"{line}\n")
    logging.info("Wrote %d line(s) to %s", len(lines), output_file)
    return output_file


def write_listing_report(entries: Sequence[RemoteEntry], output_file: Path) -> Path:
    return write_lines(output_file, render_listing_report(entries))


def write_verification_report(results: Iterable[VerificationResult], output_file: Path) -> Path:
    return write_lines(output_file, render_verification_report(results))


def write_upload_failures(outcomes: Iterable[UploadOutcome], output_file: Path) -> Path:
    return write_lines(output_file, render_upload_failures(outcomes))


__all__ = [
    "DirectorySummary",
    "directory_summaries",
    "render_listing_report",
    "render_upload_failures",
    "render_verification_report",
    "summarize_catalog",
    "write_lines",
    "write_listing_report",
    "write_upload_failures",
    "write_verification_report",
]
