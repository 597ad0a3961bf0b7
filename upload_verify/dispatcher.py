"""
Parallel uploads with per-file retries.

Each file is handled by one worker from start to finish: its fingerprint (when
requested) and all of its upload attempts run sequentially on that worker. At most
``settings.concurrency`` files are in flight; the rest wait in the executor queue in
submission order. ``upload_all`` returns only after every queued file has a terminal
outcome.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from .config import TransferSettings
from .errors import ContentReadError, RemoteWriteError
from .fingerprint import fingerprint_entry
from .walker import FileEntry

EXPECTED_ERRORS = (RemoteWriteError, ContentReadError)


@dataclass(frozen=True)
class UploadOutcome:  # pylint: disable=too-many-instance-attributes
    """Terminal result of uploading one file."""

    key: str
    location_uri: Optional[str] = None
    integrity_tag: Optional[str] = None
    error: Optional[str] = None
    attempts_used: int = 0
    local_fingerprint: Optional[str] = None
    size_bytes: int = 0
    multipart: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None


class UploadDispatcher:  # pylint: disable=too-few-public-methods
    """Uploads a file set to one bucket under bounded concurrency."""

    def __init__(self, transport, settings: TransferSettings):
        self.transport = transport
        self.settings = settings.validate()
        self._attempts: Dict[str, int] = {}
        self._attempts_lock = threading.Lock()

    def upload_all(
        self,
        files: Sequence[FileEntry],
        bucket: str,
        fingerprint: bool = False,
        on_outcome: Optional[Callable[[UploadOutcome], None]] = None,
    ) -> List[UploadOutcome]:
        """
        Upload every file and wait for all of them to finish.

        Args:
            files: Files to upload, submitted in this order
            bucket: Destination bucket
            fingerprint: Compute each file's local fingerprint before its first attempt
            on_outcome: Called from the aggregating thread once per finished file

        Returns:
            One outcome per input file, in completion order
        """
        outcomes: List[UploadOutcome] = []
        if not files:
            return outcomes
        with self._attempts_lock:
            self._attempts.clear()
        with ThreadPoolExecutor(max_workers=self.settings.concurrency) as executor:
            futures = {
                executor.submit(self._upload_with_retry, entry, bucket, fingerprint): entry
                for entry in files
            }
            for future in as_completed(futures):
                entry = futures[future]
                try:
                    outcome = future.result()
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    logging.exception("Worker crashed uploading %s", entry.relative_key)
                    outcome = UploadOutcome(
                        key=entry.relative_key,
                        error=f"{exc.__class__.__name__}: {exc}",
                        attempts_used=self._attempts_made(entry.relative_key),
                        size_bytes=entry.size_bytes,
                    )
                outcomes.append(outcome)
                if on_outcome is not None:
                    on_outcome(outcome)
        return outcomes

    def _upload_with_retry(self, entry: FileEntry, bucket: str, fingerprint: bool) -> UploadOutcome:
        key = entry.relative_key
        multipart = self.settings.is_multipart(entry.size_bytes)
        chunk_size = self.settings.chunk_size if multipart else None
        local_fingerprint: Optional[str] = None
        last_error = ""
        max_attempts = self.settings.max_attempts
        for attempt in range(1, max_attempts + 1):
            self._record_attempt(key, attempt)
            try:
                if fingerprint and local_fingerprint is None:
                    local_fingerprint = fingerprint_entry(entry, self.settings)
                    logging.debug("Calculated MD5 for %s: %s", key, local_fingerprint)
                result = self.transport.put(
                    bucket, key, entry.absolute_path, multipart_chunk_size=chunk_size
                )
            except EXPECTED_ERRORS as exc:
                last_error = str(exc)
                logging.warning("Failed to upload %s on attempt %d/%d: %s", key, attempt, max_attempts, exc)
                continue
            except Exception as exc:  # pylint: disable=broad-exception-caught
                last_error = f"{exc.__class__.__name__}: {exc}"
                logging.exception("Unexpected error uploading %s on attempt %d/%d", key, attempt, max_attempts)
                continue
            logging.info("Uploaded: %s", key)
            return UploadOutcome(
                key=key,
                location_uri=result.location_uri,
                integrity_tag=result.integrity_tag,
                attempts_used=attempt,
                local_fingerprint=local_fingerprint,
                size_bytes=entry.size_bytes,
                multipart=multipart,
            )
        logging.error("Giving up on %s after %d attempts", key, max_attempts)
        return UploadOutcome(
            key=key,
            error=last_error,
            attempts_used=max_attempts,
            local_fingerprint=local_fingerprint,
            size_bytes=entry.size_bytes,
            multipart=multipart,
        )

    def _record_attempt(self, key: str, attempt: int) -> None:
        with self._attempts_lock:
            self._attempts[key] = attempt

    def _attempts_made(self, key: str) -> int:
        with self._attempts_lock:
            return self._attempts.get(key, 0)


__all__ = ["EXPECTED_ERRORS", "UploadDispatcher", "UploadOutcome"]
