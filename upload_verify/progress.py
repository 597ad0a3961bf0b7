"""Console progress display for long upload and verification runs."""

import threading
import time

from .format_utils import format_bytes, format_duration


def calculate_eta_bytes(elapsed: float, bytes_processed: int, total_bytes: int) -> str:
    """Calculate ETA string based on bytes processed"""
    if bytes_processed > 0 and elapsed > 0:
        throughput = bytes_processed / elapsed
        remaining_bytes = max(0, total_bytes - bytes_processed)
        return format_duration(remaining_bytes / throughput)
    return "calculating..."


class ProgressTracker:
    """Tracks file and byte totals and prints a throttled progress line.

    ``record`` may be called from any thread; printing happens at most once per
    ``update_interval`` seconds unless forced.
    """

    def __init__(
        self,
        total_files: int,
        total_bytes: int,
        label: str = "Progress",
        update_interval: float = 2.0,
    ):
        self.total_files = total_files
        self.total_bytes = total_bytes
        self.label = label
        self.update_interval = update_interval
        self.files_done = 0
        self.bytes_done = 0
        self.failed = 0
        self.start = time.time()
        self.last_update = 0.0
        self._lock = threading.Lock()

    def should_update(self, force: bool = False) -> bool:
        """Check if enough time has elapsed to update progress"""
        current_time = time.time()
        if force or current_time - self.last_update >= self.update_interval:
            self.last_update = current_time
            return True
        return False

    def record(self, size_bytes: int, succeeded: bool = True) -> None:
        """Count one finished file and refresh the display when due."""
        with self._lock:
            self.files_done += 1
            self.bytes_done += size_bytes
            if not succeeded:
                self.failed += 1
            if self.should_update(force=self.files_done == self.total_files):
                self._display()

    def _display(self) -> None:
        elapsed = time.time() - self.start
        file_pct = (self.files_done / self.total_files * 100) if self.total_files else 100.0
        eta_str = calculate_eta_bytes(elapsed, self.bytes_done, self.total_bytes)
        status = (
            f"{self.label}: {self.files_done:,}/{self.total_files:,} files ({file_pct:.1f}%), "
            f"{format_bytes(self.bytes_done)}/{format_bytes(self.total_bytes)}, "
            f"failed: {self.failed:,}, ETA: {eta_str}  "
        )
        print(f"\r  {status}", end="", flush=True)

    def finish(self) -> None:
        """Print final newline to complete progress display."""
        if self.files_done:
            print()
