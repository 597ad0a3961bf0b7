"""Local directory scanning."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import List

from .errors import FilesystemError


@dataclass(frozen=True)
class FileEntry:
    """A regular file found under the walk root."""

    absolute_path: Path
    relative_key: str
    size_bytes: int


def to_object_key(relative_path: PurePath | str) -> str:
    """Convert a root-relative path into an object key with forward slashes."""
    return str(relative_path).replace("\\", "/")


def _scan_directory(directory: Path) -> List[os.DirEntry]:
    try:
        with os.scandir(directory) as entries:
            return sorted(entries, key=lambda entry: entry.name)
    except OSError as exc:
        raise FilesystemError(directory, exc.strerror or str(exc)) from exc


def walk_directory(root: Path | str) -> List[FileEntry]:
    """
    Enumerate every regular file under root.

    Directories are descended with an explicit stack; devices, sockets, FIFOs and
    dangling links are skipped. Any unreadable directory aborts the whole walk.

    Raises:
        FilesystemError: If root is missing, is not a directory, or a subdirectory
            cannot be read
    """
    root_path = Path(root).expanduser()
    if not root_path.exists():
        raise FilesystemError(root_path, "path does not exist")
    if not root_path.is_dir():
        raise FilesystemError(root_path, "not a directory")
    root_path = root_path.resolve()

    files: List[FileEntry] = []
    pending = [root_path]
    while pending:
        directory = pending.pop()
        subdirectories = []
        for entry in _scan_directory(directory):
            try:
                if entry.is_dir(follow_symlinks=False):
                    subdirectories.append(Path(entry.path))
                elif entry.is_file():
                    absolute_path = Path(entry.path)
                    files.append(
                        FileEntry(
                            absolute_path=absolute_path,
                            relative_key=to_object_key(absolute_path.relative_to(root_path)),
                            size_bytes=entry.stat().st_size,
                        )
                    )
                else:
                    logging.debug("Skipping non-regular entry %s", entry.path)
            except OSError as exc:
                raise FilesystemError(entry.path, exc.strerror or str(exc)) from exc
        # Reversed so the stack pops subdirectories in name order.
        pending.extend(reversed(subdirectories))
    return files


__all__ = ["FileEntry", "to_object_key", "walk_directory"]
