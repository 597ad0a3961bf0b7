"""
Local content fingerprints that match S3 ETags.

S3 reports the plain MD5 of the body for objects written with a single PUT. For
multipart objects it reports the MD5 of the concatenated raw MD5 digests of every part,
followed by ``-<part count>``. The fingerprint computed here is the hex digest without
that suffix; ``normalize_etag`` removes it from the remote side before comparison.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from .config import TransferSettings
from .errors import ContentReadError
from .walker import FileEntry

# Upper bound on a single read() while hashing.
READ_SIZE = 1024 * 1024


def _md5():
    return hashlib.md5(usedforsecurity=False)


def hash_file_in_chunks(file_path, hash_obj, chunk_size: int = READ_SIZE) -> None:
    """Read file in chunks and update hash object

    Args:
        file_path: Path to file to hash
        hash_obj: Hash object (e.g., hashlib.md5())
        chunk_size: Size of chunks to read (default: 1MB)
    """
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hash_obj.update(chunk)


def _hash_part(handle, part_size: int) -> tuple[bytes, int]:
    """Hash up to part_size bytes from handle; returns (raw digest, bytes consumed)."""
    part_hash = _md5()
    consumed = 0
    while consumed < part_size:
        data = handle.read(min(READ_SIZE, part_size - consumed))
        if not data:
            break
        part_hash.update(data)
        consumed += len(data)
    return part_hash.digest(), consumed


def md5_hex(file_path: Path | str) -> str:
    """Return the lowercase hex MD5 of the whole file."""
    md5_hash = _md5()
    try:
        hash_file_in_chunks(file_path, md5_hash)
    except OSError as exc:
        raise ContentReadError(file_path, exc.strerror or str(exc)) from exc
    return md5_hash.hexdigest()


def multipart_md5_hex(file_path: Path | str, chunk_size: int) -> str:
    """Return the multipart ETag digest (without the part-count suffix) for the file."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")
    part_digests = []
    try:
        with open(file_path, "rb") as handle:
            while True:
                digest, consumed = _hash_part(handle, chunk_size)
                if consumed == 0:
                    break
                part_digests.append(digest)
    except OSError as exc:
        raise ContentReadError(file_path, exc.strerror or str(exc)) from exc
    return hashlib.md5(b"".join(part_digests), usedforsecurity=False).hexdigest()


def expected_part_count(size_bytes: int, chunk_size: int) -> int:
    """Number of parts a multipart upload of size_bytes produces."""
    return max(1, -(-size_bytes // chunk_size))


def compute_fingerprint(
    file_path: Path | str, size_bytes: int, threshold_bytes: int, chunk_size_bytes: int
) -> str:
    """
    Compute the fingerprint S3 will report for this file.

    Args:
        file_path: File to hash
        size_bytes: Size used for strategy selection (as recorded when the file was walked)
        threshold_bytes: Files larger than this use the multipart algorithm
        chunk_size_bytes: Part size; must equal the part size used for the upload

    Raises:
        ContentReadError: If the file cannot be read
    """
    if size_bytes > threshold_bytes:
        return multipart_md5_hex(file_path, chunk_size_bytes)
    return md5_hex(file_path)


def fingerprint_entry(entry: FileEntry, settings: TransferSettings) -> str:
    """Fingerprint a walked file with the run's transfer settings."""
    return compute_fingerprint(
        entry.absolute_path, entry.size_bytes, settings.size_threshold, settings.chunk_size
    )


def normalize_etag(etag: str | None) -> str | None:
    """Strip quotes and any multipart ``-N`` suffix from an ETag."""
    if etag is None:
        return None
    return etag.strip().strip('"').split("-", 1)[0].lower()


def etag_part_count(etag: str | None) -> int | None:
    """Part count from a multipart ETag's ``-N`` suffix, or None for single-part tags."""
    if etag is None:
        return None
    _, separator, suffix = etag.strip().strip('"').partition("-")
    if not separator or not suffix.isdigit():
        return None
    return int(suffix)


__all__ = [
    "compute_fingerprint",
    "etag_part_count",
    "expected_part_count",
    "fingerprint_entry",
    "hash_file_in_chunks",
    "md5_hex",
    "multipart_md5_hex",
    "normalize_etag",
]
