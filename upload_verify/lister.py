"""Complete bucket listings built from paginated ListObjects calls."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from botocore.exceptions import ClientError

from .errors import RemoteListError
from .transport import RemoteEntry

RemoteCatalog = Dict[str, RemoteEntry]


def _describe(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        return f"{error.get('Code', 'Unknown')} - {error.get('Message', str(exc))}"
    return f"{exc.__class__.__name__}: {exc}"


def is_directory_placeholder(key: str) -> bool:
    """True for zero-content folder marker keys such as ``photos/``."""
    return key.endswith("/")


def list_all_objects(
    transport,
    bucket: str,
    prefix: Optional[str] = None,
    include_placeholders: bool = False,
) -> RemoteCatalog:
    """
    List every object under prefix, following pagination to the end.

    The marker for each request is the last key of the previous page (or the page's
    NextMarker when S3 supplies one). When a key appears twice, the later entry wins.
    Directory placeholder keys ending in ``/`` are skipped unless include_placeholders
    is set.

    Raises:
        RemoteListError: If any page request fails or S3 reports a truncated page with
            nothing to continue from. No partial catalog is returned.
    """
    catalog: RemoteCatalog = {}
    marker: Optional[str] = None
    pages_fetched = 0
    while True:
        try:
            page = transport.list_objects(bucket, prefix=prefix, marker=marker)
            entries = list(page.entries)
            next_marker = (page.next_marker or page.last_key) if page.is_truncated else None
        except RemoteListError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logging.error("Error listing objects in %s: %s", bucket, exc)
            raise RemoteListError(bucket, pages_fetched, _describe(exc)) from exc
        pages_fetched += 1
        for entry in entries:
            if not include_placeholders and is_directory_placeholder(entry.key):
                continue
            catalog[entry.key] = entry
        if not page.is_truncated:
            break
        if not next_marker or next_marker == marker:
            raise RemoteListError(
                bucket, pages_fetched, "truncated page returned no continuation marker"
            )
        marker = next_marker
        if pages_fetched % 10 == 0:
            print(f"  Listed {len(catalog):,} objects...", end="\r", flush=True)
    logging.info("Listed %d object(s) from %s in %d page(s)", len(catalog), bucket, pages_fetched)
    return catalog


__all__ = ["RemoteCatalog", "is_directory_placeholder", "list_all_objects"]
