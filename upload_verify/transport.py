"""
S3 transport: the two remote operations the pipeline needs.

``S3Transport.put`` writes one object (single PUT or multipart) and returns its
location and ETag. ``S3Transport.list_objects`` returns one page of a ``ListObjects``
listing. botocore errors are translated into ``RemoteWriteError`` here; listing errors
are left to the lister, which owns pagination state.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import CONNECT_TIMEOUT_SECONDS, READ_TIMEOUT_SECONDS, SyncConfig
from .errors import ContentReadError, RemoteWriteError

UPLOAD_EXTRA_ARGS = {"ACL": "private", "ContentDisposition": "inline"}


@dataclass(frozen=True)
class RemoteEntry:
    """One object in the bucket listing."""

    key: str
    size_bytes: int
    integrity_tag: str


@dataclass(frozen=True)
class PutResult:
    location_uri: str
    integrity_tag: str


@dataclass(frozen=True)
class ListPage:
    """One page of a bucket listing."""

    entries: List[RemoteEntry] = field(default_factory=list)
    is_truncated: bool = False
    next_marker: Optional[str] = None

    @property
    def last_key(self) -> Optional[str]:
        return self.entries[-1].key if self.entries else None


def create_s3_client(config: SyncConfig):
    """
    Create a boto3 S3 client for the configured region and credentials.

    Credentials from the .env file are passed explicitly; when none were configured
    boto3 falls back to its default provider chain.
    """
    client_kwargs = {
        "config": Config(
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            read_timeout=READ_TIMEOUT_SECONDS,
            s3={"use_accelerate_endpoint": config.use_accelerate_endpoint},
        )
    }
    if config.credentials is not None:
        client_kwargs["aws_access_key_id"] = config.credentials.access_key_id
        client_kwargs["aws_secret_access_key"] = config.credentials.secret_access_key
        if config.credentials.session_token:
            client_kwargs["aws_session_token"] = config.credentials.session_token
    if config.region is not None:
        client_kwargs["region_name"] = config.region
    return boto3.client("s3", **client_kwargs)


def _describe_client_error(exc: ClientError) -> str:
    error = exc.response.get("Error", {})
    code = error.get("Code", "Unknown")
    message = error.get("Message", str(exc))
    return f"{code} - {message}"


def _read_part(file_path: Path, offset: int, length: int) -> bytes:
    try:
        with open(file_path, "rb") as handle:
            handle.seek(offset)
            return handle.read(length)
    except OSError as exc:
        raise ContentReadError(file_path, exc.strerror or str(exc)) from exc


class S3Transport:
    """Thin wrapper around a boto3 S3 client."""

    def __init__(self, s3, region: Optional[str] = None, part_concurrency: int = 1):
        self.s3 = s3
        self.region = region
        self.part_concurrency = max(1, part_concurrency)

    @classmethod
    def from_config(cls, config: SyncConfig) -> "S3Transport":
        return cls(
            create_s3_client(config),
            region=config.region,
            part_concurrency=config.transfer.part_concurrency,
        )

    def object_url(self, bucket: str, key: str) -> str:
        """Virtual-hosted style URL of an object."""
        if self.region:
            host = f"{bucket}.s3.{self.region}.amazonaws.com"
        else:
            host = f"{bucket}.s3.amazonaws.com"
        return f"https://{host}/{quote(key)}"

    def put(
        self, bucket: str, key: str, file_path: Path, multipart_chunk_size: Optional[int] = None
    ) -> PutResult:
        """
        Upload one file.

        Args:
            multipart_chunk_size: Part size in bytes; None selects a single PUT

        Raises:
            RemoteWriteError: If S3 rejects the request or the connection fails
            ContentReadError: If the file cannot be read
        """
        try:
            if multipart_chunk_size is None:
                return self._put_single(bucket, key, Path(file_path))
            return self._put_multipart(bucket, key, Path(file_path), multipart_chunk_size)
        except ClientError as exc:
            raise RemoteWriteError(bucket, key, _describe_client_error(exc)) from exc
        except BotoCoreError as exc:
            raise RemoteWriteError(bucket, key, str(exc)) from exc

    def _put_single(self, bucket: str, key: str, file_path: Path) -> PutResult:
        try:
            with open(file_path, "rb") as body:
                response = self.s3.put_object(Bucket=bucket, Key=key, Body=body, **UPLOAD_EXTRA_ARGS)
        except OSError as exc:
            raise ContentReadError(file_path, exc.strerror or str(exc)) from exc
        return PutResult(self.object_url(bucket, key), response["ETag"].strip('"'))

    def _put_multipart(self, bucket: str, key: str, file_path: Path, chunk_size: int) -> PutResult:
        try:
            file_size = file_path.stat().st_size
        except OSError as exc:
            raise ContentReadError(file_path, exc.strerror or str(exc)) from exc

        upload_id = self.s3.create_multipart_upload(Bucket=bucket, Key=key, **UPLOAD_EXTRA_ARGS)[
            "UploadId"
        ]
        offsets = list(range(0, file_size, chunk_size)) or [0]
        try:
            with ThreadPoolExecutor(max_workers=min(self.part_concurrency, len(offsets))) as pool:
                futures = [
                    pool.submit(
                        self._upload_part,
                        bucket,
                        key,
                        upload_id,
                        part_number,
                        file_path,
                        offset,
                        chunk_size,
                    )
                    for part_number, offset in enumerate(offsets, 1)
                ]
                parts = [future.result() for future in futures]
            response = self.s3.complete_multipart_upload(
                Bucket=bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except (ClientError, BotoCoreError, ContentReadError):
            self._abort(bucket, key, upload_id)
            raise
        location = response.get("Location") or self.object_url(bucket, key)
        return PutResult(location, response["ETag"].strip('"'))

    def _upload_part(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self, bucket, key, upload_id, part_number, file_path: Path, offset: int, length: int
    ) -> dict:
        data = _read_part(file_path, offset, length)
        response = self.s3.upload_part(
            Bucket=bucket, Key=key, UploadId=upload_id, PartNumber=part_number, Body=data
        )
        return {"ETag": response["ETag"], "PartNumber": part_number}

    def _abort(self, bucket: str, key: str, upload_id: str) -> None:
        try:
            self.s3.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)
        except (ClientError, BotoCoreError) as exc:
            logging.warning("Failed to abort multipart upload %s for %s: %s", upload_id, key, exc)

    def list_objects(
        self, bucket: str, prefix: Optional[str] = None, marker: Optional[str] = None
    ) -> ListPage:
        """Fetch one ListObjects page starting after marker."""
        params = {"Bucket": bucket}
        if prefix:
            params["Prefix"] = prefix
        if marker:
            params["Marker"] = marker
        response = self.s3.list_objects(**params)
        entries = [
            RemoteEntry(key=obj["Key"], size_bytes=obj["Size"], integrity_tag=obj["ETag"].strip('"'))
            for obj in response.get("Contents", [])
        ]
        return ListPage(
            entries=entries,
            is_truncated=bool(response.get("IsTruncated")),
            next_marker=response.get("NextMarker"),
        )


__all__ = [
    "ListPage",
    "PutResult",
    "RemoteEntry",
    "S3Transport",
    "create_s3_client",
]
