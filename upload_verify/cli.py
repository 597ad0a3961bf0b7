"""
Command-line interface and main entry point for upload_verify.

Handles configuration loading and workflow dispatch.
"""

from __future__ import annotations

import argparse
import logging
import sys

from .args_parser import parse_args
from .config import SyncConfig, load_config
from .errors import ConfigurationError, FilesystemError, RemoteListError
from .transport import S3Transport
from .workflow import run_list, run_upload, run_upload_verify, run_verify

WORKFLOWS = {
    "upload": run_upload,
    "upload-verify": run_upload_verify,
    "verify": run_verify,
}


def _load_config(args: argparse.Namespace) -> SyncConfig:
    return load_config(
        args.env_file,
        bucket=args.bucket,
        concurrency=getattr(args, "concurrency", None),
        retry_limit=getattr(args, "retry_limit", None),
    )


def _run(args: argparse.Namespace, config: SyncConfig, transport) -> int:
    if args.command == "list":
        run_list(config, transport, args.output_dir, prefix=args.prefix)
        return 0
    summary = WORKFLOWS[args.command](config, transport, args.root, args.output_dir)
    if summary.has_failures and args.strict:
        return 1
    return 0


def main(argv: list[str] | None = None, transport_factory=S3Transport.from_config) -> int:
    """Main entry point for the upload_verify CLI."""
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(message)s",
    )

    try:
        config = _load_config(args)
    except ConfigurationError as exc:
        logging.error("Configuration error: %s", exc)
        return 1
    logging.debug("Loaded configuration: %s", config)

    transport = transport_factory(config)
    try:
        return _run(args, config, transport)
    except FilesystemError as exc:
        logging.error("%s", exc)
        return 1
    except RemoteListError as exc:
        logging.error("%s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
