"""
Argument parsing for the upload_verify CLI.

Handles command-line argument definition, parsing, and validation.
"""

from __future__ import annotations

import argparse
from pathlib import Path

COMMANDS = {
    "upload": "Upload a directory tree to the bucket.",
    "upload-verify": "Upload a directory tree and verify each returned ETag.",
    "verify": "Verify a directory tree against the objects already in the bucket.",
    "list": "Write a per-directory listing of the bucket.",
}


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Add options shared by every command."""
    parser.add_argument("--bucket", help="Target bucket (default: S3_BUCKET_NAME from the .env file).")
    parser.add_argument(
        "--env-file",
        help="Path to the .env file (default: $UPLOAD_VERIFY_ENV_FILE or ./.env).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory for report files (default: current directory).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging.")


def add_transfer_arguments(parser: argparse.ArgumentParser) -> None:
    """Add options that control uploads."""
    parser.add_argument(
        "--concurrency",
        type=int,
        help="Maximum number of files uploaded at once (default: CONCURRENCY or 20).",
    )
    parser.add_argument(
        "--retry-limit",
        type=int,
        help="Attempts allowed per file beyond the first (default: MAX_RETRIES or 2).",
    )


def add_root_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("root", type=Path, help="Local directory to process.")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when any file failed (default: exit 0 after a partial run).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Upload a directory tree to S3 and verify the objects against local MD5 fingerprints."
    )
    subparsers = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")
    for name, help_text in COMMANDS.items():
        subparser = subparsers.add_parser(name, help=help_text, description=help_text)
        add_common_arguments(subparser)
        if name in ("upload", "upload-verify", "verify"):
            add_root_argument(subparser)
        if name in ("upload", "upload-verify"):
            add_transfer_arguments(subparser)
        if name == "list":
            subparser.add_argument("--prefix", help="Only list keys starting with PREFIX.")
    return parser


def _validate_args(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    if getattr(args, "concurrency", None) is not None and args.concurrency <= 0:
        parser.error("--concurrency must be positive.")
    if getattr(args, "retry_limit", None) is not None and args.retry_limit < 0:
        parser.error("--retry-limit must not be negative.")


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse and validate command-line arguments."""
    parser = build_parser()
    args = parser.parse_args(argv)
    _validate_args(args, parser)
    return args
