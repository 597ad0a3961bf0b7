#!/usr/bin/env python3
"""CLI tool to upload a directory tree to S3 and verify the uploaded objects."""

from __future__ import annotations

import sys
from pathlib import Path

from upload_verify.cli import main

# Ensure the repository root is importable even when this script is run via an absolute path.
REPO_ROOT = Path(__file__).resolve().parent
if str(REPO_ROOT) not in sys.path:  # pragma: no cover - import context dependent
    sys.path.insert(0, str(REPO_ROOT))

if __name__ == "__main__":  # pragma: no cover - script entry point
    try:
        sys.exit(main())
    except KeyboardInterrupt as exc:
        raise SystemExit("\nAborted by user.") from exc
