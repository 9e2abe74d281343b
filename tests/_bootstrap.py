"""Test helper that normalizes sys.path and environment defaults."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


_DEFAULT_ENV_VARS: dict[str, str] = {
    "EWELINK_APP_ID": "test-app-id",
    "EWELINK_APP_SECRET": "test-app-secret",
    "EWELINK_REGION": "us",
    "SESSION_SECRET": "test-session-secret",
    "GATEWAY_DB_PATH": str(Path(tempfile.mkdtemp()) / "gateway.db"),
}

for key, value in _DEFAULT_ENV_VARS.items():
    os.environ.setdefault(key, value)
