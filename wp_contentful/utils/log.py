"""
Console and file logging for migration runs.

Every message is printed as ``[LEVEL] message`` and appended to
``reports/migration/migration.log`` so that long runs can be reviewed
after the terminal scrolled away.
"""

from __future__ import annotations

import os
from datetime import datetime

_LOG_DIR = os.path.join("reports", "migration")
_LOG_FILE = os.path.join(_LOG_DIR, "migration.log")


def log_message(message: str, level: str = "INFO") -> None:
    print(f"[{level}] {message}")
    os.makedirs(_LOG_DIR, exist_ok=True)
    with open(_LOG_FILE, "a", encoding="utf-8") as f:
        f.write(f"{datetime.now().isoformat(timespec='seconds')} {level}: {message}\n")
