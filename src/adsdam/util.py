# util.py
from __future__ import annotations

import os
from datetime import datetime, timezone


# ============================================================
# Logging
# ============================================================
def log(msg: str) -> None:
    ts = datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", flush=True)


# ============================================================
# Helpers
# ============================================================
def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def ensure_dir_for_file(path: str) -> None:
    d = os.path.dirname(os.path.abspath(path))
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)
