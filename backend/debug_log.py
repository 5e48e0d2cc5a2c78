from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any

DEBUG_LOG_ENV = "ASSISTANT_DEBUG_LOG"


def _debug_log_path() -> Path | None:
    raw = os.getenv(DEBUG_LOG_ENV, "").strip()
    return Path(raw) if raw else None


def debug_log(
    *,
    location: str,
    message: str,
    data: dict[str, Any],
    path: Path | None = None,
) -> None:
    """Append one JSON line to the diagnostic trace, if one is configured."""
    target = path or _debug_log_path()
    if target is None:
        return
    try:
        payload = {
            "id": f"log_{time.time_ns()}",
            "timestamp": int(time.time() * 1000),
            "location": location,
            "message": message,
            "data": data,
        }
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "a", encoding="utf-8") as debug_file:
            debug_file.write(json.dumps(payload, ensure_ascii=True, default=str) + "\n")
    except OSError:
        pass
