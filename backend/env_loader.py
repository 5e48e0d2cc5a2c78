from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_ENV_LOADED = False

DEFAULT_POLL_INTERVAL_MS = 500
DEFAULT_MAX_TOOL_ROUNDS = 16


def _parse_env_line(line: str) -> tuple[str, str] | None:
    stripped = line.strip()
    if stripped.startswith("export "):
        stripped = stripped[len("export ") :].lstrip()
    if not stripped or stripped.startswith("#") or "=" not in stripped:
        return None

    key, raw_value = stripped.split("=", 1)
    key = key.strip()
    value = raw_value.strip()
    if not key:
        return None

    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        value = value[1:-1]
    return key, value


def _load_env_file(path: Path) -> None:
    if not path.is_file():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        parsed = _parse_env_line(line)
        if parsed is None:
            continue
        key, value = parsed
        os.environ.setdefault(key, value)


def load_env_once() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return

    backend_dir = Path(__file__).resolve().parent
    _load_env_file(backend_dir.parent / ".env")
    _load_env_file(backend_dir / ".env")
    _ENV_LOADED = True


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool_from_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class AppSettings:
    openai_api_key: str | None
    openai_assistant_id: str | None
    openweather_api_key: str | None
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS
    tool_placeholder_errors: bool = False


def load_settings() -> AppSettings:
    load_env_once()
    return AppSettings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_assistant_id=os.getenv("OPENAI_ASSISTANT_ID") or None,
        openweather_api_key=os.getenv("OPENWEATHER_API_KEY") or None,
        poll_interval_ms=max(
            50, _int_from_env("ASSISTANT_POLL_INTERVAL_MS", DEFAULT_POLL_INTERVAL_MS)
        ),
        max_tool_rounds=max(
            1, _int_from_env("ASSISTANT_MAX_TOOL_ROUNDS", DEFAULT_MAX_TOOL_ROUNDS)
        ),
        tool_placeholder_errors=_bool_from_env("ASSISTANT_TOOL_PLACEHOLDER_ERRORS"),
    )
