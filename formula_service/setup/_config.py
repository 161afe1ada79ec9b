"""Project-level .env config file reader/writer for service settings."""

from __future__ import annotations

import os
import re
from pathlib import Path

# Project root .env (next to pyproject.toml)
_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"
_LINE_RE = re.compile(r"^([A-Z_][A-Z0-9_]*)=(.*)$")

DEFAULT_PORT = 8770
DEFAULT_HOST = "localhost"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_INPUT_CHARS = 500_000
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def env_path() -> Path:
    """Return the .env file path."""
    return _ENV_FILE


def _env_lines() -> list[str]:
    if not _ENV_FILE.exists():
        return []
    return _ENV_FILE.read_text().splitlines()


def read_config() -> dict[str, str]:
    """Read all upper-case KEY=value assignments; comments are ignored."""
    config: dict[str, str] = {}
    for line in _env_lines():
        match = _LINE_RE.match(line.strip())
        if match:
            config[match.group(1)] = match.group(2).strip("\"'")
    return config


def write_key(key: str, value: str) -> None:
    """Set ``key`` in the .env file, keeping every other line as it was."""
    lines = _env_lines()
    entry = f"{key}={value}"
    for index, line in enumerate(lines):
        match = _LINE_RE.match(line.strip())
        if match and match.group(1) == key:
            lines[index] = entry
            break
    else:
        lines.append(entry)
    _ENV_FILE.write_text("\n".join(lines) + "\n")


def get_key(key: str) -> str | None:
    """Look up ``key`` in .env first, then the process environment."""
    config = read_config()
    if key in config:
        return config[key]
    return os.environ.get(key) or None


def _get_int(key: str, default: int, low: int, high: int | None = None) -> int:
    raw = get_key(key)
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    if value < low or (high is not None and value > high):
        return default
    return value


def get_port(default: int = DEFAULT_PORT) -> int:
    """FORMULA_PORT, falling back to ``default`` outside 1..65535."""
    return _get_int("FORMULA_PORT", default, 1, 65535)


def get_max_input_chars(default: int = DEFAULT_MAX_INPUT_CHARS) -> int:
    """FORMULA_MAX_INPUT_CHARS; non-positive values fall back."""
    return _get_int("FORMULA_MAX_INPUT_CHARS", default, 1)


def get_log_level(default: str = DEFAULT_LOG_LEVEL) -> str:
    raw = (get_key("FORMULA_LOG_LEVEL") or "").upper()
    return raw if raw in LOG_LEVELS else default


def get_service_url(host: str = DEFAULT_HOST) -> str:
    """Base URL of the local formula service."""
    return f"http://{host}:{get_port()}"
