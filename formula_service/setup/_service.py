"""Setup step: service settings (.env) and how to run the service."""

from __future__ import annotations

import questionary
from rich.console import Console

from formula_service.setup._config import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_INPUT_CHARS,
    DEFAULT_PORT,
    LOG_LEVELS,
    env_path,
    get_key,
    get_log_level,
    get_max_input_chars,
    get_port,
    write_key,
)

_REQUIRED_KEYS = ("FORMULA_PORT", "FORMULA_LOG_LEVEL", "FORMULA_MAX_INPUT_CHARS")


def _valid_port(value: str) -> bool | str:
    if value.isdigit() and 1 <= int(value) <= 65535:
        return True
    return "Enter a port between 1 and 65535"


def _valid_limit(value: str) -> bool | str:
    if value.isdigit() and int(value) > 0:
        return True
    return "Enter a positive number of characters"


class ServiceStep:
    """Write port, log level and input limit to the project .env."""

    name = "Service settings"
    description = "port, log level, input size limit"

    def check(self) -> bool:
        """Return True if every service key is already set."""
        return all(get_key(key) for key in _REQUIRED_KEYS)

    def install(self, console: Console) -> bool:
        """Prompt for each setting and persist the answers."""
        port = questionary.text(
            "HTTP port:",
            default=str(get_port(DEFAULT_PORT)),
            validate=_valid_port,
        ).ask()
        if port is None:
            console.print("  [yellow]Selection cancelled.[/]")
            return False

        level = questionary.select(
            "Log level:",
            choices=list(LOG_LEVELS),
            default=get_log_level(DEFAULT_LOG_LEVEL),
        ).ask()
        if level is None:
            console.print("  [yellow]Selection cancelled.[/]")
            return False

        limit = questionary.text(
            "Largest accepted input (characters):",
            default=str(get_max_input_chars(DEFAULT_MAX_INPUT_CHARS)),
            validate=_valid_limit,
        ).ask()
        if limit is None:
            console.print("  [yellow]Selection cancelled.[/]")
            return False

        try:
            write_key("FORMULA_PORT", port.strip())
            write_key("FORMULA_LOG_LEVEL", level)
            write_key("FORMULA_MAX_INPUT_CHARS", limit.strip())
        except OSError as exc:
            console.print(f"  [red]Cannot write {env_path()}: {exc}[/]")
            return False

        console.print(f"  [green]Saved service settings to {env_path()}[/]")
        console.print("  Start the service with:")
        console.print("    python -m formula_service.main")
        console.print("  Or, once installed:")
        console.print("    formula-service")
        return True

    def verify(self) -> bool:
        """Verify the settings resolve to the values written."""
        return self.check() and str(get_port()) == get_key("FORMULA_PORT")
