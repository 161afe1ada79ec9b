"""Formula service setup wizard: CLI entry point.

Usage:
    formula-setup            # Run all setup steps
    formula-setup configure  # Re-configure port, log level and input limit
    formula-setup verify     # Verify running service health + extraction
"""

from __future__ import annotations

import sys

from rich.console import Console

from formula_service.setup._runner import run_steps
from formula_service.setup._service import ServiceStep
from formula_service.setup._verify import VerifyStep

BANNER = r"""
  ___                   _
 | __|__ _ _ _ __ _  _| |__ _
 | _/ _ \ '_| '  \ || | / _` |
 |_|\___/_| |_|_|_\_,_|_\__,_|
               Setup Wizard
"""


def _all_steps() -> list:
    """Return the full ordered list of setup steps."""
    return [ServiceStep(), VerifyStep()]


SUBCOMMANDS = {
    "configure": (lambda: [ServiceStep()], "Re-configure service settings"),
    "verify": (lambda: [VerifyStep()], "Verify running service health + extraction"),
}


def main(args: list[str] | None = None) -> None:
    """CLI entry point for the setup wizard."""
    console = Console()
    console.print(BANNER, style="bold cyan")

    argv = args if args is not None else sys.argv[1:]

    if len(argv) > 1 or (len(argv) == 1 and argv[0] in ("-h", "--help")):
        console.print("Usage: formula-setup [SUBCOMMAND]")
        console.print()
        console.print("Subcommands:")
        console.print("  (none)     Run all setup steps")
        for name, (_, desc) in SUBCOMMANDS.items():
            console.print(f"  {name:<10} {desc}")
        return

    if len(argv) == 1:
        subcmd = argv[0]
        if subcmd not in SUBCOMMANDS:
            console.print(
                f"[red]Unknown subcommand: {subcmd}[/]  "
                f"(available: {', '.join(SUBCOMMANDS)})"
            )
            sys.exit(1)
        factory, description = SUBCOMMANDS[subcmd]
        console.print(f"[bold]{description}[/]")
        console.print()
        success = run_steps(factory(), console, force=True)
    else:
        console.print("[dim]Press Enter to accept defaults.[/]")
        console.print()
        success = run_steps(_all_steps(), console)
    if not success:
        sys.exit(1)
    console.print("[bold green]Setup complete.[/]")


if __name__ == "__main__":
    main()
