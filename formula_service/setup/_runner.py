"""Step runner for the setup wizard: check, install, verify."""

from __future__ import annotations

import logging
from typing import Protocol

import questionary
from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)

_STATUS_LABELS = {
    "ok": "[green]OK[/]",
    "skipped": "[yellow]Skipped[/]",
    "failed": "[red]Failed[/]",
    "warn": "[yellow]Warning[/]",
    "abort": "[red]Aborted[/]",
}


class SetupStep(Protocol):
    name: str
    description: str

    def check(self) -> bool: ...
    def install(self, console: Console) -> bool: ...
    def verify(self) -> bool: ...


def _safe_check(step: SetupStep) -> bool:
    try:
        return step.check()
    except Exception:
        logger.debug("check failed for %s", step.name, exc_info=True)
        return False


def run_step(step: SetupStep, console: Console, force: bool = False) -> str:
    """Run one step and return its status string.

    With ``force`` the check and the confirmation prompt are skipped.
    """
    if not force:
        with console.status(f"[bold cyan]Checking {step.name}...[/]"):
            already = _safe_check(step)
        if already:
            console.print(f"  [green]ok[/] {step.name}: already configured")
            return "ok"
        confirm = questionary.confirm(f"Configure {step.name}?", default=True).ask()
        if confirm is None:
            console.print("[bold red]Setup cancelled.[/]")
            return "abort"
        if not confirm:
            console.print(f"  [yellow]skip[/] {step.name}: skipped")
            return "skipped"

    if not step.install(console):
        action = questionary.select(
            f"{step.name} failed. What to do?",
            choices=["Retry", "Skip and continue", "Abort"],
        ).ask()
        if action is None or action == "Abort":
            console.print("[bold red]Setup aborted.[/]")
            return "abort"
        if action != "Retry":
            return "skipped"
        if not step.install(console):
            console.print(f"  [red]fail[/] {step.name}: retry failed")
            return "failed"

    if step.verify():
        console.print(f"  [green]ok[/] {step.name}: verified")
        return "ok"
    console.print(f"  [yellow]warn[/] {step.name}: configured but verify failed")
    return "warn"


def run_steps(
    steps: list[SetupStep], console: Console, force: bool = False,
) -> bool:
    """Run steps in order; stop on abort. Returns False if any step failed."""
    results: list[tuple[str, str]] = []
    for step in steps:
        status = run_step(step, console, force=force)
        results.append((step.name, status))
        if status == "abort":
            break
    console.print()
    _print_summary(results, console)
    return all(status not in ("failed", "abort") for _, status in results)


def _print_summary(results: list[tuple[str, str]], console: Console) -> None:
    """Print a summary table of all setup results."""
    table = Table(title="Setup Summary", show_lines=False)
    table.add_column("Step", style="bold")
    table.add_column("Status")
    for name, status in results:
        table.add_row(name, _STATUS_LABELS.get(status, status))
    console.print(table)
