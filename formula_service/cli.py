"""Formula extraction CLI.

Usage:
    formula-extract [--plain|--markdown] [--json] [FILE]

Reads FILE (or stdin when FILE is omitted or '-'), prints a table of the
detected formulas and the rendered text.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from formula_service.extractor import extract
from formula_service.models import ExtractionResult, RenderMode
from formula_service.render import render
from formula_service.summary import summarize

USAGE = "Usage: formula-extract [--plain|--markdown] [--json] [FILE]"


def _read_input(path: str | None) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _formula_table(result: ExtractionResult) -> Table:
    table = Table(title="Detected formulas", show_lines=False)
    table.add_column("ID", style="dim")
    table.add_column("Type")
    table.add_column("Original")
    table.add_column("Canonical", style="bold")
    table.add_column("Variables")
    table.add_column("Context")

    type_style = {
        "inline": "[cyan]inline[/]",
        "block": "[magenta]block[/]",
        "equation": "[green]equation[/]",
    }
    for formula in result.formulas:
        table.add_row(
            formula.id,
            type_style.get(formula.type.value, formula.type.value),
            escape(formula.original),
            escape(formula.canonical),
            ", ".join(formula.variables) or "-",
            f"[yellow]{formula.context}[/]" if formula.context else "-",
        )
    return table


def main(args: list[str] | None = None) -> None:
    """CLI entry point for formula extraction."""
    console = Console()
    argv = args if args is not None else sys.argv[1:]

    mode = RenderMode.MARKDOWN
    as_json = False
    path: str | None = None
    for arg in argv:
        if arg in ("-h", "--help"):
            console.print(USAGE)
            return
        if arg == "--plain":
            mode = RenderMode.PLAIN
        elif arg == "--markdown":
            mode = RenderMode.MARKDOWN
        elif arg == "--json":
            as_json = True
        elif arg.startswith("--") or path is not None:
            console.print(f"[red]Unexpected argument: {escape(arg)}[/]")
            console.print(USAGE)
            sys.exit(1)
        else:
            path = arg

    try:
        text = _read_input(path)
    except OSError as exc:
        console.print(f"[red]Cannot read {escape(str(path))}: {escape(str(exc))}[/]")
        sys.exit(1)

    result = extract(text)
    rendered = render(result.processed_text, result.formulas, mode)
    summary = summarize(result.formulas)

    if as_json:
        payload = {
            **result.to_dict(),
            "rendered": rendered,
            "summary": summary.to_dict(),
        }
        sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")
        return

    if result.formulas:
        console.print(_formula_table(result))
    else:
        console.print("[dim]No formulas detected.[/]")
    if summary.needs_review:
        console.print(
            f"[yellow]{summary.corrupted} formula(s) recovered from corrupted "
            "text; review recommended.[/]"
        )
    console.print()
    console.print(rendered, markup=False, highlight=False, soft_wrap=True)


if __name__ == "__main__":
    main()
