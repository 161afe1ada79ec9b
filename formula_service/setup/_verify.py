"""Setup step: verify the running service (health, rules, extract smoke test)."""

from __future__ import annotations

import json
import urllib.error
import urllib.request

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from formula_service.setup._config import get_service_url

# Corrupted exponents: three formulas tagged corrupted_extraction
_EXTRACT_SMOKE = {
    "text": "x2 + y2 = z2",
    "mode": "markdown",
    "expected_formulas": 3,
}


class VerifyStep:
    """Check the running formula service and its extraction endpoint."""

    name = "Service verification"
    description = "health check + extraction smoke test"

    def check(self) -> bool:
        """Return True if /health returns status ok."""
        return self._health_ok()

    def install(self, console: Console) -> bool:
        """Hit /health and /rules, then smoke-test /extract."""
        service_url = get_service_url()
        console.print(f"  Checking {service_url}/health ...")
        health = self._get_json("/health")
        if health is None:
            console.print(
                f"  [red]Cannot reach {service_url}[/]. Is the service running?"
            )
            console.print()
            console.print("  Start it with:")
            console.print("    python -m formula_service.main")
            return False

        status = health.get("status", "unknown")
        uptime = health.get("uptime_seconds", "?")
        console.print(f"  Health: [green]{status}[/]  Uptime: {uptime}s")

        rules_data = self._get_json("/rules")
        if rules_data is None:
            console.print("  [yellow]Could not fetch /rules[/]")
        else:
            table = Table(title="Recognizer rules", show_lines=False)
            table.add_column("#", justify="right", style="dim")
            table.add_column("Rule", style="bold")
            table.add_column("Kind")
            table.add_column("Description")
            for index, rule in enumerate(rules_data.get("rules", []), 1):
                kind = rule.get("kind", "?")
                table.add_row(
                    str(index),
                    rule.get("name", "?"),
                    "[yellow]corrupted[/]" if kind == "corrupted" else kind,
                    escape(rule.get("description", "")),
                )
            console.print(table)

        return self._smoke_test_extract(console)

    def verify(self) -> bool:
        """Verify health endpoint returns ok."""
        return self._health_ok()

    @staticmethod
    def _smoke_test_extract(console: Console) -> bool:
        """POST the corrupted-exponent sample and check the formula count."""
        console.print()
        console.print(f"  Smoke-testing /extract with {_EXTRACT_SMOKE['text']!r}...")
        try:
            payload = json.dumps({
                "text": _EXTRACT_SMOKE["text"],
                "mode": _EXTRACT_SMOKE["mode"],
            }).encode()
            req = urllib.request.Request(
                f"{get_service_url()}/extract",
                data=payload,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                method="POST",
            )
            with urllib.request.urlopen(req, timeout=10) as resp:
                data = json.loads(resp.read().decode())
        except Exception as exc:
            console.print(f"  [yellow]Extract smoke test failed:[/] {exc}")
            return False

        formulas = data.get("formulas", [])
        rendered = data.get("rendered", "")
        if len(formulas) == _EXTRACT_SMOKE["expected_formulas"]:
            console.print(
                f"    [green]extract OK[/] {len(formulas)} formulas → {escape(rendered)}"
            )
            return True
        console.print(
            f"    [yellow]extract: expected {_EXTRACT_SMOKE['expected_formulas']} "
            f"formulas, got {len(formulas)}[/]"
        )
        return False

    @staticmethod
    def _health_ok() -> bool:
        """Quick check on /health."""
        data = VerifyStep._get_json("/health")
        return data is not None and data.get("status") == "ok"

    @staticmethod
    def _get_json(path: str) -> dict | None:
        """GET a JSON endpoint, return parsed dict or None."""
        try:
            req = urllib.request.Request(
                f"{get_service_url()}{path}",
                headers={"Accept": "application/json"},
            )
            with urllib.request.urlopen(req, timeout=5) as resp:
                return json.loads(resp.read().decode())
        except (urllib.error.URLError, OSError, json.JSONDecodeError):
            return None
