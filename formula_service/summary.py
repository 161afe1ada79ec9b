"""Formula statistics and the note injected into LLM analysis prompts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from formula_service.models import FormulaType, ParsedFormula

_COMMON_ERRORS = (
    "- x2 should be x²",
    "- # or $ often represent division or special operators",
    "- Corrupted integrals and limits",
)


@dataclass
class FormulaSummary:
    total: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    corrupted: int = 0
    variables: list[str] = field(default_factory=list)

    @property
    def needs_review(self) -> bool:
        return self.corrupted > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "by_type": dict(self.by_type),
            "corrupted": self.corrupted,
            "variables": list(self.variables),
            "needs_review": self.needs_review,
        }


def summarize(formulas: Iterable[ParsedFormula]) -> FormulaSummary:
    summary = FormulaSummary(by_type={t.value: 0 for t in FormulaType})
    seen: dict[str, None] = {}
    for formula in formulas:
        summary.total += 1
        summary.by_type[formula.type.value] += 1
        if formula.is_corrupted:
            summary.corrupted += 1
        for name in formula.variables:
            seen.setdefault(name, None)
    summary.variables = list(seen)
    return summary


def prompt_context(formulas: Iterable[ParsedFormula]) -> str:
    """Build the formula note appended to analysis prompts.

    Returns an empty string when no formulas were detected.
    """
    summary = summarize(formulas)
    if not summary.total:
        return ""
    lines = [
        "",
        "",
        f"Note: The document contains {summary.total} mathematical formulas "
        "that were extracted. Common parsing errors include:",
        *_COMMON_ERRORS,
    ]
    if summary.needs_review:
        lines.append(
            f"{summary.corrupted} of them were recovered from corrupted text "
            "and may need review."
        )
    lines.append(
        "Please interpret mathematical content intelligently based on context."
    )
    return "\n".join(lines)
