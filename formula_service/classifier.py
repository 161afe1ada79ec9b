"""Variable and display-type classification for detected formulas."""

from __future__ import annotations

import re
from dataclasses import dataclass

from formula_service.models import FormulaType

# Differentials, Euler's number, imaginary unit and index letters
STOPLIST = frozenset({"d", "e", "i", "j"})

_VARIABLE_RE = re.compile(r"\b[a-zA-Z]\b")

# Markers that promote a formula to display style (unicode and LaTeX forms)
_BLOCK_MARKERS = ("∫", "Σ", "∑", r"\int", r"\sum", "lim")


@dataclass(frozen=True)
class Classification:
    type: FormulaType
    variables: tuple[str, ...]


def determine_type(expression: str) -> FormulaType:
    """Equation beats block beats inline."""
    if "=" in expression:
        return FormulaType.EQUATION
    if any(marker in expression for marker in _BLOCK_MARKERS):
        return FormulaType.BLOCK
    return FormulaType.INLINE


def extract_variables(expression: str) -> tuple[str, ...]:
    """Return single-letter variables in first-occurrence order."""
    seen: dict[str, None] = {}
    for match in _VARIABLE_RE.finditer(expression):
        name = match.group(0)
        if name.lower() in STOPLIST:
            continue
        seen.setdefault(name, None)
    return tuple(seen)


def classify(expression: str) -> Classification:
    return Classification(
        type=determine_type(expression),
        variables=extract_variables(expression),
    )
