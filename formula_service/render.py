"""Expand formula placeholders into math-delimited text."""

from __future__ import annotations

import re
from typing import Iterable, Iterator, NamedTuple

from formula_service.models import ParsedFormula, RenderMode

_PLACEHOLDER_HEAD = re.compile(r"\[MATH:(formula_\d+):")
_HEAD_PREFIX = "[MATH:"


class Placeholder(NamedTuple):
    id: str
    canonical: str
    start: int
    end: int


def iter_placeholders(text: str) -> Iterator[Placeholder]:
    """Yield placeholder tokens in ``text`` from left to right.

    The canonical part may itself contain balanced brackets (e.g.
    ``\\sqrt[3]{x}``), so the closing bracket is found by depth counting.
    Canonical forms never contain another head, so a head that reaches the
    next ``[MATH:`` (or the end of text) before closing is not a placeholder.
    """
    pos = 0
    while True:
        head = _PLACEHOLDER_HEAD.search(text, pos)
        if head is None:
            return
        depth = 0
        close = -1
        for index in range(head.end(), len(text)):
            char = text[index]
            if char == "[":
                if text.startswith(_HEAD_PREFIX, index):
                    break
                depth += 1
            elif char == "]":
                if depth == 0:
                    close = index
                    break
                depth -= 1
        if close < 0:
            pos = head.end()
            continue
        yield Placeholder(head.group(1), text[head.end():close], head.start(), close + 1)
        pos = close + 1


def delimit(formula: ParsedFormula, mode: RenderMode | str) -> str:
    """Wrap a formula's canonical form in math delimiters for ``mode``."""
    mode = RenderMode(mode)
    if mode is RenderMode.MARKDOWN and formula.type.is_display:
        return f"$${formula.canonical}$$"
    return f"${formula.canonical}$"


def render(
    processed_text: str,
    formulas: Iterable[ParsedFormula],
    mode: RenderMode | str = RenderMode.PLAIN,
) -> str:
    """Replace every placeholder with its delimited canonical form.

    A placeholder is replaced only when a record has both its id and its
    canonical text; anything else is left as it is.
    """
    mode = RenderMode(mode)
    records = {formula.id: formula for formula in formulas}
    out: list[str] = []
    pos = 0
    for token in iter_placeholders(processed_text):
        formula = records.get(token.id)
        if formula is None or formula.canonical != token.canonical:
            continue
        out.append(processed_text[pos:token.start])
        out.append(delimit(formula, mode))
        pos = token.end
    out.append(processed_text[pos:])
    return "".join(out)
