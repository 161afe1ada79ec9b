"""Formula extraction over raw PDF text.

Runs every rule of the pattern library, in order, over the current state of
the text. Each accepted match is claimed: it becomes a ``ParsedFormula``
record and its span is masked so later rules cannot see or cross it. The
final text carries ``[MATH:<id>:<canonical>]`` placeholders in place of the
claimed spans.

Placeholder tokens already present in the input (for example re-extracting
joined page results) are masked before any rule runs and come back
verbatim; new ids are numbered past the highest id among them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from formula_service.classifier import classify
from formula_service.models import ExtractionResult, ParsedFormula
from formula_service.patterns import DEFAULT_RULES, Rule
from formula_service.render import iter_placeholders

logger = logging.getLogger(__name__)

# Private-use areas: the BMP block first, then supplementary planes 15 and 16.
# The first code point absent from the input stands in for every claimed
# span while rules are scanning.
_MASK_RANGES = ((0xE000, 0xF8FF), (0xF0000, 0xFFFFD), (0x100000, 0x10FFFD))


def _pick_mask(text: str) -> str:
    used = set(text)
    for low, high in _MASK_RANGES:
        for code in range(low, high + 1):
            char = chr(code)
            if char not in used:
                return char
    raise ValueError("input uses every private-use code point")


def _protect_placeholders(text: str, mask: str) -> tuple[str, list[str], int]:
    """Mask placeholder tokens already in ``text``.

    Returns the masked view, the raw tokens in order and the first id
    number not taken by any of them.
    """
    pieces: list[str] = []
    tokens: list[str] = []
    pos = 0
    next_number = 0
    for token in iter_placeholders(text):
        pieces.append(text[pos:token.start])
        pieces.append(mask)
        tokens.append(text[token.start:token.end])
        pos = token.end
        next_number = max(next_number, int(token.id.rpartition("_")[2]) + 1)
    pieces.append(text[pos:])
    return "".join(pieces), tokens, next_number


@dataclass
class _ExtractionContext:
    """Per-call state: id counter, masked view and the text behind each mask."""

    mask: str
    view: str
    claims: list[str] = field(default_factory=list)
    counter: int = 0

    def next_id(self) -> str:
        formula_id = f"formula_{self.counter}"
        self.counter += 1
        return formula_id


class FormulaExtractor:
    """Apply an ordered rule set to text and collect formula records."""

    def __init__(self, rules: Iterable[Rule] = DEFAULT_RULES) -> None:
        self.rules: tuple[Rule, ...] = tuple(rules)

    def extract(self, text: str) -> ExtractionResult:
        if not isinstance(text, str):
            raise TypeError(f"text must be str, not {type(text).__name__}")
        if not text:
            return ExtractionResult(processed_text="", formulas=[])

        mask = _pick_mask(text)
        view, existing, first_free = _protect_placeholders(text, mask)
        if existing:
            logger.debug("kept %d existing placeholder(s)", len(existing))
        ctx = _ExtractionContext(
            mask=mask, view=view, claims=existing, counter=first_free,
        )
        formulas: list[ParsedFormula] = []
        for rule in self.rules:
            before = len(formulas)
            self._apply(rule, ctx, formulas)
            hits = len(formulas) - before
            if hits:
                logger.debug("rule %s matched %d span(s)", rule.name, hits)

        pieces = ctx.view.split(mask)
        out = [pieces[0]]
        for claim, piece in zip(ctx.claims, pieces[1:]):
            out.append(claim)
            out.append(piece)
        return ExtractionResult(processed_text="".join(out), formulas=formulas)

    def _apply(
        self, rule: Rule, ctx: _ExtractionContext, formulas: list[ParsedFormula],
    ) -> None:
        """Run one rule over the masked view, claiming accepted matches."""
        view, mask = ctx.view, ctx.mask
        pieces: list[str] = []
        claims: list[str] = []
        pending = iter(ctx.claims)
        pos = 0

        for match in _scan(rule, view, mask):
            canonical = rule.canonicalize(match)
            if not canonical:
                continue
            before = view[pos:match.start()]
            pieces.append(before)
            claims.extend(next(pending) for _ in range(before.count(mask)))

            classification = classify(canonical)
            formula = ParsedFormula(
                id=ctx.next_id(),
                original=match.group(0),
                canonical=canonical,
                type=classification.type,
                variables=classification.variables,
                context=rule.context,
            )
            formulas.append(formula)
            claims.append(formula.placeholder)
            pieces.append(mask)
            pos = match.end()

        pieces.append(view[pos:])
        claims.extend(pending)
        ctx.view = "".join(pieces)
        ctx.claims = claims


def _scan(rule: Rule, view: str, mask: str) -> Iterator[re.Match[str]]:
    """Yield non-overlapping matches that do not touch a claimed span."""
    pos = 0
    length = len(view)
    while pos <= length:
        match = rule.pattern.search(view, pos)
        if match is None:
            return
        start, end = match.span()
        if start == end:
            pos = end + 1
            continue
        if mask in match.group(0):
            # Crosses a claimed span; retry one character later.
            pos = start + 1
            continue
        yield match
        pos = end


_default_extractor = FormulaExtractor()


def extract(text: str) -> ExtractionResult:
    """Extract formulas from ``text`` with the default rule set."""
    return _default_extractor.extract(text)


def extract_pages(pages: Iterable[str]) -> list[ExtractionResult]:
    """Run an independent extraction for each page, in page order."""
    results = []
    for number, page in enumerate(pages, 1):
        result = _default_extractor.extract(page)
        logger.debug("page %d: %d formula(s)", number, len(result.formulas))
        results.append(result)
    return results
