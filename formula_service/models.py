"""Data model shared by the extractor, renderer and service layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

CORRUPTED_EXTRACTION = "corrupted_extraction"


class FormulaType(str, Enum):
    """How a formula should be displayed."""

    INLINE = "inline"
    BLOCK = "block"
    EQUATION = "equation"

    @property
    def is_display(self) -> bool:
        return self is not FormulaType.INLINE


class RenderMode(str, Enum):
    """Placeholder expansion modes."""

    PLAIN = "plain"
    MARKDOWN = "markdown"


@dataclass(frozen=True)
class ParsedFormula:
    """A single formula detected in extracted text."""

    id: str
    original: str
    canonical: str
    type: FormulaType = FormulaType.INLINE
    variables: tuple[str, ...] = ()
    context: str | None = None

    @property
    def placeholder(self) -> str:
        return f"[MATH:{self.id}:{self.canonical}]"

    @property
    def is_corrupted(self) -> bool:
        return self.context == CORRUPTED_EXTRACTION

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "original": self.original,
            "canonical": self.canonical,
            "type": self.type.value,
            "variables": list(self.variables),
        }
        if self.context is not None:
            data["context"] = self.context
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParsedFormula:
        """Build a record from its JSON form.

        Raises ValueError/KeyError on missing fields or an unknown type.
        """
        return cls(
            id=str(data["id"]),
            original=str(data.get("original", "")),
            canonical=str(data["canonical"]),
            type=FormulaType(data.get("type", FormulaType.INLINE.value)),
            variables=tuple(str(v) for v in data.get("variables", ())),
            context=data.get("context"),
        )


@dataclass
class ExtractionResult:
    """Output of one extraction run: placeholder text plus its records."""

    processed_text: str
    formulas: list[ParsedFormula] = field(default_factory=list)

    def __iter__(self) -> Iterator[Any]:
        # Allows ``processed, formulas = extract(text)``
        yield self.processed_text
        yield self.formulas

    @property
    def ids(self) -> list[str]:
        return [f.id for f in self.formulas]

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed_text": self.processed_text,
            "formulas": [f.to_dict() for f in self.formulas],
        }
