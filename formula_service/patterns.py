"""Recognizer rules for mathematical notation in extracted PDF text.

Each rule pairs a compiled matcher with a canonicalizer that turns a match
into LaTeX-flavored markup. Rules are grouped in two ordered passes:

1. primary rules for reasonably well-formed notation (fractions,
   exponents, roots, logs, integrals, sums, limits, Greek letters,
   operators, matrices, derivatives);
2. corrupted-extraction rules for known text-layer failure modes
   (digit-glued exponents, stray symbols in place of fraction bars,
   ``log#x``, integrals that lost their sign).

A canonicalizer returns ``None`` when it cannot build a confident
structure; the extractor then leaves the span for later rules.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from formula_service.models import CORRUPTED_EXTRACTION

Canonicalizer = Callable[["re.Match[str]"], "str | None"]

# ---------------------------------------------------------------------------
# Symbol tables
# ---------------------------------------------------------------------------

GREEK_LETTERS: dict[str, str] = {
    "α": r"\alpha",   "β": r"\beta",    "γ": r"\gamma",   "δ": r"\delta",
    "ε": r"\epsilon", "ϵ": r"\epsilon", "ζ": r"\zeta",    "η": r"\eta",
    "θ": r"\theta",   "ϑ": r"\vartheta", "ι": r"\iota",   "κ": r"\kappa",
    "λ": r"\lambda",  "μ": r"\mu",      "µ": r"\mu",      "ν": r"\nu",
    "ξ": r"\xi",      "ο": "o",         "π": r"\pi",      "ρ": r"\rho",
    "σ": r"\sigma",   "ς": r"\varsigma", "τ": r"\tau",    "υ": r"\upsilon",
    "φ": r"\phi",     "ϕ": r"\varphi",  "χ": r"\chi",     "ψ": r"\psi",
    "ω": r"\omega",
    "Α": "A",         "Β": "B",         "Γ": r"\Gamma",   "Δ": r"\Delta",
    "Ε": "E",         "Ζ": "Z",         "Η": "H",         "Θ": r"\Theta",
    "Ι": "I",         "Κ": "K",         "Λ": r"\Lambda",  "Μ": "M",
    "Ν": "N",         "Ξ": r"\Xi",      "Ο": "O",         "Π": r"\Pi",
    "Ρ": "P",         "Σ": r"\Sigma",   "Τ": "T",         "Υ": r"\Upsilon",
    "Φ": r"\Phi",     "Χ": "X",         "Ψ": r"\Psi",     "Ω": r"\Omega",
}

OPERATORS: dict[str, str] = {
    "±": r"\pm",      "∓": r"\mp",      "×": r"\times",   "÷": r"\div",
    "≠": r"\neq",     "≈": r"\approx",  "≡": r"\equiv",   "≤": r"\leq",
    "≥": r"\geq",     "⊂": r"\subset",  "⊃": r"\supset",  "⊆": r"\subseteq",
    "⊇": r"\supseteq", "∈": r"\in",     "∉": r"\notin",   "∪": r"\cup",
    "∩": r"\cap",     "∞": r"\infty",   "∀": r"\forall",  "∃": r"\exists",
    "∅": r"\emptyset", "∇": r"\nabla",  "⇒": r"\Rightarrow",
    "⇔": r"\Leftrightarrow",
}

SUPERSCRIPTS: dict[str, str] = {
    "⁰": "0", "¹": "1", "²": "2", "³": "3", "⁴": "4",
    "⁵": "5", "⁶": "6", "⁷": "7", "⁸": "8", "⁹": "9",
    "⁺": "+", "⁻": "-", "ⁿ": "n",
}

# Inside a captured fragment a capital sigma almost always means summation
_FRAGMENT_SYMBOLS = {**GREEK_LETTERS, "Σ": r"\sum", **OPERATORS}
_FRAGMENT_RE = re.compile("[" + "".join(_FRAGMENT_SYMBOLS) + "]")


# Letters that render as a macro; Latin look-alikes (Α, Ο, ...) stay as text
_GREEK_MACROS = {k: v for k, v in GREEK_LETTERS.items() if v.startswith("\\")}


def latexify(fragment: str) -> str:
    """Replace Greek letters and operator symbols inside a captured fragment."""

    def _swap(match: re.Match[str]) -> str:
        macro = _FRAGMENT_SYMBOLS[match.group(0)]
        following = match.string[match.end():match.end() + 1]
        # \alphax would read as an unknown macro
        if macro.startswith("\\") and following.isalnum():
            return macro + " "
        return macro

    return _FRAGMENT_RE.sub(_swap, fragment.strip())


# ---------------------------------------------------------------------------
# Rule type
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rule:
    """A (matcher, canonicalizer) pair for one class of notation."""

    name: str
    pattern: re.Pattern[str]
    canonicalize: Canonicalizer
    description: str = ""
    corrupted: bool = False

    @property
    def kind(self) -> str:
        return "corrupted" if self.corrupted else "primary"

    @property
    def context(self) -> str | None:
        return CORRUPTED_EXTRACTION if self.corrupted else None


def _first_named(match: re.Match[str], *names: str) -> str | None:
    for name in names:
        value = match.group(name)
        if value is not None:
            return value
    return None


# ---------------------------------------------------------------------------
# Primary canonicalizers
# ---------------------------------------------------------------------------


def _fraction(match: re.Match[str]) -> str:
    num, den = latexify(match.group(1)), latexify(match.group(2))
    return rf"\frac{{{num}}}{{{den}}}"


def _exponent(match: re.Match[str]) -> str | None:
    base = latexify(match.group(1))
    if match.group(5) is not None:
        power = "".join(SUPERSCRIPTS[ch] for ch in match.group(5))
    else:
        power = match.group(2) or match.group(3) or match.group(4) or ""
    power = latexify(power)
    if not power:
        return None
    return f"{base}^{{{power}}}"


def _root(match: re.Match[str]) -> str | None:
    symbol = match.group("sym") or "√"
    body = latexify(_first_named(match, "paren", "atom", "func") or "")
    if not body:
        return None
    index = {"∛": "[3]", "∜": "[4]"}.get(symbol, "")
    return rf"\sqrt{index}{{{body}}}"


def _logarithm(match: re.Match[str]) -> str | None:
    if match.group("base") is not None:
        arg = latexify(match.group("barg"))
        return rf"\log_{{{latexify(match.group('base'))}}}({arg})" if arg else None
    if match.group("larg") is not None:
        arg = latexify(match.group("larg"))
        return rf"\log({arg})" if arg else None
    arg = latexify(match.group("narg") or "")
    return rf"\ln({arg})" if arg else None


def _integral(match: re.Match[str]) -> str | None:
    body = latexify(match.group(1))
    if not body:
        return None
    return rf"\int {body} \, d{latexify(match.group(2))}"


def _summation(match: re.Match[str]) -> str:
    return r"\sum"


def _limit(match: re.Match[str]) -> str:
    var, target = latexify(match.group(1)), latexify(match.group(2))
    return rf"\lim_{{{var} \to {target}}}"


def _symbol(table: dict[str, str]) -> Canonicalizer:
    def _convert(match: re.Match[str]) -> str:
        return table[match.group(0)]

    return _convert


_NUM = r"-?\d+(?:\.\d+)?"
_ROW = rf"\[\s*{_NUM}(?:\s*,\s*{_NUM}|\s+{_NUM})*\s*\]"
_VECTOR = rf"\[\s*{_NUM}(?:\s*,\s*{_NUM}|\s+{_NUM})+\s*\]"
_MATRIX = rf"\[\s*{_ROW}(?:\s*,?\s*{_ROW})*\s*\]"
_ROW_CONTENT_RE = re.compile(r"\[([^\[\]]*)\]")


def _matrix(match: re.Match[str]) -> str | None:
    text = match.group(0)
    inner = text[1:-1]
    contents = _ROW_CONTENT_RE.findall(inner) or [inner]
    rows = [re.split(r"\s*,\s*|\s+", row.strip()) for row in contents]
    width = len(rows[0])
    if any(len(row) != width for row in rows):
        return None
    body = r" \\ ".join(" & ".join(row) for row in rows)
    return rf"\begin{{bmatrix}} {body} \end{{bmatrix}}"


def _derivative(match: re.Match[str]) -> str:
    def _operator(symbol: str, target: str) -> str:
        if symbol == "∂":
            return rf"\partial {latexify(target)}" if target else r"\partial"
        return f"d{latexify(target)}"

    top = _operator(match.group(1), match.group(2))
    bottom = _operator(match.group(3), match.group(4))
    return rf"\frac{{{top}}}{{{bottom}}}"


# ---------------------------------------------------------------------------
# Corrupted-extraction canonicalizers
# ---------------------------------------------------------------------------


def _glued_exponent(match: re.Match[str]) -> str:
    return f"{match.group(1)}^{{{match.group(2)}}}"


def _symbol_fraction(match: re.Match[str]) -> str:
    return rf"\frac{{{match.group(1)}}}{{{match.group(2)}}}"


def _dangling_square(match: re.Match[str]) -> str:
    return f"{match.group(1)}^{{2}}"


def _log_base_two(match: re.Match[str]) -> str:
    return rf"\log_{{2}}({match.group(1)})"


def _textbook_integral(match: re.Match[str]) -> str:
    op = match.group(2)
    if op not in ("=", "+", "-"):
        op = "+"
    return rf"\int {match.group(1)} \, dx {op} K"


_OP_FOLLOW = r"(?=\s|$|[+\-*/=),.;:])"

# ---------------------------------------------------------------------------
# Rule sets
# ---------------------------------------------------------------------------

PRIMARY_RULES: tuple[Rule, ...] = (
    Rule(
        "fraction",
        re.compile(r"\b(\w+)\s*/\s*(\w+)\b"),
        _fraction,
        "a/b -> \\frac{a}{b}",
    ),
    Rule(
        "exponent",
        re.compile(
            r"(?<!\w)(\w+?)(?:\s*\^\s*(?:\{([^{}\[\]]+)\}|\(([^()\[\]]+)\)|(\d+|\w+))"
            r"|([" + "".join(SUPERSCRIPTS) + r"]+))"
        ),
        _exponent,
        "a^b, a^{b}, a² -> a^{b}",
    ),
    Rule(
        "root",
        re.compile(
            r"(?P<sym>[√∛∜])\s*(?:\((?P<paren>[^()\[\]]+)\)|(?P<atom>\w+))"
            r"|(?i:\bsqrt)\s*\((?P<func>[^()\[\]]+)\)"
        ),
        _root,
        "√x, sqrt(x) -> \\sqrt{x}",
    ),
    Rule(
        "logarithm",
        re.compile(
            r"\blog_\{?(?P<base>\w+?)\}?\s*\((?P<barg>[^()\[\]]+)\)"
            r"|\blog\s*\((?P<larg>[^()\[\]]+)\)"
            r"|\bln\s*\((?P<narg>[^()\[\]]+)\)",
            re.IGNORECASE,
        ),
        _logarithm,
        "log_b(x), log(x), ln(x)",
    ),
    Rule(
        "integral",
        re.compile(r"∫([^d∫\[\]]+)d([^\W\d_])\b"),
        _integral,
        "∫ f dx -> \\int f \\, dx",
    ),
    Rule(
        "summation",
        re.compile(r"[Σ∑]|(?i:\bsum\s+from\b)"),
        _summation,
        "Σ, ∑, 'sum from' -> \\sum",
    ),
    Rule(
        "limit",
        re.compile(r"\blim\s*(\w+)\s*(?:→|->)\s*(\w+|∞)", re.IGNORECASE),
        _limit,
        "lim x → a -> \\lim_{x \\to a}",
    ),
    Rule(
        "greek",
        re.compile("[" + "".join(_GREEK_MACROS) + "]"),
        _symbol(_GREEK_MACROS),
        "Greek letters -> named macros",
    ),
    Rule(
        "operator",
        re.compile("[" + "".join(OPERATORS) + "]"),
        _symbol(OPERATORS),
        "relational and set operators -> named macros",
    ),
    Rule(
        "matrix",
        re.compile(f"{_MATRIX}|{_VECTOR}"),
        _matrix,
        "bracketed numeric lists -> bmatrix",
    ),
    Rule(
        "derivative",
        re.compile(r"(?<!\w)([d∂])(\w*)\s*/\s*([d∂])(\w+)"),
        _derivative,
        "d/dx, ∂/∂x -> \\frac{d}{dx}",
    ),
)

CORRUPTED_RULES: tuple[Rule, ...] = (
    Rule(
        "glued_exponent",
        re.compile(r"\b([A-Za-z])(\d+)" + _OP_FOLLOW),
        _glued_exponent,
        "x2 -> x^{2}",
        corrupted=True,
    ),
    Rule(
        "symbol_fraction",
        re.compile(r"\b(\d+)\s*[#$%&']\s*(\d+)\b"),
        _symbol_fraction,
        "1#2, 3$4 -> \\frac{1}{2}",
        corrupted=True,
    ),
    Rule(
        "dangling_square",
        re.compile(r"\b([A-Za-z])\$" + _OP_FOLLOW),
        _dangling_square,
        "x$ -> x^{2}",
        corrupted=True,
    ),
    Rule(
        "log_base_two",
        re.compile(r"\blog#\(?(\w+)\)?"),
        _log_base_two,
        "log#x -> \\log_{2}(x)",
        corrupted=True,
    ),
    Rule(
        "textbook_integral",
        re.compile(r"\b([A-Za-z]+)dx\s*([^\s\[\]]+?)\s*K\b"),
        _textbook_integral,
        "xdx = K -> \\int x \\, dx = K",
        corrupted=True,
    ),
)

DEFAULT_RULES: tuple[Rule, ...] = PRIMARY_RULES + CORRUPTED_RULES


# ---------------------------------------------------------------------------
# Quick cleanup used before question extraction prompts
# ---------------------------------------------------------------------------

_QUICK_EXPONENT = re.compile(r"([a-zA-Z])([0-9]+)(?=\s|$)")
_QUICK_OPERATOR = re.compile(r"\s*[#$%&']\s*")


def normalize_corrupted_text(text: str) -> str:
    """Lightweight repair of corrupted math without extracting formulas."""
    result = _QUICK_EXPONENT.sub(r"\1^\2", text)
    result = _QUICK_OPERATOR.sub(" / ", result)
    return result
