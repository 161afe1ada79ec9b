"""Tests for the recognizer rule library."""

from __future__ import annotations

import pytest

from formula_service.models import CORRUPTED_EXTRACTION
from formula_service.patterns import (
    CORRUPTED_RULES,
    DEFAULT_RULES,
    PRIMARY_RULES,
    latexify,
    normalize_corrupted_text,
)

_BY_NAME = {rule.name: rule for rule in DEFAULT_RULES}


def _canon(rule_name: str, text: str) -> tuple[str, str | None]:
    """Return (matched text, canonical form) for the first match of a rule."""
    rule = _BY_NAME[rule_name]
    match = rule.pattern.search(text)
    assert match is not None, f"{rule_name} did not match {text!r}"
    return match.group(0), rule.canonicalize(match)


def test_rule_order_primary_then_corrupted():
    assert DEFAULT_RULES == PRIMARY_RULES + CORRUPTED_RULES
    assert [r.name for r in PRIMARY_RULES] == [
        "fraction", "exponent", "root", "logarithm", "integral", "summation",
        "limit", "greek", "operator", "matrix", "derivative",
    ]
    assert len(_BY_NAME) == len(DEFAULT_RULES)


def test_rule_context_tags():
    assert all(r.context is None and r.kind == "primary" for r in PRIMARY_RULES)
    assert all(
        r.context == CORRUPTED_EXTRACTION and r.kind == "corrupted"
        for r in CORRUPTED_RULES
    )


def test_latexify():
    assert latexify("α") == r"\alpha"
    assert latexify("αx") == r"\alpha x"
    assert latexify(" ≤ ") == r"\leq"
    assert latexify("Σx") == r"\sum x"
    assert latexify("plain") == "plain"


@pytest.mark.parametrize(
    "rule_name, text, matched, canonical",
    [
        ("fraction", "ratio a/b here", "a/b", r"\frac{a}{b}"),
        ("fraction", "1 / 2", "1 / 2", r"\frac{1}{2}"),
        ("fraction", "α/β", "α/β", r"\frac{\alpha}{\beta}"),
        ("exponent", "x^2", "x^2", "x^{2}"),
        ("exponent", "e^{2n}", "e^{2n}", "e^{2n}"),
        ("exponent", "2^(n+1)", "2^(n+1)", "2^{n+1}"),
        ("exponent", "E = mc²", "mc²", "mc^{2}"),
        ("root", "√2", "√2", r"\sqrt{2}"),
        ("root", "√(x+1)", "√(x+1)", r"\sqrt{x+1}"),
        ("root", "SQRT(y)", "SQRT(y)", r"\sqrt{y}"),
        ("root", "∛8", "∛8", r"\sqrt[3]{8}"),
        ("logarithm", "log_2(8)", "log_2(8)", r"\log_{2}(8)"),
        ("logarithm", "log_{10}(x)", "log_{10}(x)", r"\log_{10}(x)"),
        ("logarithm", "log(100)", "log(100)", r"\log(100)"),
        ("logarithm", "ln(x)", "ln(x)", r"\ln(x)"),
        ("integral", "∫ sin(x) dx", "∫ sin(x) dx", r"\int sin(x) \, dx"),
        ("integral", "∫ f(θ) dθ", "∫ f(θ) dθ", r"\int f(\theta) \, d\theta"),
        ("summation", "Σ", "Σ", r"\sum"),
        ("summation", "Sum from 1", "Sum from", r"\sum"),
        ("limit", "lim x → 0", "lim x → 0", r"\lim_{x \to 0}"),
        ("limit", "lim n->∞", "lim n->∞", r"\lim_{n \to \infty}"),
        ("greek", "θ", "θ", r"\theta"),
        ("greek", "Ω", "Ω", r"\Omega"),
        ("operator", "≤", "≤", r"\leq"),
        ("operator", "∉", "∉", r"\notin"),
        ("matrix", "[1, 2, 3]", "[1, 2, 3]", r"\begin{bmatrix} 1 & 2 & 3 \end{bmatrix}"),
        (
            "matrix",
            "[[1, 2], [3, 4]]",
            "[[1, 2], [3, 4]]",
            r"\begin{bmatrix} 1 & 2 \\ 3 & 4 \end{bmatrix}",
        ),
        ("derivative", "d/dx", "d/dx", r"\frac{d}{dx}"),
        ("derivative", "∂/∂x", "∂/∂x", r"\frac{\partial}{\partial x}"),
        ("derivative", "∂f/∂t", "∂f/∂t", r"\frac{\partial f}{\partial t}"),
    ],
)
def test_primary_canonical_forms(rule_name, text, matched, canonical):
    assert _canon(rule_name, text) == (matched, canonical)


@pytest.mark.parametrize(
    "rule_name, text, matched, canonical",
    [
        ("glued_exponent", "x2 + 1", "x2", "x^{2}"),
        ("glued_exponent", "a10", "a10", "a^{10}"),
        ("symbol_fraction", "1#2", "1#2", r"\frac{1}{2}"),
        ("symbol_fraction", "3 & 4", "3 & 4", r"\frac{3}{4}"),
        ("symbol_fraction", "5'6", "5'6", r"\frac{5}{6}"),
        ("dangling_square", "x$ + 1", "x$", "x^{2}"),
        ("log_base_two", "log#n", "log#n", r"\log_{2}(n)"),
        ("textbook_integral", "xdx = K", "xdx = K", r"\int x \, dx = K"),
        ("textbook_integral", "xdx # K", "xdx # K", r"\int x \, dx + K"),
    ],
)
def test_corrupted_canonical_forms(rule_name, text, matched, canonical):
    assert _canon(rule_name, text) == (matched, canonical)


def test_citation_brackets_are_not_matrices():
    assert _BY_NAME["matrix"].pattern.search("see [1] and [12]") is None


def test_ragged_matrix_is_not_canonicalized():
    matched, canonical = _canon("matrix", "[[1, 2], [3]]")
    assert matched == "[[1, 2], [3]]"
    assert canonical is None


def test_empty_integrand_is_not_canonicalized():
    matched, canonical = _canon("integral", "∫ dx")
    assert canonical is None


def test_glued_exponent_needs_single_letter_word():
    rule = _BY_NAME["glued_exponent"]
    assert rule.pattern.search("mp3 file") is None
    assert rule.pattern.search("CO2 levels") is None
    assert rule.pattern.search("2024 ") is None


def test_summation_is_case_sensitive_for_symbols():
    assert _BY_NAME["summation"].pattern.search("σ") is None


def test_normalize_corrupted_text():
    assert normalize_corrupted_text("x2 + y2 = z2") == "x^2 + y^2 = z^2"
    assert normalize_corrupted_text("10 # 5") == "10 / 5"
    assert normalize_corrupted_text("log#x") == "log / x"
    assert normalize_corrupted_text("no math here") == "no math here"


def test_latin_lookalike_capitals_are_not_claimed():
    rule = _BY_NAME["greek"]
    assert rule.pattern.search("Α Β Ε Ο") is None
    assert rule.pattern.search("Ω") is not None
    assert latexify("Α") == "A"
