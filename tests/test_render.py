"""Tests for placeholder scanning and rendering."""

from __future__ import annotations

import pytest

from formula_service.extractor import extract
from formula_service.models import FormulaType, ParsedFormula, RenderMode
from formula_service.render import delimit, iter_placeholders, render


def _formula(fid="formula_0", canonical=r"\frac{a}{b}", ftype=FormulaType.INLINE):
    return ParsedFormula(id=fid, original="a/b", canonical=canonical, type=ftype)


class TestIterPlaceholders:
    def test_simple_tokens(self):
        text = "[MATH:formula_0:x^{2}] + [MATH:formula_1:y]"
        tokens = list(iter_placeholders(text))
        assert [(t.id, t.canonical) for t in tokens] == [
            ("formula_0", "x^{2}"),
            ("formula_1", "y"),
        ]
        assert text[tokens[0].start:tokens[0].end] == "[MATH:formula_0:x^{2}]"

    def test_nested_brackets_in_canonical(self):
        text = r"see [MATH:formula_3:\sqrt[3]{8}] now"
        (token,) = iter_placeholders(text)
        assert token.canonical == r"\sqrt[3]{8}"
        assert text[token.end:] == " now"

    def test_unterminated_head_is_skipped(self):
        text = "[MATH:formula_0:x [MATH:formula_1:y]"
        tokens = list(iter_placeholders(text))
        assert [t.id for t in tokens] == ["formula_1"]
        assert tokens[0].canonical == "y"

    def test_unterminated_only(self):
        assert list(iter_placeholders("[MATH:formula_0:x")) == []

    def test_unclosed_head_does_not_hide_later_placeholder(self):
        text = "note [MATH:formula_9: a [MATH:formula_0:x^{2}] b] end"
        tokens = list(iter_placeholders(text))
        assert [(t.id, t.canonical) for t in tokens] == [("formula_0", "x^{2}")]

    def test_non_placeholder_brackets(self):
        assert list(iter_placeholders("see [1] and [MATH:other:x]")) == []


class TestDelimit:
    def test_markdown_display_types(self):
        for ftype in (FormulaType.BLOCK, FormulaType.EQUATION):
            assert delimit(_formula(ftype=ftype), RenderMode.MARKDOWN) == r"$$\frac{a}{b}$$"

    def test_markdown_inline(self):
        assert delimit(_formula(), "markdown") == r"$\frac{a}{b}$"

    def test_plain_always_single(self):
        formula = _formula(ftype=FormulaType.EQUATION)
        assert delimit(formula, RenderMode.PLAIN) == r"$\frac{a}{b}$"


class TestRender:
    def test_equation_promotion(self):
        result = extract("xdx = K")
        assert render(*result, mode="markdown") == r"$$\int x \, dx = K$$"
        assert render(*result, mode="plain") == r"$\int x \, dx = K$"

    def test_default_mode_is_plain(self):
        result = extract("a/b + c/d")
        assert render(*result) == r"$\frac{a}{b}$ + $\frac{c}{d}$"

    def test_unknown_id_is_left_untouched(self):
        text = "[MATH:formula_0:x] and [MATH:formula_9:y]"
        out = render(text, [_formula(canonical="x")])
        assert out == "$x$ and [MATH:formula_9:y]"

    def test_no_placeholders(self):
        assert render("plain prose", []) == "plain prose"

    def test_nested_canonical(self):
        result = extract("∛8 + 1")
        assert render(*result) == r"$\sqrt[3]{8}$ + 1"

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            render("x", [], mode="html")

    def test_records_may_be_any_iterable(self):
        result = extract("a/b")
        assert render(result.processed_text, iter(result.formulas)) == r"$\frac{a}{b}$"

    @pytest.mark.parametrize("mode", ["plain", "markdown"])
    def test_real_placeholder_after_unclosed_head_is_expanded(self, mode):
        text = "note [MATH:formula_9: a [MATH:formula_0:x^{2}] b] end"
        out = render(text, [_formula(canonical="x^{2}")], mode=mode)
        assert out == "note [MATH:formula_9: a $x^{2}$ b] end"

    def test_stale_canonical_is_left_untouched(self):
        text = r"See [MATH:formula_0:z] and [MATH:formula_0:\frac{a}{b}]"
        assert render(text, [_formula()]) == r"See [MATH:formula_0:z] and $\frac{a}{b}$"
