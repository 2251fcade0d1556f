"""
Tests for boostprep/features/formula.py.

What we test
------------
parse_formula():
  - Response, terms and intercept for ``y ~ a + b``.
  - ``- 1`` and ``+ 0`` drop the intercept; ``+ 1`` keeps it.
  - ``- name`` goes to ``removed``.
  - Malformed text raises FormulaError (a ValueError subclass).

Formula.resolve():
  - ``.`` expands to every non-response column in frame order.
  - Removals apply after expansion.
  - Unknown columns, unknown response, response as predictor and
    duplicate terms raise FormulaError.
"""

from __future__ import annotations

import pytest

from boostprep.features.formula import FormulaError, parse_formula

COLUMNS = ["mpg", "cyl", "disp", "hp", "gear"]


# ── parse_formula() ───────────────────────────────────────────────────────────

def test_basic_formula():
    f = parse_formula("mpg ~ cyl + hp")
    assert f.response == "mpg"
    assert f.terms == ("cyl", "hp")
    assert f.removed == ()
    assert f.intercept is True
    assert str(f) == "mpg ~ cyl + hp"


@pytest.mark.parametrize(
    "text, intercept",
    [
        ("mpg ~ . - 1", False),
        ("mpg ~ . + 0", False),
        ("mpg ~ . + 1", True),
        ("mpg ~ 0 + cyl", False),
        ("mpg ~ .", True),
    ],
)
def test_intercept_terms(text, intercept):
    assert parse_formula(text).intercept is intercept


def test_removed_terms():
    f = parse_formula("mpg ~ . - disp - 1")
    assert f.terms == (".",)
    assert f.removed == ("disp",)
    assert f.intercept is False


def test_formula_error_is_value_error():
    assert issubclass(FormulaError, ValueError)


@pytest.mark.parametrize(
    "text",
    [
        "mpg cyl + hp",        # no tilde
        "mpg ~ cyl ~ hp",      # two tildes
        " ~ cyl",              # no response
        "mpg ~ ",              # no rhs
        "mpg ~ cyl + + hp",    # empty term
        "mpg ~ 1",             # intercept only
        "mpg ~ - cyl",         # nothing included
    ],
)
def test_malformed(text):
    with pytest.raises(FormulaError):
        parse_formula(text)


# ── Formula.resolve() ─────────────────────────────────────────────────────────

class TestResolve:
    def test_dot_expands_in_frame_order(self):
        assert parse_formula("mpg ~ .").resolve(COLUMNS) == ["cyl", "disp", "hp", "gear"]

    def test_explicit_order_kept(self):
        assert parse_formula("mpg ~ hp + cyl").resolve(COLUMNS) == ["hp", "cyl"]

    def test_removal_after_dot(self):
        assert parse_formula("mpg ~ . - disp").resolve(COLUMNS) == ["cyl", "hp", "gear"]

    def test_unknown_term(self):
        with pytest.raises(FormulaError, match="Unknown column 'wt'"):
            parse_formula("mpg ~ wt").resolve(COLUMNS)

    def test_unknown_removed_term(self):
        with pytest.raises(FormulaError, match="Unknown column"):
            parse_formula("mpg ~ . - wt").resolve(COLUMNS)

    def test_unknown_response(self):
        with pytest.raises(FormulaError, match="Response 'qsec'"):
            parse_formula("qsec ~ .").resolve(COLUMNS)

    def test_response_as_predictor(self):
        with pytest.raises(FormulaError, match="cannot also be a predictor"):
            parse_formula("mpg ~ cyl + mpg").resolve(COLUMNS)

    def test_duplicate_term(self):
        with pytest.raises(FormulaError, match="more than once"):
            parse_formula("mpg ~ cyl + cyl").resolve(COLUMNS)
