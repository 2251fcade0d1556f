"""
R-style model formulas.

Supported grammar
-----------------
::

    formula  := response "~" rhs
    rhs      := [sign] term (sign term)*
    sign     := "+" | "-"
    term     := column name | "." | "1" | "0"

- ``.``            every column except the response, in frame order
- ``- name``       remove a column (typically after ``.``)
- ``- 1`` / ``+ 0`` drop the intercept column
- ``+ 1``          keep the intercept (the default)

Interactions (``a:b``), transforms (``log(x)``) and nesting are not part of
the grammar; they raise ``FormulaError`` as unknown columns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

INTERCEPT_COLUMN = "(Intercept)"

_TERM_RE = re.compile(r"([+-])\s*([^+\-]+)")


class FormulaError(ValueError):
    """Raised when a formula cannot be parsed or does not fit the data."""


@dataclass(frozen=True)
class Formula:
    """A parsed formula.

    Attributes:
        response:  Label column name (left of ``~``).
        terms:     Included terms in formula order (may contain ``"."``).
        removed:   Terms subtracted with ``-``.
        intercept: Whether an ``(Intercept)`` column is emitted.
        text:      The original formula string.
    """

    response: str
    terms: tuple[str, ...]
    removed: tuple[str, ...]
    intercept: bool
    text: str

    def resolve(self, columns: Sequence[str]) -> list[str]:
        """Expand ``.`` and removals against ``columns``.

        Returns:
            Predictor column names in formula order.

        Raises:
            FormulaError: Response or a term is not a column, the response is
                used as a predictor, or a term is listed twice.
        """
        available = list(columns)
        if self.response not in available:
            raise FormulaError(
                f"Response '{self.response}' is not a column. "
                f"Available: {available}"
            )

        predictors: list[str] = []
        explicit: set[str] = set()
        for term in self.terms:
            if term == ".":
                for col in available:
                    if col != self.response and col not in predictors:
                        predictors.append(col)
                continue
            if term not in available:
                raise FormulaError(f"Unknown column '{term}' in formula '{self.text}'.")
            if term == self.response:
                raise FormulaError(
                    f"Response '{self.response}' cannot also be a predictor."
                )
            if term in explicit:
                raise FormulaError(f"Term '{term}' appears more than once in '{self.text}'.")
            explicit.add(term)
            if term not in predictors:
                predictors.append(term)

        for term in self.removed:
            if term not in available:
                raise FormulaError(f"Unknown column '{term}' in formula '{self.text}'.")
            if term in predictors:
                predictors.remove(term)

        return predictors

    def __str__(self) -> str:
        return self.text


def parse_formula(text: str) -> Formula:
    """Parse ``text`` into a ``Formula``.

    Raises:
        FormulaError: Missing/duplicated ``~``, empty response or empty
            right-hand side.
    """
    if text.count("~") != 1:
        raise FormulaError(f"Formula must contain exactly one '~': '{text}'.")

    lhs, rhs = (part.strip() for part in text.split("~"))
    if not lhs:
        raise FormulaError(f"Formula has no response: '{text}'.")
    if not rhs:
        raise FormulaError(f"Formula has no predictors: '{text}'.")

    if rhs[0] not in "+-":
        rhs = "+" + rhs
    matches = _TERM_RE.findall(rhs)
    # Anything the term regex skipped over (e.g. "+ +") is a syntax error.
    if "".join(sign + term for sign, term in matches).replace(" ", "") != rhs.replace(" ", ""):
        raise FormulaError(f"Cannot parse right-hand side of '{text}'.")

    terms: list[str] = []
    removed: list[str] = []
    intercept = True
    for sign, raw in matches:
        term = raw.strip()
        if not term:
            raise FormulaError(f"Empty term in '{text}'.")
        if term in ("0", "1"):
            keep = (sign == "+") == (term == "1")
            intercept = keep
            continue
        if sign == "+":
            terms.append(term)
        else:
            removed.append(term)

    if not terms:
        raise FormulaError(f"Formula has no predictors: '{text}'.")

    return Formula(
        response=lhs,
        terms=tuple(terms),
        removed=tuple(removed),
        intercept=intercept,
        text=text.strip(),
    )
