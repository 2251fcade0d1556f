"""
Design-matrix construction from a formula.

``build_design_matrix()`` turns a DataFrame plus a ``response ~ terms``
formula into a numeric matrix and a label vector, following R
``model.matrix`` semantics so results line up with the familiar tutorial
output.

Categorical expansion (treatment contrasts)
-------------------------------------------
A predictor is categorical when its dtype is ``category``, ``object``,
string or ``bool``.  Each categorical becomes indicator columns named
``<column><level>``:

- With an intercept, every factor drops its first level (k-1 columns); the
  dropped level is absorbed by the intercept.
- Without an intercept, the FIRST factor keeps all k levels and every later
  factor still drops its first level.  This asymmetry surprises people: the
  "no intercept gives full one-hot" intuition only holds for one factor.
- ``keep_all_levels=True`` retains all k levels for every factor.

Missing values
--------------
``na_action="omit"``  drop any row with a missing response or predictor
                      (the model.matrix default).
``na_action="pass"``  keep rows; numeric NaN stays NaN and a missing level
                      sets ALL of that factor's indicator columns to NaN, so
                      the booster treats the factor as unknown.

``sparse=True`` builds a CSR matrix in which a missing level becomes an
all-zero indicator row.  With the first level dropped, an all-zero row is
exactly how the baseline level is encoded, so missing values are silently
relabelled as the baseline.  The zero-filled cell count is recorded on the
result and logged at WARNING.  Rows with a missing response are dropped in
every mode; a label is required for training.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Union

import numpy as np
import pandas as pd
from scipy import sparse as sp

from boostprep.features.formula import INTERCEPT_COLUMN, Formula, parse_formula
from boostprep.utils.logging import experiment_context

logger = logging.getLogger(__name__)

VALID_NA_ACTIONS = frozenset({"omit", "pass"})


@dataclass
class DesignMatrix:
    """A built design matrix and its label vector.

    Attributes:
        X:                 ``pd.DataFrame`` (dense) or ``scipy.sparse.csr_matrix``.
        y:                 float64 label vector aligned with the rows of X.
        columns:           Column names of X in order.
        row_index:         Index labels of the source rows kept in X.
        formula:           Formula text the matrix was built from.
        dropped_rows:      Index labels of source rows removed by the NA policy.
        zero_filled_cells: Indicator cells set to 0 for a missing level
                           (sparse mode only).
        is_sparse:         True when X is a CSR matrix.
    """

    X: Any
    y: np.ndarray
    columns: list[str]
    row_index: list[Any]
    formula: str
    dropped_rows: list[Any] = field(default_factory=list)
    zero_filled_cells: int = 0
    is_sparse: bool = False

    @property
    def n_rows(self) -> int:
        return int(self.X.shape[0])

    @property
    def n_cols(self) -> int:
        return int(self.X.shape[1])

    def to_dense(self) -> pd.DataFrame:
        """Return X as a DataFrame (copy for sparse, the frame itself for dense)."""
        if not self.is_sparse:
            return self.X
        return pd.DataFrame(
            self.X.toarray(), columns=self.columns, index=self.row_index
        )


def is_categorical(series: pd.Series) -> bool:
    """True for category, object, string and bool dtypes."""
    dtype = series.dtype
    if isinstance(dtype, pd.CategoricalDtype):
        return True
    if pd.api.types.is_bool_dtype(dtype):
        return True
    return not pd.api.types.is_numeric_dtype(dtype)


def level_label(value: Any) -> str:
    """Render a factor level for a column name (``4.0`` -> ``"4"``)."""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, (bool, np.bool_)):
        return "TRUE" if value else "FALSE"
    return str(value)


def _as_categorical(series: pd.Series) -> pd.Series:
    if isinstance(series.dtype, pd.CategoricalDtype):
        return series
    levels = sorted(series.dropna().unique().tolist())
    return pd.Series(
        pd.Categorical(series, categories=levels), index=series.index, name=series.name
    )


def build_design_matrix(
    df: pd.DataFrame,
    formula: Union[str, Formula],
    *,
    na_action: str = "omit",
    keep_all_levels: bool = False,
    sparse: bool = False,
) -> DesignMatrix:
    """Build a design matrix from ``df`` according to ``formula``.

    Args:
        df:              Source frame (not modified).
        formula:         Formula text or a parsed ``Formula``.
        na_action:       ``"omit"`` or ``"pass"`` (ignored for predictors when
                         ``sparse=True``).
        keep_all_levels: Keep all k indicator columns for every factor.
        sparse:          Return a CSR matrix with zero-filled missing levels.

    Returns:
        A ``DesignMatrix``.

    Raises:
        FormulaError: Formula does not parse or does not match the columns.
        ValueError:   Unknown ``na_action``, non-numeric response, or no rows
                      left after the NA policy.
    """
    if na_action not in VALID_NA_ACTIONS:
        raise ValueError(
            f"na_action must be one of {sorted(VALID_NA_ACTIONS)}, got '{na_action}'."
        )

    f = parse_formula(formula) if isinstance(formula, str) else formula
    predictors = f.resolve(list(df.columns))

    response = df[f.response]
    if is_categorical(response):
        raise ValueError(f"Response '{f.response}' must be numeric, got {response.dtype}.")

    frame = df[[f.response, *predictors]]
    keep = frame[f.response].notna()
    if na_action == "omit" and not sparse:
        keep &= frame[predictors].notna().all(axis=1)
    dropped = frame.index[~keep].tolist()
    frame = frame.loc[keep]

    if frame.empty:
        raise ValueError(
            f"No rows left after applying na_action='{na_action}' to '{f.text}'."
        )

    blocks: dict[str, np.ndarray] = {}
    if f.intercept:
        blocks[INTERCEPT_COLUMN] = np.ones(len(frame), dtype=np.float64)

    factors_seen = 0
    zero_filled = 0
    for col in predictors:
        series = frame[col]
        if not is_categorical(series):
            blocks[col] = series.to_numpy(dtype=np.float64, na_value=np.nan)
            continue

        cat = _as_categorical(series)
        levels = list(cat.cat.categories)
        drop_first = not keep_all_levels and (f.intercept or factors_seen > 0)
        factors_seen += 1
        used = levels[1:] if drop_first else levels

        codes = cat.cat.codes.to_numpy()
        missing = codes == -1
        n_missing = int(missing.sum())

        for lvl in used:
            values = (codes == levels.index(lvl)).astype(np.float64)
            if n_missing and not sparse:
                values[missing] = np.nan
            blocks[f"{col}{level_label(lvl)}"] = values

        if n_missing and sparse:
            zero_filled += n_missing * len(used)

    X = pd.DataFrame(blocks, index=frame.index)
    columns = list(X.columns)
    y = frame[f.response].to_numpy(dtype=np.float64)

    if dropped:
        logger.info(
            "Design '%s': dropped %d row(s) with missing values", f.text, len(dropped),
            extra=experiment_context(formula=f.text, dropped_rows=len(dropped)),
        )

    if sparse:
        if zero_filled:
            logger.warning(
                "Design '%s': %d indicator cell(s) for missing levels were "
                "zero-filled; those rows now look like the baseline level.",
                f.text, zero_filled,
                extra=experiment_context(formula=f.text, zero_filled_cells=zero_filled),
            )
        return DesignMatrix(
            X=sp.csr_matrix(X.to_numpy(dtype=np.float64)),
            y=y,
            columns=columns,
            row_index=frame.index.tolist(),
            formula=f.text,
            dropped_rows=dropped,
            zero_filled_cells=zero_filled,
            is_sparse=True,
        )

    logger.debug(
        "Design '%s': %d rows x %d cols", f.text, X.shape[0], X.shape[1],
        extra=experiment_context(formula=f.text, n_rows=X.shape[0], n_cols=X.shape[1]),
    )
    return DesignMatrix(
        X=X,
        y=y,
        columns=columns,
        row_index=frame.index.tolist(),
        formula=f.text,
        dropped_rows=dropped,
    )
