"""
Quality checks for a built design matrix.

``build_quality_report()`` summarises what the boosting step is about to see:

- Missingness fraction per column (NaN cells; zero-filled cells do NOT count,
  which is exactly why they are reported separately).
- Constant columns (no split can use them; the intercept is always one).
- Rows dropped by the NA policy.
- Indicator cells silently zero-filled by the sparse builder.

``is_clean`` is False when any cell was zero-filled or the matrix has no
columns.  High missingness alone does not mark the report unclean: LightGBM
routes NaN natively, and ``na_action="pass"`` produces NaN on purpose.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from boostprep.features.design import DesignMatrix


@dataclass
class MatrixQualityReport:
    """Summary of quality checks on one design matrix.

    Attributes:
        n_rows:                Rows in X.
        n_cols:                Columns in X.
        missingness:           Column name → fraction of NaN cells [0.0, 1.0].
        high_missingness_cols: Columns with missingness > the threshold.
        constant_cols:         Columns with a single distinct non-NaN value.
        dropped_rows:          Rows removed by the NA policy.
        zero_filled_cells:     Indicator cells zero-filled for missing levels.
        is_clean:              False if zero_filled_cells > 0 or n_cols == 0.
    """

    n_rows: int
    n_cols: int
    missingness: dict[str, float]
    high_missingness_cols: list[str]
    constant_cols: list[str]
    dropped_rows: int
    zero_filled_cells: int
    is_clean: bool


def build_quality_report(
    design: DesignMatrix,
    missingness_threshold: float = 0.30,
) -> MatrixQualityReport:
    """Build a quality report for ``design``.

    Args:
        design:                A built ``DesignMatrix`` (dense or sparse).
        missingness_threshold: Columns with NaN fraction above this appear in
                               ``high_missingness_cols``.
    """
    values = design.to_dense().to_numpy(dtype=np.float64)
    n_rows, n_cols = values.shape

    missingness: dict[str, float] = {}
    constant_cols: list[str] = []
    for j, col in enumerate(design.columns):
        column = values[:, j]
        nan_mask = np.isnan(column)
        missingness[col] = float(nan_mask.sum()) / n_rows if n_rows else 0.0
        if np.unique(column[~nan_mask]).size <= 1:
            constant_cols.append(col)

    high_missingness_cols = [
        col for col, frac in missingness.items() if frac > missingness_threshold
    ]

    return MatrixQualityReport(
        n_rows=n_rows,
        n_cols=n_cols,
        missingness=missingness,
        high_missingness_cols=high_missingness_cols,
        constant_cols=constant_cols,
        dropped_rows=len(design.dropped_rows),
        zero_filled_cells=design.zero_filled_cells,
        is_clean=design.zero_filled_cells == 0 and n_cols > 0,
    )
