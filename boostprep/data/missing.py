"""
Synthetic missing-value injection.

Used by the missing-data walkthrough steps to knock out a fraction of a
categorical column, so the difference between zero-filling and
propagating missing levels shows up in the design matrix and CV error.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def inject_missing(
    df: pd.DataFrame,
    column: str,
    fraction: Optional[float] = None,
    rows: Optional[Sequence[int]] = None,
    seed: int = 0,
) -> pd.DataFrame:
    """Return a copy of ``df`` with NaN injected into ``column``.

    Exactly one of ``fraction`` / ``rows`` must be given.

    Args:
        df:       Source frame (not modified).
        column:   Column to knock values out of.
        fraction: Share of rows to blank, chosen with ``seed``; in (0, 1).
                  At least one row is always blanked.
        rows:     Explicit positional row indices to blank.
        seed:     RNG seed for ``fraction`` mode.

    Raises:
        KeyError:   ``column`` is not in ``df``.
        ValueError: Both or neither of ``fraction``/``rows`` given, fraction
                    out of range, or a row position out of bounds.
    """
    if column not in df.columns:
        raise KeyError(f"Column '{column}' not in dataset.")
    if (fraction is None) == (rows is None):
        raise ValueError("Pass exactly one of 'fraction' or 'rows'.")

    n = len(df)
    if fraction is not None:
        if not 0.0 < fraction < 1.0:
            raise ValueError(f"fraction must be in (0.0, 1.0), got {fraction}.")
        k = max(1, int(round(n * fraction)))
        rng = np.random.default_rng(seed)
        positions = np.sort(rng.choice(n, size=k, replace=False))
    else:
        positions = np.asarray(list(rows), dtype=int)
        if positions.size and (positions.min() < 0 or positions.max() >= n):
            raise ValueError(f"Row positions must be in [0, {n}); got {list(rows)}.")

    out = df.copy()
    # Integer columns cannot hold NaN; widen to float first.
    if pd.api.types.is_integer_dtype(out[column]) or pd.api.types.is_bool_dtype(out[column]):
        out[column] = out[column].astype("float64")
    out.iloc[positions, out.columns.get_loc(column)] = np.nan

    logger.info(
        "Injected %d missing value(s) into '%s' (rows=%s)",
        len(positions), column, positions.tolist(),
    )
    return out
