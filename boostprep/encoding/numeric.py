"""
Numeric (ordinal) encoding.

Numeric columns keep their values and are cast to float64, so ``cyl`` stays
4/6/8 and the booster is free to split anywhere along it.  Non-numeric and
bool columns map their sorted levels to 1-based ordinals (1, 2, ... k); a
category dtype keeps its declared level order.  NaN stays NaN.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from boostprep.encoding.base import CategoricalEncoder


def ordinal_codes(series: pd.Series) -> pd.Series:
    """Map levels of ``series`` to 1-based float ordinals, NaN preserved."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        cat = series.cat
    else:
        levels = sorted(series.dropna().unique().tolist())
        cat = pd.Series(pd.Categorical(series, categories=levels), index=series.index).cat
    codes = cat.codes.to_numpy().astype(np.float64) + 1.0
    codes[codes == 0.0] = np.nan
    return pd.Series(codes, index=series.index, name=series.name)


class NumericEncoder(CategoricalEncoder):
    """Encode categoricals as a single float column each."""

    strategy = "numeric"

    def _encode(self, df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
        for col in columns:
            s = df[col]
            is_plain_number = (
                pd.api.types.is_numeric_dtype(s.dtype)
                and not pd.api.types.is_bool_dtype(s.dtype)
                and not isinstance(s.dtype, pd.CategoricalDtype)
            )
            if is_plain_number:
                df[col] = s.astype(np.float64)
            else:
                df[col] = ordinal_codes(s)
        return df
