"""
One-hot encoding.

The encoder only declares each column as a pandas categorical with sorted
levels (the equivalent of R ``factor()``).  Expansion into indicator columns
happens in ``build_design_matrix()``, which owns the contrast rules: k-1
columns per factor by default, or all k with ``keep_all_levels=True``.
"""

from __future__ import annotations

import pandas as pd

from boostprep.encoding.base import CategoricalEncoder


class OneHotEncoder(CategoricalEncoder):
    """Mark columns as factors for indicator expansion."""

    strategy = "onehot"

    def _encode(self, df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
        for col in columns:
            s = df[col]
            if isinstance(s.dtype, pd.CategoricalDtype):
                continue
            levels = sorted(s.dropna().unique().tolist())
            df[col] = pd.Categorical(s, categories=levels)
        return df
