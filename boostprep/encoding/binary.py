"""
Binary (base-2 digit) encoding via category_encoders.

Each column's sorted levels are numbered 1..k and each number is written out
in base 2 across ``<col>_0``, ``<col>_1``, ... columns, most significant digit
first.  The digit count is whatever ``category_encoders.BinaryEncoder`` needs
for the observed levels: roughly log2(k), against k or k-1 columns for one-hot.

category_encoders numbers levels in order of first appearance in the data it
is fitted on, so each column's encoder is fitted on its levels in sort order
(declared order for a pandas categorical) and then applied to the full column.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from boostprep.encoding.base import CategoricalEncoder


def sorted_levels(series: pd.Series) -> list:
    """Levels of ``series``: declared order if categorical, else sorted by value."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        return list(series.cat.categories)
    return sorted(series.dropna().unique().tolist())


class BinaryEncoder(CategoricalEncoder):
    """Encode categoricals as base-2 digit columns."""

    strategy = "binary"

    def _encode(self, df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
        import category_encoders as ce

        out = df
        for col in columns:
            levels = sorted_levels(df[col])
            encoder = ce.BinaryEncoder(
                cols=[col],
                handle_missing="return_nan",
                handle_unknown="value",
                return_df=True,
            )
            encoder.fit(pd.DataFrame({col: pd.Series(levels, dtype=object)}))
            digits = encoder.transform(df[[col]].astype(object)).astype(np.float64)
            digits.index = df.index

            pos = out.columns.get_loc(col)
            out = pd.concat(
                [out.iloc[:, :pos], digits, out.iloc[:, pos + 1:]], axis=1
            )
        return out

    def output_columns(self, encoded: pd.DataFrame, column: str) -> list[str]:
        prefix = f"{column}_"
        return [
            c for c in encoded.columns
            if c.startswith(prefix) and c[len(prefix):].isdigit()
        ]
