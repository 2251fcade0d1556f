"""
Abstract base class for categorical encoders.

Every encoder follows the same contract:
  1. ``strategy`` names it in ``ENCODER_REGISTRY``.
  2. ``encode(df, columns)`` is the sole public API; it validates the column
     list, calls ``_encode()`` on a copy, and never mutates its input.
  3. Columns not listed pass through untouched.
  4. A missing input value stays missing in every output column derived
     from it; ``encode()`` re-applies the source NaN mask after
     ``_encode()`` for encoders that fan one column out into several.

Usage::

    class MyEncoder(CategoricalEncoder):
        strategy = "mine"

        def _encode(self, df, columns):
            ...
            return df
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Sequence

import pandas as pd

from boostprep.utils.logging import experiment_context

logger = logging.getLogger(__name__)


class CategoricalEncoder(ABC):
    """Abstract base for all encoding strategies.

    Attributes:
        strategy: Registry name of this encoder.
    """

    strategy: str  # Override in subclass

    def encode(self, df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
        """Encode ``columns`` of ``df`` and return a new frame.

        Raises:
            KeyError: A listed column is not in ``df``.
        """
        columns = list(columns)
        unknown = [c for c in columns if c not in df.columns]
        if unknown:
            raise KeyError(f"Columns not in dataset: {unknown}")

        missing_masks = {c: df[c].isna().to_numpy() for c in columns}
        out = self._encode(df.copy(), columns)

        for col, mask in missing_masks.items():
            if not mask.any():
                continue
            for derived in self.output_columns(out, col):
                if pd.api.types.is_numeric_dtype(out[derived]):
                    out.loc[mask, derived] = float("nan")

        logger.debug(
            "Encoded %d column(s) with strategy=%s: %s",
            len(columns), self.strategy, columns,
            extra=experiment_context(strategy=self.strategy),
        )
        return out

    def output_columns(self, encoded: pd.DataFrame, column: str) -> list[str]:
        """Names of the output columns derived from ``column``."""
        return [column] if column in encoded.columns else []

    @abstractmethod
    def _encode(self, df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
        """Strategy-specific implementation; ``df`` is already a copy."""
        ...
