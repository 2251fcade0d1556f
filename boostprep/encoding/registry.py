"""
Encoding strategy registry and dispatcher.

``ENCODER_REGISTRY`` maps a strategy name to its encoder class.  Callers go
through ``get_encoder()`` / ``encode_frame()`` rather than importing encoder
classes directly, so the CLI and the walkthrough accept strategies by name.
"""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from boostprep.encoding.base import CategoricalEncoder
from boostprep.encoding.binary import BinaryEncoder
from boostprep.encoding.numeric import NumericEncoder
from boostprep.encoding.onehot import OneHotEncoder

ENCODER_REGISTRY: dict[str, type[CategoricalEncoder]] = {
    NumericEncoder.strategy: NumericEncoder,
    BinaryEncoder.strategy:  BinaryEncoder,
    OneHotEncoder.strategy:  OneHotEncoder,
}


def available_strategies() -> list[str]:
    """Registered strategy names, sorted."""
    return sorted(ENCODER_REGISTRY)


def get_encoder(strategy: str) -> CategoricalEncoder:
    """Instantiate the encoder registered under ``strategy``.

    Raises:
        ValueError: Unknown strategy name.
    """
    cls = ENCODER_REGISTRY.get(strategy)
    if cls is None:
        raise ValueError(
            f"Unknown encoding strategy '{strategy}'. "
            f"Must be one of {available_strategies()}."
        )
    return cls()


def encode_frame(
    df: pd.DataFrame,
    strategy: str,
    columns: Sequence[str],
) -> pd.DataFrame:
    """Encode ``columns`` of ``df`` with the named strategy."""
    return get_encoder(strategy).encode(df, columns)
