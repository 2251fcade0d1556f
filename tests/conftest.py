"""
Shared pytest fixtures for the boostprep test suite.

Provides:
  - ``mtcars``: the bundled mtcars dataset with the model-name column dropped.
  - ``toy_df``: a tiny hand-built frame with one string factor and one
    numeric factor, small enough to check design matrices cell by cell.
  - ``small_config``: an ``AppConfig`` sized for fast tests, with every
    output path under ``tmp_path``.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from boostprep.config import (
    AppConfig,
    BoostConfig,
    CacheConfig,
    CVConfig,
    LoggingConfig,
    OutputConfig,
)
from boostprep.data.loader import load_dataset

PROJECT_ROOT = Path(__file__).parent.parent
MTCARS_CSV = PROJECT_ROOT / "data" / "mtcars.csv"


# ── Datasets ──────────────────────────────────────────────────────────────────

@pytest.fixture
def mtcars() -> pd.DataFrame:
    """mtcars (32 rows x 11 cols) without the ``model`` identifier column."""
    return load_dataset(str(MTCARS_CSV), identifier_columns=["model"])


@pytest.fixture
def toy_df() -> pd.DataFrame:
    """Six rows: numeric ``x``, string factor ``color``, numeric factor ``size``."""
    return pd.DataFrame(
        {
            "y":     [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
            "x":     [0.5, 1.5, 2.5, 3.5, 4.5, 5.5],
            "color": ["red", "blue", "green", "blue", "red", "green"],
            "size":  [1, 2, 3, 1, 2, 3],
        }
    )


# ── Config ────────────────────────────────────────────────────────────────────

@pytest.fixture
def small_config(tmp_path: Path) -> AppConfig:
    """Fast config: 10 rounds, 3 folds, all outputs under ``tmp_path``."""
    return AppConfig(
        boost=BoostConfig(n_rounds=10),
        cv=CVConfig(nfold=3, seed=1),
        cache=CacheConfig(enabled=True, cache_dir=str(tmp_path / "cache")),
        output=OutputConfig(
            runs_dir=str(tmp_path / "runs"),
            artifact_dir=str(tmp_path / "models"),
        ),
        logging=LoggingConfig(log_file=str(tmp_path / "logs" / "test.log")),
    )
