"""
Dataset fingerprints and cache keys.

A fingerprint identifies the exact contents of a DataFrame: column names,
dtypes, index and every cell value (NaN included).  Two frames with the same
values in a different row order have different fingerprints; the design
matrix would differ too.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

import pandas as pd


def dataset_fingerprint(df: pd.DataFrame) -> str:
    """Return the SHA-256 hex digest of ``df``'s schema and contents."""
    h = hashlib.sha256()
    schema = [(str(c), str(df[c].dtype)) for c in df.columns]
    h.update(json.dumps(schema).encode("utf-8"))
    row_hashes = pd.util.hash_pandas_object(df, index=True)
    h.update(row_hashes.to_numpy().tobytes())
    return h.hexdigest()


def cache_key(fingerprint: str, strategy: str, formula: str, **options: Any) -> str:
    """Return a 16-hex key for one (dataset, strategy, formula, options) combination.

    ``options`` must be JSON-serialisable (na_action, keep_all_levels, ...).
    """
    payload = json.dumps(
        {
            "fingerprint": fingerprint,
            "strategy":    strategy,
            "formula":     formula,
            "options":     options,
        },
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]
