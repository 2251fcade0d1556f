"""
Tabular dataset loading.

``load_dataset()`` accepts either a local CSV path or an ``http(s)://`` URL.
URLs are fetched with httpx so a failing download surfaces as
``httpx.HTTPStatusError`` rather than a pandas parser error.

R-exported CSVs (``write.csv`` with row names) have an empty first header
cell; pandas reads it as ``"Unnamed: 0"``.  We rename that column to
``model`` so the identifier can be dropped by name.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

logger = logging.getLogger(__name__)

ROW_NAME_COLUMN = "model"


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def resolve_source(source: str, root: Optional[Path] = None) -> str:
    """Resolve a relative local path against the project root when needed.

    URLs and paths that exist relative to the working directory are returned
    unchanged.
    """
    if _is_url(source):
        return source
    path = Path(source)
    if path.is_absolute() or path.exists():
        return str(path)
    if root is None:
        from boostprep.config import _find_project_root
        root = _find_project_root()
    candidate = root / path
    return str(candidate) if candidate.exists() else str(path)


def _fetch_csv_text(url: str, timeout: float = 30.0) -> str:
    import httpx

    resp = httpx.get(url, timeout=timeout, follow_redirects=True)
    resp.raise_for_status()
    return resp.text


def load_dataset(
    source: str,
    identifier_columns: Optional[list[str]] = None,
) -> pd.DataFrame:
    """Load a CSV dataset and drop its identifier column(s).

    Args:
        source:             Local path or http(s) URL of a CSV file.
        identifier_columns: Columns to drop after loading. ``None`` applies the
                            identifier heuristic of ``drop_identifier_columns``;
                            an empty list drops nothing.

    Returns:
        DataFrame with the identifier columns removed.

    Raises:
        FileNotFoundError:     Local ``source`` does not exist.
        httpx.HTTPStatusError: Non-2xx response for a URL ``source``.
        ValueError:            The CSV has no rows.
    """
    if _is_url(source):
        logger.info("Downloading dataset: %s", source)
        df = pd.read_csv(io.StringIO(_fetch_csv_text(source)))
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Dataset not found: {path}")
        df = pd.read_csv(path)

    if df.empty:
        raise ValueError(f"Dataset is empty: {source}")

    if "Unnamed: 0" in df.columns:
        df = df.rename(columns={"Unnamed: 0": ROW_NAME_COLUMN})

    df = drop_identifier_columns(df, identifier_columns)
    logger.info("Loaded dataset %s: %d rows x %d cols", source, len(df), df.shape[1])
    return df


def drop_identifier_columns(
    df: pd.DataFrame,
    columns: Optional[list[str]] = None,
) -> pd.DataFrame:
    """Return a copy of ``df`` without its identifier columns.

    With ``columns=None`` a column counts as an identifier when it is
    non-numeric and every value is distinct (e.g. car model names).
    Listed columns that are absent are ignored.
    """
    if columns is None:
        columns = [
            c for c in df.columns
            if not pd.api.types.is_numeric_dtype(df[c])
            and df[c].nunique(dropna=False) == len(df)
        ]
    present = [c for c in columns if c in df.columns]
    if present:
        logger.debug("Dropping identifier columns: %s", present)
    return df.drop(columns=present)
