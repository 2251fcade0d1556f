"""
Encoded design-matrix cache.

Layout (one entry per cache key)::

    <cache_dir>/<key>.parquet   X columns + ``__label__``, Snappy-compressed
    <cache_dir>/<key>.json      manifest: formula, columns, row index,
                                dropped rows, created_at, sha256 of the Parquet

Only dense matrices are cached.  Sparse (zero-filled) matrices are cheap to
rebuild and the Parquet round trip would densify them, so ``put()`` declines
them.

A missing file is a plain miss.  A manifest whose sha256 no longer matches
the Parquet payload, or any read error, is treated as corruption: the entry
is evicted, a WARNING is logged and ``get()`` returns None so the caller
rebuilds.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Union

import pyarrow as pa
import pyarrow.parquet as pq

from boostprep.features.design import DesignMatrix

logger = logging.getLogger(__name__)

LABEL_COLUMN = "__label__"
MANIFEST_VERSION = "1.0"


def _hash_file(path: Path) -> str:
    """Return the SHA-256 hex digest of a file's contents."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


class MatrixCache:
    """Parquet-backed cache of ``DesignMatrix`` objects keyed by ``cache_key()``.

    Attributes:
        cache_dir: Directory holding the cache entries (created on first put).
        enabled:   When False every ``get`` misses and every ``put`` is a no-op.
    """

    def __init__(self, cache_dir: Union[str, Path], enabled: bool = True) -> None:
        self.cache_dir = Path(cache_dir)
        self.enabled = enabled

    def _paths(self, key: str) -> tuple[Path, Path]:
        return self.cache_dir / f"{key}.parquet", self.cache_dir / f"{key}.json"

    # ── Read ──────────────────────────────────────────────────────────────────

    def get(self, key: str) -> Optional[DesignMatrix]:
        """Return the cached matrix for ``key``, or None on a miss."""
        if not self.enabled:
            return None

        data_path, meta_path = self._paths(key)
        if not data_path.exists() or not meta_path.exists():
            logger.debug("Cache miss: %s", key)
            return None

        try:
            manifest = json.loads(meta_path.read_text(encoding="utf-8"))
            if manifest.get("sha256") != _hash_file(data_path):
                raise ValueError("payload checksum mismatch")
            frame = pq.read_table(str(data_path)).to_pandas()
            y = frame.pop(LABEL_COLUMN).to_numpy(dtype="float64")
            frame.index = manifest["row_index"]
            frame = frame[manifest["columns"]]
        except (OSError, ValueError, KeyError, pa.ArrowException) as exc:
            logger.warning("Cache entry %s is unreadable (%s); evicting.", key, exc)
            self._evict(key)
            return None

        logger.info("Cache hit: %s (%s)", key, manifest.get("formula"))
        return DesignMatrix(
            X=frame,
            y=y,
            columns=list(manifest["columns"]),
            row_index=list(manifest["row_index"]),
            formula=manifest["formula"],
            dropped_rows=list(manifest.get("dropped_rows", [])),
            zero_filled_cells=int(manifest.get("zero_filled_cells", 0)),
        )

    def keys(self) -> list[str]:
        """Keys of all entries that have a manifest, sorted."""
        if not self.cache_dir.exists():
            return []
        return sorted(p.stem for p in self.cache_dir.glob("*.json"))

    # ── Write ─────────────────────────────────────────────────────────────────

    def put(self, key: str, design: DesignMatrix) -> bool:
        """Store ``design`` under ``key``.

        Returns:
            True if written; False when the cache is disabled or the matrix
            is sparse.
        """
        if not self.enabled:
            return False
        if design.is_sparse:
            logger.debug("Not caching sparse design '%s'.", design.formula)
            return False

        self.cache_dir.mkdir(parents=True, exist_ok=True)
        data_path, meta_path = self._paths(key)

        frame = design.X.reset_index(drop=True).copy()
        frame[LABEL_COLUMN] = design.y
        table = pa.Table.from_pandas(frame, preserve_index=False)
        pq.write_table(table, str(data_path), compression="snappy")

        manifest = {
            "schema_version":    MANIFEST_VERSION,
            "key":               key,
            "formula":           design.formula,
            "columns":           design.columns,
            "row_index":         design.row_index,
            "dropped_rows":      design.dropped_rows,
            "zero_filled_cells": design.zero_filled_cells,
            "created_at":        datetime.now(tz=timezone.utc).isoformat(),
            "sha256":            _hash_file(data_path),
        }
        with open(meta_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2, default=str)
        logger.debug("Cached design %s: %d x %d", key, design.n_rows, design.n_cols)
        return True

    def get_or_build(
        self,
        key: str,
        builder: Callable[[], DesignMatrix],
    ) -> tuple[DesignMatrix, bool]:
        """Return ``(design, cache_hit)``, building and storing on a miss."""
        cached = self.get(key)
        if cached is not None:
            return cached, True
        design = builder()
        self.put(key, design)
        return design, False

    # ── Maintenance ───────────────────────────────────────────────────────────

    def _evict(self, key: str) -> None:
        for path in self._paths(key):
            path.unlink(missing_ok=True)

    def clear(self) -> int:
        """Remove every cache entry. Returns the number of entries removed."""
        if not self.cache_dir.exists():
            return 0
        keys = {p.stem for p in self.cache_dir.glob("*.parquet")} | set(self.keys())
        for key in keys:
            self._evict(key)
        logger.info("Cleared %d cache entr%s from %s", len(keys), "y" if len(keys) == 1 else "ies", self.cache_dir)
        return len(keys)
