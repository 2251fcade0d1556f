"""
Full-data LightGBM regressor with residual inspection.

After cross-validation has picked a setting, the walkthrough retrains on ALL
rows and looks at in-sample residuals (actual minus predicted).  In-sample
residuals are optimistic by construction; they show which rows the model
still cannot fit, not how well it generalises.  CV error is the
generalisation estimate.

Artifacts are joblib pickles holding the booster plus the feature column
order it was trained on; ``write_metadata()`` writes a JSON sidecar.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

import numpy as np

from boostprep.features.design import DesignMatrix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResidualSummary:
    """In-sample residuals of a fitted model.

    Attributes:
        row_index: Source row labels, aligned with the lists below.
        actual:    True labels.
        predicted: Model predictions.
        residuals: actual - predicted.
        mean:      Mean residual (bias).
        std:       Population std of the residuals.
        max_abs:   Largest absolute residual.
        rmse:      Root mean squared residual.
    """

    row_index: list[Any]
    actual: list[float]
    predicted: list[float]
    residuals: list[float]
    mean: float
    std: float
    max_abs: float
    rmse: float

    def largest(self, n: int = 5) -> list[tuple[Any, float]]:
        """The ``n`` rows with the largest absolute residual, largest first."""
        pairs = list(zip(self.row_index, self.residuals))
        pairs.sort(key=lambda p: abs(p[1]), reverse=True)
        return pairs[:n]


class BoostedRegressor:
    """LightGBM regressor trained on a ``DesignMatrix``.

    Attributes:
        n_rounds:      Boosting rounds for ``fit()``.
        MODEL_VERSION: Version string embedded in artifact metadata.
    """

    MODEL_VERSION = "v0.3.0"
    MIN_TRAINING_ROWS = 5

    def __init__(self, n_rounds: int = 50, **params: Any) -> None:
        self.n_rounds = n_rounds
        self._params: dict[str, Any] = dict(params)
        self._booster = None       # lgb.Booster; None until fit()
        self._feature_cols: list[str] = []
        self._formula: str = ""
        self._training_rows: int = 0
        self._trained_at: str = ""

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def is_fitted(self) -> bool:
        """True after fit() has been called successfully."""
        return self._booster is not None

    @property
    def feature_cols(self) -> list[str]:
        return list(self._feature_cols)

    # ── Training ──────────────────────────────────────────────────────────────

    def fit(self, design: DesignMatrix) -> "BoostedRegressor":
        """Train on every row of ``design``.

        Raises:
            ValueError: Fewer than ``MIN_TRAINING_ROWS`` rows.
        """
        import lightgbm as lgb

        if design.n_rows < self.MIN_TRAINING_ROWS:
            raise ValueError(
                f"BoostedRegressor.fit() needs >= {self.MIN_TRAINING_ROWS} "
                f"training rows; got {design.n_rows}."
            )

        X = design.X if design.is_sparse else design.X.to_numpy(dtype=np.float64)
        dtrain = lgb.Dataset(
            X,
            label=design.y,
            feature_name=list(design.columns),
            params=self._params,
            free_raw_data=False,
        )
        self._booster = lgb.train(self._params, dtrain, num_boost_round=self.n_rounds)
        self._feature_cols = list(design.columns)
        self._formula = design.formula
        self._training_rows = design.n_rows
        self._trained_at = date.today().isoformat()
        logger.info(
            "Trained '%s' on %d rows for %d rounds",
            design.formula, design.n_rows, self.n_rounds,
        )
        return self

    # ── Inference ─────────────────────────────────────────────────────────────

    def predict(self, X: Any) -> np.ndarray:
        """Predict labels for a DataFrame, ndarray or sparse matrix.

        Returns an all-NaN array if the model is not fitted.
        """
        n = X.shape[0]
        if not self.is_fitted:
            return np.full(n, np.nan)
        if hasattr(X, "to_numpy"):
            X = X[self._feature_cols].to_numpy(dtype=np.float64)
        return np.asarray(self._booster.predict(X), dtype=np.float64)

    def residuals(self, design: DesignMatrix) -> ResidualSummary:
        """Compute residuals of this model on ``design``.

        Raises:
            RuntimeError: If the model has not been fitted.
        """
        if not self.is_fitted:
            raise RuntimeError("Cannot compute residuals of an unfitted BoostedRegressor.")
        predicted = self.predict(design.X)
        resid = design.y - predicted
        n = len(resid)
        return ResidualSummary(
            row_index=list(design.row_index),
            actual=[float(v) for v in design.y],
            predicted=[float(v) for v in predicted],
            residuals=[float(v) for v in resid],
            mean=float(resid.mean()) if n else 0.0,
            std=float(resid.std()) if n else 0.0,
            max_abs=float(np.abs(resid).max()) if n else 0.0,
            rmse=math.sqrt(float((resid ** 2).mean())) if n else 0.0,
        )

    def feature_importance(self, importance_type: str = "gain") -> dict[str, float]:
        """Column name → importance, sorted descending. Empty if unfitted."""
        if not self.is_fitted:
            return {}
        values = self._booster.feature_importance(importance_type=importance_type)
        pairs = sorted(
            zip(self._feature_cols, (float(v) for v in values)),
            key=lambda p: p[1],
            reverse=True,
        )
        return dict(pairs)

    # ── Persistence ───────────────────────────────────────────────────────────

    def save(self, artifact_path: Path) -> None:
        """Serialize the booster to a joblib pickle file.

        Raises:
            RuntimeError: If the model has not been fitted.
        """
        if not self.is_fitted:
            raise RuntimeError("Cannot save an unfitted BoostedRegressor.")

        import joblib

        artifact_path.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(
            {
                "booster":       self._booster,
                "feature_cols":  self._feature_cols,
                "formula":       self._formula,
                "params":        self._params,
                "n_rounds":      self.n_rounds,
                "training_rows": self._training_rows,
                "model_version": self.MODEL_VERSION,
                "trained_at":    self._trained_at,
            },
            artifact_path,
        )
        logger.info("Model artifact saved: %s", artifact_path)

    @classmethod
    def load(cls, artifact_path: Path) -> "BoostedRegressor":
        """Load a serialized BoostedRegressor from disk.

        Raises:
            FileNotFoundError: If artifact_path does not exist.
        """
        import joblib

        if not artifact_path.exists():
            raise FileNotFoundError(f"Model artifact not found: {artifact_path}")

        state = joblib.load(artifact_path)
        inst = cls(n_rounds=state.get("n_rounds", 50), **state.get("params", {}))
        inst._booster       = state["booster"]
        inst._feature_cols  = state["feature_cols"]
        inst._formula       = state.get("formula", "")
        inst._training_rows = state.get("training_rows", 0)
        inst._trained_at    = state.get("trained_at", "")
        logger.info(
            "Model artifact loaded: %s (formula='%s', trained=%s)",
            artifact_path, inst._formula, inst._trained_at,
        )
        return inst

    def write_metadata(
        self,
        meta_path: Path,
        strategy: str,
        dataset_fingerprint: str,
        residual_rmse: float | None = None,
    ) -> None:
        """Write a JSON metadata sidecar alongside the model artifact."""
        meta = {
            "schema_version":      self.MODEL_VERSION,
            "model_type":          "lightgbm",
            "formula":             self._formula,
            "strategy":            strategy,
            "dataset_fingerprint": dataset_fingerprint,
            "trained_at":          self._trained_at,
            "feature_columns":     self._feature_cols,
            "n_rounds":            self.n_rounds,
            "hyperparameters":     self._params,
            "training_rows":       self._training_rows,
            "residual_rmse":       residual_rmse,
        }
        meta_path.parent.mkdir(parents=True, exist_ok=True)
        meta_path.write_text(json.dumps(meta, indent=2, default=str))
        logger.debug("Model metadata written: %s", meta_path)
