"""
k-fold cross-validated boosting.

``cross_validate()`` wraps a ``DesignMatrix`` in ``lightgbm.Dataset`` and calls
``lightgbm.cv`` for a FIXED number of rounds:

- No early stopping.  The walkthrough compares encodings at the same round
  count, and the per-round curve is part of the output.
- ``stratified=False``.  Stratified folds are only defined for
  classification labels.
- Train metrics are reported alongside the held-out fold metrics, so the
  gap between them (overfitting) is visible round by round.

Missing values
--------------
LightGBM routes NaN natively: each split learns which side missing values go
to.  Zero-filled indicator cells are NOT missing to LightGBM; they are
ordinary zeros.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np

from boostprep.features.design import DesignMatrix
from boostprep.utils.logging import experiment_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CVResult:
    """Per-round cross-validation metrics.

    Attributes:
        metric:     LightGBM metric name (e.g. ``"rmse"``).
        n_rounds:   Boosting rounds run.
        nfold:      Number of folds.
        train_mean: Mean train-fold metric after each round.
        train_std:  Std of the train-fold metric after each round.
        test_mean:  Mean held-out-fold metric after each round.
        test_std:   Std of the held-out-fold metric after each round.
    """

    metric: str
    n_rounds: int
    nfold: int
    train_mean: list[float]
    train_std: list[float]
    test_mean: list[float]
    test_std: list[float]

    @property
    def final_test(self) -> float:
        """Held-out metric after the last round."""
        return self.test_mean[-1]

    @property
    def final_train(self) -> float:
        return self.train_mean[-1]

    @property
    def best_round(self) -> int:
        """1-based round with the lowest held-out metric."""
        return int(np.argmin(self.test_mean)) + 1

    @property
    def best_test(self) -> float:
        return self.test_mean[self.best_round - 1]

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload.update(
            final_test=self.final_test,
            best_round=self.best_round,
            best_test=self.best_test,
        )
        return payload


def _pick(raw: dict[str, list[float]], split: str, metric: str, stat: str) -> list[float]:
    """Find ``<split> <metric>-<stat>`` in lgb.cv output across LightGBM versions."""
    for key in (f"{split} {metric}-{stat}", f"{metric}-{stat}"):
        if key in raw:
            return [float(v) for v in raw[key]]
    suffix = f"-{stat}"
    for key, values in raw.items():
        if key.startswith(split) and key.endswith(suffix):
            return [float(v) for v in values]
    raise KeyError(f"lgb.cv output has no '{split}' {stat} series; keys={sorted(raw)}")


def cross_validate(
    design: DesignMatrix,
    *,
    n_rounds: int,
    nfold: int,
    params: dict[str, Any],
    shuffle: bool = True,
    seed: int = 0,
) -> CVResult:
    """Run k-fold cross-validated boosting on ``design``.

    Args:
        design:   Dense or sparse design matrix.
        n_rounds: Fixed number of boosting rounds (>= 1).
        nfold:    Number of folds (2 <= nfold <= design.n_rows).
        params:   LightGBM parameters (``BoostConfig.lgb_params()``).
        shuffle:  Shuffle rows before fold assignment.
        seed:     Fold-assignment seed.

    Returns:
        ``CVResult`` with one entry per round in each series.

    Raises:
        ValueError: Invalid ``n_rounds`` / ``nfold``.
    """
    import lightgbm as lgb

    if n_rounds < 1:
        raise ValueError(f"n_rounds must be >= 1, got {n_rounds}.")
    if nfold < 2:
        raise ValueError(f"nfold must be >= 2, got {nfold}.")
    if nfold > design.n_rows:
        raise ValueError(
            f"nfold={nfold} exceeds the number of rows ({design.n_rows})."
        )

    X = design.X if design.is_sparse else design.X.to_numpy(dtype=np.float64)
    dtrain = lgb.Dataset(
        X,
        label=design.y,
        feature_name=list(design.columns),
        params=params,
        free_raw_data=False,
    )

    metric = str(params.get("metric", "l2"))
    logger.info(
        "CV '%s': %d rows x %d cols, %d folds, %d rounds",
        design.formula, design.n_rows, design.n_cols, nfold, n_rounds,
        extra=experiment_context(
            formula=design.formula, n_rows=design.n_rows, n_cols=design.n_cols,
            nfold=nfold, n_rounds=n_rounds,
        ),
    )

    raw = lgb.cv(
        params,
        dtrain,
        num_boost_round=n_rounds,
        nfold=nfold,
        stratified=False,
        shuffle=shuffle,
        seed=seed,
        eval_train_metric=True,
    )

    result = CVResult(
        metric=metric,
        n_rounds=n_rounds,
        nfold=nfold,
        train_mean=_pick(raw, "train", metric, "mean"),
        train_std=_pick(raw, "train", metric, "stdv"),
        test_mean=_pick(raw, "valid", metric, "mean"),
        test_std=_pick(raw, "valid", metric, "stdv"),
    )

    if any(math.isnan(v) for v in result.test_mean):
        logger.warning("CV '%s' produced NaN test metrics.", design.formula)

    logger.info(
        "CV '%s': final test %s=%.4f (best %.4f at round %d)",
        design.formula, metric, result.final_test, result.best_test, result.best_round,
        extra=experiment_context(formula=design.formula, metric=metric),
    )
    return result
