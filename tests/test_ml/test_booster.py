"""
Tests for boostprep/ml/booster.py.

What we test
------------
BoostedRegressor.is_fitted:
  - False before fit(), True after fit().

BoostedRegressor.fit():
  - Raises ValueError with fewer than MIN_TRAINING_ROWS rows.
  - Trains on dense and sparse designs.

BoostedRegressor.predict():
  - Returns NaNs when unfitted.
  - DataFrame input is reordered to the training columns.

BoostedRegressor.residuals():
  - residual = actual - predicted, aligned with the row index.
  - rmse / max_abs / mean are consistent with the residual list.
  - largest(n) sorts by absolute residual.
  - Raises RuntimeError when unfitted.

BoostedRegressor.save() / load() / write_metadata():
  - save() raises RuntimeError when unfitted; load() FileNotFoundError.
  - Round trip keeps predictions and feature columns.
  - Metadata JSON has the expected keys.
"""

from __future__ import annotations

import json
import math

import numpy as np
import pytest

from boostprep.config import BoostConfig
from boostprep.features.design import build_design_matrix
from boostprep.ml.booster import BoostedRegressor

PARAMS = BoostConfig().lgb_params()


@pytest.fixture
def design(mtcars):
    return build_design_matrix(mtcars, "mpg ~ . - 1")


@pytest.fixture
def fitted(design):
    return BoostedRegressor(n_rounds=20, **PARAMS).fit(design)


# ── fit() ─────────────────────────────────────────────────────────────────────

def test_not_fitted_before_fit():
    assert not BoostedRegressor().is_fitted


def test_fitted_after_fit(fitted, design):
    assert fitted.is_fitted
    assert fitted.feature_cols == design.columns


def test_fit_raises_on_too_few_rows(mtcars):
    tiny = build_design_matrix(mtcars.head(4), "mpg ~ wt")
    with pytest.raises(ValueError, match="5 training rows"):
        BoostedRegressor(n_rounds=5, **PARAMS).fit(tiny)


def test_fit_sparse(mtcars):
    design = build_design_matrix(mtcars, "mpg ~ wt + hp", sparse=True)
    model = BoostedRegressor(n_rounds=5, **PARAMS).fit(design)
    assert len(model.predict(design.X)) == 32


# ── predict() ─────────────────────────────────────────────────────────────────

def test_predict_unfitted_returns_nans(design):
    preds = BoostedRegressor().predict(design.X)
    assert preds.shape == (32,)
    assert np.isnan(preds).all()


def test_predict_reorders_columns(fitted, design):
    shuffled = design.X[list(reversed(design.columns))]
    np.testing.assert_allclose(fitted.predict(shuffled), fitted.predict(design.X))


# ── residuals() ───────────────────────────────────────────────────────────────

def test_residuals(fitted, design):
    summary = fitted.residuals(design)
    assert summary.row_index == design.row_index
    for a, p, r in zip(summary.actual, summary.predicted, summary.residuals):
        assert r == pytest.approx(a - p)
    assert summary.rmse == pytest.approx(math.sqrt(np.mean(np.square(summary.residuals))))
    assert summary.max_abs == pytest.approx(max(abs(r) for r in summary.residuals))
    assert summary.mean == pytest.approx(np.mean(summary.residuals))
    assert summary.rmse < np.std(design.y)


def test_largest(fitted, design):
    worst = fitted.residuals(design).largest(3)
    assert len(worst) == 3
    sizes = [abs(r) for _, r in worst]
    assert sizes == sorted(sizes, reverse=True)


def test_residuals_unfitted_raises(design):
    with pytest.raises(RuntimeError):
        BoostedRegressor().residuals(design)


def test_feature_importance(fitted):
    imp = fitted.feature_importance()
    assert set(imp) == set(fitted.feature_cols)
    values = list(imp.values())
    assert values == sorted(values, reverse=True)
    assert BoostedRegressor().feature_importance() == {}


# ── Persistence ───────────────────────────────────────────────────────────────

def test_save_unfitted_raises(tmp_path):
    with pytest.raises(RuntimeError):
        BoostedRegressor().save(tmp_path / "m.pkl")


def test_load_missing_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        BoostedRegressor.load(tmp_path / "absent.pkl")


def test_save_load_round_trip(tmp_path, fitted, design):
    path = tmp_path / "models" / "m.pkl"
    fitted.save(path)
    loaded = BoostedRegressor.load(path)
    assert loaded.is_fitted
    assert loaded.n_rounds == 20
    assert loaded.feature_cols == fitted.feature_cols
    np.testing.assert_allclose(loaded.predict(design.X), fitted.predict(design.X))


def test_write_metadata(tmp_path, fitted):
    path = tmp_path / "m.json"
    fitted.write_metadata(path, strategy="numeric", dataset_fingerprint="f" * 64, residual_rmse=1.5)
    meta = json.loads(path.read_text())
    assert meta["model_type"] == "lightgbm"
    assert meta["strategy"] == "numeric"
    assert meta["formula"] == "mpg ~ . - 1"
    assert meta["training_rows"] == 32
    assert meta["residual_rmse"] == 1.5
    assert meta["feature_columns"] == fitted.feature_cols
