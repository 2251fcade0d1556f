"""
Tests for boostprep/pipeline/train.py.

What we test
------------
  - TrainStage writes a loadable .pkl artifact and a .json sidecar under
    output.artifact_dir, named by strategy and fingerprint.
  - The run record carries the artifact path; last_outcome has residuals.
  - Missing df / spec raise ValueError.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from boostprep.ml.booster import BoostedRegressor
from boostprep.pipeline.experiment import ExperimentSpec
from boostprep.pipeline.train import TrainStage, artifact_paths

SPEC = ExperimentSpec(step="train_onehot", strategy="onehot", formula="{target} ~ . - 1")


def test_artifact_paths_naming(tmp_path):
    pkl, meta = artifact_paths(tmp_path, "binary", "0123456789abcdef")
    assert pkl.parent == tmp_path
    assert pkl.name.startswith("lgbm_binary_01234567_")
    assert pkl.suffix == ".pkl"
    assert meta == pkl.with_suffix(".json")


def test_train_stage_writes_artifacts(mtcars, small_config, tmp_path):
    stage = TrainStage(config=small_config)
    run = stage.run(df=mtcars, spec=SPEC)

    assert run.status == "success"
    assert run.rows_processed == 32
    assert stage.artifact_path.exists()
    assert stage.artifact_path.parent == tmp_path / "models"
    assert run.outputs["artifact_path"] == str(stage.artifact_path)

    meta = json.loads(stage.artifact_path.with_suffix(".json").read_text())
    assert meta["strategy"] == "onehot"
    assert meta["dataset_fingerprint"] == stage.last_outcome.fingerprint
    assert meta["residual_rmse"] == pytest.approx(stage.last_outcome.residuals.rmse)

    loaded = BoostedRegressor.load(Path(stage.artifact_path))
    assert loaded.feature_cols == stage.last_outcome.design.columns


def test_train_stage_requires_inputs(mtcars, small_config):
    with pytest.raises(ValueError, match="requires a 'spec'"):
        TrainStage(config=small_config).run(df=mtcars)
    with pytest.raises(ValueError, match="requires a 'df'"):
        TrainStage(config=small_config).run(spec=SPEC)
