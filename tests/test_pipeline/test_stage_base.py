"""
Tests for the PipelineStage abstract base.

What we test
------------
  - PipelineStage cannot be instantiated; a subclass without _execute
    cannot either.
  - A successful run returns RunMetadata with status/rows/finished_at set
    and a JSON run record under runs_dir.
  - A failing run writes a ``failed`` record and re-raises the error.
  - Every concrete stage has a valid stage_name.
"""

from __future__ import annotations

import json

import pytest

from boostprep.models.meta import VALID_PIPELINE_STAGES, RunMetadata
from boostprep.pipeline.base import PipelineStage
from boostprep.pipeline.experiment import ExperimentStage
from boostprep.pipeline.train import TrainStage
from boostprep.pipeline.walkthrough import WalkthroughStage


class _CountingStage(PipelineStage):
    stage_name = "experiment"

    def _execute(self, run: RunMetadata, n: int = 3, **kwargs) -> int:
        run.outputs = {"n": n}
        return n


class _FailingStage(PipelineStage):
    stage_name = "train"

    def _execute(self, run: RunMetadata, **kwargs) -> int:
        raise ValueError("boom")


class TestPipelineStageABC:
    def test_cannot_instantiate_base_directly(self, small_config):
        with pytest.raises(TypeError):
            PipelineStage(config=small_config)  # type: ignore[abstract]

    def test_subclass_without_execute(self, small_config):
        class IncompleteStage(PipelineStage):
            stage_name = "experiment"

        with pytest.raises(TypeError):
            IncompleteStage(config=small_config)  # type: ignore[abstract]


def test_successful_run_is_recorded(small_config, tmp_path):
    run = _CountingStage(config=small_config).run(n=7)
    assert run.status == "success"
    assert run.rows_processed == 7
    assert run.finished_at is not None
    assert run.duration_seconds >= 0.0

    path = tmp_path / "runs" / f"experiment_{run.run_slug}.json"
    record = json.loads(path.read_text())
    assert record["status"] == "success"
    assert record["outputs"] == {"n": 7}
    assert record["config_snapshot"]["boost"]["n_rounds"] == 10


def test_runs_dir_override(small_config, tmp_path):
    run = _CountingStage(config=small_config, runs_dir=str(tmp_path / "elsewhere")).run()
    assert (tmp_path / "elsewhere" / f"experiment_{run.run_slug}.json").exists()


def test_failed_run_is_recorded_and_reraised(small_config, tmp_path):
    with pytest.raises(ValueError, match="boom"):
        _FailingStage(config=small_config).run()

    records = list((tmp_path / "runs").glob("train_*.json"))
    assert len(records) == 1
    record = json.loads(records[0].read_text())
    assert record["status"] == "failed"
    assert record["error_message"] == "boom"


@pytest.mark.parametrize("stage_cls", [ExperimentStage, WalkthroughStage, TrainStage])
def test_stage_names_are_valid(stage_cls):
    assert stage_cls.stage_name in VALID_PIPELINE_STAGES
