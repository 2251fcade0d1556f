"""Tests for RunMetadata and ExperimentResult."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from boostprep.models.meta import ExperimentResult, RunMetadata
from boostprep.utils.time_utils import utcnow


def _run(**overrides) -> RunMetadata:
    fields = dict(
        run_slug="abc",
        pipeline_stage="experiment",
        config_snapshot={},
        started_at=utcnow(),
    )
    fields.update(overrides)
    return RunMetadata(**fields)


class TestRunMetadata:
    def test_defaults(self):
        run = _run()
        assert run.status == "started"
        assert run.rows_processed == 0
        assert run.outputs == {}
        assert run.duration_seconds is None

    def test_unknown_stage(self):
        with pytest.raises(ValidationError):
            _run(pipeline_stage="ingest")

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            _run(status="done")

    def test_mutable_status(self):
        run = _run()
        run.status = "success"
        assert run.status == "success"

    def test_duration(self):
        start = utcnow()
        run = _run(started_at=start, finished_at=start + timedelta(seconds=90))
        assert run.duration_seconds == 90.0


def test_experiment_result_is_frozen():
    result = ExperimentResult(
        step="onehot", strategy="onehot", formula="mpg ~ . - 1",
        n_rows=32, n_cols=17, columns=["cyl4"], metric="rmse",
        n_rounds=10, nfold=3, final_train=1.0, final_test=3.0,
        best_round=8, best_test=2.9,
    )
    assert result.residual_rmse is None
    assert result.cache_hit is False
    with pytest.raises(ValidationError):
        result.n_cols = 3  # type: ignore[misc]
