"""
Run and experiment records — the reproducibility backbone.

``RunMetadata`` is the pipeline execution audit log.  Every run records a
complete ``config_snapshot`` (full AppConfig as a dict), so any run can be
reproduced by restoring that config and re-running.

``ExperimentResult`` is the outcome of one walkthrough step: which encoding
and formula were used, what the design matrix looked like, and what CV (and
optionally full retraining) reported.

``RunMetadata`` is the only model here that is NOT frozen.  Its ``status``,
``rows_processed``, ``error_message`` and ``finished_at`` fields are updated
as the stage executes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

VALID_PIPELINE_STAGES = frozenset({"experiment", "walkthrough", "train"})
VALID_RUN_STATUSES = frozenset({"started", "success", "failed"})


class RunMetadata(BaseModel):
    """Pipeline execution audit record.

    Attributes:
        run_slug: UUID4 string uniquely identifying this run.
        pipeline_stage: Which stage produced this run record.
        status: Current execution status.
        config_snapshot: Full ``AppConfig.model_dump()`` at run start time.
        rows_processed: Rows of the design matrix (or steps) processed.
        error_message: Error description if ``status == "failed"``.
        started_at: UTC datetime when the run began.
        finished_at: UTC datetime when the run completed or failed.
        outputs: Stage-specific result payload (JSON-serialisable).
    """

    model_config = ConfigDict(frozen=False)

    run_slug: str
    pipeline_stage: str
    status: str = "started"
    config_snapshot: dict[str, Any]
    rows_processed: int = 0
    error_message: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None
    outputs: dict[str, Any] = {}

    @field_validator("pipeline_stage")
    @classmethod
    def validate_pipeline_stage(cls, v: str) -> str:
        if v not in VALID_PIPELINE_STAGES:
            raise ValueError(
                f"Unknown pipeline_stage '{v}'. Must be one of {sorted(VALID_PIPELINE_STAGES)}."
            )
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VALID_RUN_STATUSES:
            raise ValueError(
                f"Unknown status '{v}'. Must be one of {sorted(VALID_RUN_STATUSES)}."
            )
        return v

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


class ExperimentResult(BaseModel):
    """Outcome of one walkthrough step.

    Attributes:
        step: Walkthrough step name (e.g. ``"onehot_all_levels"``).
        description: One-line explanation of what the step demonstrates.
        strategy: Encoding strategy used.
        formula: Formula text the design matrix was built from.
        n_rows: Rows in the design matrix.
        n_cols: Columns in the design matrix.
        columns: Design-matrix column names.
        dropped_rows: Source rows removed by the NA policy.
        zero_filled_cells: Indicator cells zero-filled for missing levels.
        metric: CV metric name.
        n_rounds: Boosting rounds.
        nfold: CV folds.
        final_train: Train-fold metric after the last round.
        final_test: Held-out metric after the last round.
        best_round: Round with the lowest held-out metric (1-based).
        best_test: Held-out metric at ``best_round``.
        residual_rmse: In-sample RMSE after full retraining, if run.
        cache_hit: Whether the design matrix came from the cache.
    """

    model_config = ConfigDict(frozen=True)

    step: str
    description: str = ""
    strategy: str
    formula: str
    n_rows: int
    n_cols: int
    columns: list[str]
    dropped_rows: int = 0
    zero_filled_cells: int = 0
    metric: str
    n_rounds: int
    nfold: int
    final_train: float
    final_test: float
    best_round: int
    best_test: float
    residual_rmse: Optional[float] = None
    cache_hit: bool = False
