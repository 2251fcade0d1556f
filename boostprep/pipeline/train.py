"""
TrainStage — cross-validate, retrain on all rows, and persist the model.

Output
------
Artifacts:  <output.artifact_dir>/lgbm_{strategy}_{fingerprint[:8]}_{date}.{pkl,json}
Run record: <output.runs_dir>/train_<run_slug>.json

Returns the number of training rows.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd

from boostprep.config import AppConfig
from boostprep.models.meta import RunMetadata
from boostprep.pipeline.base import PipelineStage
from boostprep.pipeline.experiment import (
    ExperimentOutcome,
    ExperimentSpec,
    cache_from_config,
    run_experiment,
)

logger = logging.getLogger(__name__)


def artifact_paths(artifact_dir: Path, strategy: str, fingerprint: str) -> tuple[Path, Path]:
    """Deterministic (artifact, metadata) paths for one trained model."""
    stem = f"lgbm_{strategy}_{fingerprint[:8]}_{date.today().isoformat()}"
    return artifact_dir / f"{stem}.pkl", artifact_dir / f"{stem}.json"


class TrainStage(PipelineStage):
    """Retrain on the full dataset and write the model artifact.

    After ``run()``, ``last_outcome`` holds the experiment outcome (including
    the fitted model and residual summary) and ``artifact_path`` the .pkl path.
    """

    stage_name = "train"

    def __init__(self, config: AppConfig, runs_dir: str | None = None) -> None:
        super().__init__(config, runs_dir=runs_dir)
        self.last_outcome: Optional[ExperimentOutcome] = None
        self.artifact_path: Optional[Path] = None

    def _execute(
        self,
        run: RunMetadata,
        df: Optional[pd.DataFrame] = None,
        spec: Optional[ExperimentSpec] = None,
        **kwargs,
    ) -> int:
        if df is None:
            raise ValueError("TrainStage.run() requires a 'df' DataFrame.")
        if spec is None:
            raise ValueError("TrainStage.run() requires a 'spec' ExperimentSpec.")

        outcome = run_experiment(
            df, spec, self.config, cache=cache_from_config(self.config), retrain=True
        )
        assert outcome.model is not None and outcome.residuals is not None

        artifact_path, meta_path = artifact_paths(
            Path(self.config.output.artifact_dir), spec.strategy, outcome.fingerprint
        )
        outcome.model.save(artifact_path)
        outcome.model.write_metadata(
            meta_path,
            strategy=spec.strategy,
            dataset_fingerprint=outcome.fingerprint,
            residual_rmse=outcome.residuals.rmse,
        )

        self.last_outcome = outcome
        self.artifact_path = artifact_path
        run.outputs = {
            "result":        outcome.result.model_dump(),
            "artifact_path": str(artifact_path),
        }
        logger.info("TrainStage wrote %s", artifact_path)
        return outcome.result.n_rows
