"""
The full encoding walkthrough.

``WALKTHROUGH_STEPS`` fixes the narrative order:

  numeric               categoricals kept as numbers, ``mpg ~ .``
  numeric_no_intercept  same, without the intercept column
  binary                categoricals as base-2 digit columns
  onehot                R default contrasts: first factor k levels, later k-1
  onehot_all_levels     level-retention correction: k levels for every factor
  missing_zero_fill     injected NaN + sparse builder: missing → baseline (wrong)
  missing_propagated    injected NaN + dense na_action="pass": missing stays NaN

All steps share one dataset, one round count and one fold seed, so their CV
errors are directly comparable.  A failing step stops the walkthrough.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import pandas as pd

from boostprep.cache.matrix_cache import MatrixCache
from boostprep.config import AppConfig
from boostprep.data.loader import load_dataset, resolve_source
from boostprep.models.meta import ExperimentResult, RunMetadata
from boostprep.pipeline.base import PipelineStage
from boostprep.pipeline.experiment import (
    ExperimentSpec,
    cache_from_config,
    run_experiment,
)

logger = logging.getLogger(__name__)

WALKTHROUGH_STEPS: list[ExperimentSpec] = [
    ExperimentSpec(
        step="numeric",
        strategy="numeric",
        formula="{target} ~ .",
        description="Categoricals kept as plain numbers; intercept column included.",
    ),
    ExperimentSpec(
        step="numeric_no_intercept",
        strategy="numeric",
        formula="{target} ~ . - 1",
        description="Same matrix without the constant intercept column.",
    ),
    ExperimentSpec(
        step="binary",
        strategy="binary",
        formula="{target} ~ . - 1",
        description="Each categorical written as base-2 digit columns.",
    ),
    ExperimentSpec(
        step="onehot",
        strategy="onehot",
        formula="{target} ~ . - 1",
        description="Indicator columns; only the first factor keeps all levels.",
    ),
    ExperimentSpec(
        step="onehot_all_levels",
        strategy="onehot",
        formula="{target} ~ . - 1",
        keep_all_levels=True,
        description="Indicator columns with every level of every factor retained.",
    ),
    ExperimentSpec(
        step="missing_zero_fill",
        strategy="onehot",
        formula="{target} ~ .",
        sparse=True,
        inject_missing=True,
        description="Injected NaN, sparse builder: missing levels become the baseline.",
    ),
    ExperimentSpec(
        step="missing_propagated",
        strategy="onehot",
        formula="{target} ~ .",
        na_action="pass",
        inject_missing=True,
        description="Injected NaN, dense builder with na_action='pass': missing stays missing.",
    ),
]

STEP_NAMES: list[str] = [s.step for s in WALKTHROUGH_STEPS]


def select_steps(names: Optional[Sequence[str]] = None) -> list[ExperimentSpec]:
    """Return walkthrough specs for ``names`` (all steps when None), in walkthrough order.

    Raises:
        ValueError: Unknown step name.
    """
    if not names:
        return list(WALKTHROUGH_STEPS)
    unknown = [n for n in names if n not in STEP_NAMES]
    if unknown:
        raise ValueError(f"Unknown walkthrough step(s) {unknown}. Valid: {STEP_NAMES}")
    wanted = set(names)
    return [s for s in WALKTHROUGH_STEPS if s.step in wanted]


def run_walkthrough(
    config: AppConfig,
    df: Optional[pd.DataFrame] = None,
    steps: Optional[Sequence[str]] = None,
    cache: Optional[MatrixCache] = None,
    retrain: bool = False,
) -> list[ExperimentResult]:
    """Run the walkthrough steps in order.

    Args:
        config:  Application config.
        df:      Dataset; loaded from ``config.data`` when None.
        steps:   Step names to run; all when None.
        cache:   Design-matrix cache; none when None.
        retrain: Also retrain on all rows and record residual RMSE per step.

    Returns:
        One ``ExperimentResult`` per step, in walkthrough order.
    """
    specs = select_steps(steps)
    if df is None:
        df = load_dataset(
            resolve_source(config.data.source),
            identifier_columns=list(config.data.identifier_columns),
        )

    results: list[ExperimentResult] = []
    for i, spec in enumerate(specs, start=1):
        logger.info("Walkthrough step %d/%d: %s", i, len(specs), spec.step)
        outcome = run_experiment(df, spec, config, cache=cache, retrain=retrain)
        results.append(outcome.result)

    return results


class WalkthroughStage(PipelineStage):
    """Run the walkthrough and record every step's result."""

    stage_name = "walkthrough"

    def __init__(self, config: AppConfig, runs_dir: str | None = None) -> None:
        super().__init__(config, runs_dir=runs_dir)
        self.results: list[ExperimentResult] = []

    def _execute(
        self,
        run: RunMetadata,
        df: Optional[pd.DataFrame] = None,
        steps: Optional[Sequence[str]] = None,
        retrain: bool = False,
        **kwargs,
    ) -> int:
        self.results = run_walkthrough(
            self.config,
            df=df,
            steps=steps,
            cache=cache_from_config(self.config),
            retrain=retrain,
        )
        run.outputs = {"results": [r.model_dump() for r in self.results]}
        return len(self.results)
