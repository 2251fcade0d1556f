"""
One encode → design matrix → cross-validate (→ retrain) experiment.

Experiment flow
---------------
  1. Optionally inject missing values into ``config.missing.column``.
  2. Encode ``config.encoding.categorical_columns`` with the experiment's strategy.
  3. Build the design matrix from the experiment's formula (through the cache,
     keyed by the pre-encoding dataset fingerprint + strategy + formula +
     build options).  Sparse builds bypass the cache.
  4. Run k-fold CV for ``config.boost.n_rounds`` rounds.
  5. Optionally retrain on all rows and summarise in-sample residuals.

``run_experiment()`` is the functional API used by the walkthrough and the
CLI; ``ExperimentStage`` wraps it with a persisted run record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from boostprep.cache.fingerprint import cache_key, dataset_fingerprint
from boostprep.cache.matrix_cache import MatrixCache
from boostprep.config import AppConfig, resolve_project_path
from boostprep.data.missing import inject_missing
from boostprep.encoding.registry import encode_frame, get_encoder
from boostprep.features.design import DesignMatrix, build_design_matrix
from boostprep.ml.booster import BoostedRegressor, ResidualSummary
from boostprep.ml.cv import CVResult, cross_validate
from boostprep.models.meta import ExperimentResult, RunMetadata
from boostprep.pipeline.base import PipelineStage
from boostprep.utils.logging import experiment_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExperimentSpec:
    """Settings for one experiment.

    ``formula`` may contain ``{target}``, filled from ``config.data.target``.
    """

    step: str
    strategy: str
    formula: str = "{target} ~ ."
    description: str = ""
    na_action: str = "omit"
    keep_all_levels: bool = False
    sparse: bool = False
    inject_missing: bool = False

    def formula_for(self, target: str) -> str:
        return self.formula.format(target=target)


@dataclass
class ExperimentOutcome:
    """Everything one experiment produced."""

    result: ExperimentResult
    design: DesignMatrix
    cv: CVResult
    fingerprint: str
    residuals: Optional[ResidualSummary] = None
    model: Optional[BoostedRegressor] = field(default=None, repr=False)


def prepare_frame(df: pd.DataFrame, spec: ExperimentSpec, config: AppConfig) -> pd.DataFrame:
    """Apply missing-value injection if the experiment asks for it."""
    if not spec.inject_missing:
        return df
    return inject_missing(
        df,
        config.missing.column,
        fraction=config.missing.fraction,
        seed=config.missing.seed,
    )


def build_experiment_design(
    df: pd.DataFrame,
    spec: ExperimentSpec,
    config: AppConfig,
    cache: Optional[MatrixCache] = None,
) -> tuple[DesignMatrix, str, bool]:
    """Encode + build the design matrix for ``spec``.

    Returns:
        ``(design, fingerprint, cache_hit)``; ``fingerprint`` is of the frame
        after missing-value injection and before encoding.
    """
    get_encoder(spec.strategy)  # fail fast on unknown strategies
    frame = prepare_frame(df, spec, config)
    formula = spec.formula_for(config.data.target)
    columns = list(config.encoding.categorical_columns)
    keep_all = spec.keep_all_levels or config.encoding.keep_all_levels

    def _build() -> DesignMatrix:
        encoded = encode_frame(frame, spec.strategy, columns)
        return build_design_matrix(
            encoded,
            formula,
            na_action=spec.na_action,
            keep_all_levels=keep_all,
            sparse=spec.sparse,
        )

    fingerprint = dataset_fingerprint(frame)
    if cache is None or spec.sparse:
        return _build(), fingerprint, False

    key = cache_key(
        fingerprint,
        spec.strategy,
        formula,
        columns=columns,
        na_action=spec.na_action,
        keep_all_levels=keep_all,
    )
    design, hit = cache.get_or_build(key, _build)
    return design, fingerprint, hit


def run_experiment(
    df: pd.DataFrame,
    spec: ExperimentSpec,
    config: AppConfig,
    cache: Optional[MatrixCache] = None,
    retrain: bool = False,
) -> ExperimentOutcome:
    """Run one experiment end to end.

    Raises:
        ValueError / KeyError / FormulaError: Propagated from encoding,
            design construction or CV.
    """
    formula = spec.formula_for(config.data.target)
    logger.info(
        "Experiment [%s] strategy=%s formula='%s'", spec.step, spec.strategy, formula,
        extra=experiment_context(step=spec.step, strategy=spec.strategy, formula=formula),
    )

    design, fingerprint, hit = build_experiment_design(df, spec, config, cache)

    params = config.boost.lgb_params()
    cv = cross_validate(
        design,
        n_rounds=config.boost.n_rounds,
        nfold=config.cv.nfold,
        params=params,
        shuffle=config.cv.shuffle,
        seed=config.cv.seed,
    )

    model: Optional[BoostedRegressor] = None
    residuals: Optional[ResidualSummary] = None
    if retrain:
        model = BoostedRegressor(n_rounds=config.boost.n_rounds, **params).fit(design)
        residuals = model.residuals(design)
        logger.info(
            "Experiment [%s] residuals: rmse=%.4f max_abs=%.4f",
            spec.step, residuals.rmse, residuals.max_abs,
        )

    result = ExperimentResult(
        step=spec.step,
        description=spec.description,
        strategy=spec.strategy,
        formula=design.formula,
        n_rows=design.n_rows,
        n_cols=design.n_cols,
        columns=list(design.columns),
        dropped_rows=len(design.dropped_rows),
        zero_filled_cells=design.zero_filled_cells,
        metric=cv.metric,
        n_rounds=cv.n_rounds,
        nfold=cv.nfold,
        final_train=cv.final_train,
        final_test=cv.final_test,
        best_round=cv.best_round,
        best_test=cv.best_test,
        residual_rmse=residuals.rmse if residuals is not None else None,
        cache_hit=hit,
    )
    return ExperimentOutcome(
        result=result,
        design=design,
        cv=cv,
        fingerprint=fingerprint,
        residuals=residuals,
        model=model,
    )


def cache_from_config(config: AppConfig) -> MatrixCache:
    return MatrixCache(
        resolve_project_path(config.cache.cache_dir), enabled=config.cache.enabled
    )


class ExperimentStage(PipelineStage):
    """Run a single experiment and record it.

    After ``run()``, ``last_outcome`` holds the full ``ExperimentOutcome``.
    """

    stage_name = "experiment"

    def __init__(self, config: AppConfig, runs_dir: str | None = None) -> None:
        super().__init__(config, runs_dir=runs_dir)
        self.last_outcome: Optional[ExperimentOutcome] = None

    def _execute(
        self,
        run: RunMetadata,
        df: Optional[pd.DataFrame] = None,
        spec: Optional[ExperimentSpec] = None,
        retrain: bool = False,
        **kwargs,
    ) -> int:
        if df is None:
            raise ValueError("ExperimentStage.run() requires a 'df' DataFrame.")
        if spec is None:
            raise ValueError("ExperimentStage.run() requires a 'spec' ExperimentSpec.")

        outcome = run_experiment(
            df, spec, self.config, cache=cache_from_config(self.config), retrain=retrain
        )
        self.last_outcome = outcome
        run.outputs = {"result": outcome.result.model_dump()}
        return outcome.result.n_rows
