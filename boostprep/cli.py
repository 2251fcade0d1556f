"""
boostprep — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Load the dataset / validate inputs.
  4. Execute the action (encode, CV, train, walkthrough, ...).
  5. Report the result to stdout.

Install and run::

    pip install -e .
    boostprep --help
    boostprep validate-config
    boostprep describe-data
    boostprep encode --strategy onehot --no-intercept
    boostprep cv --strategy binary --rounds 100 --folds 5
    boostprep train --strategy onehot --all-levels
    boostprep walkthrough --step onehot --step onehot_all_levels --json out.json
    boostprep cache-clear
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import typer

app = typer.Typer(
    name="boostprep",
    help="Tabular data preparation + gradient-boosted trees, step by step.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from boostprep.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from boostprep.utils.logging import configure_logging
    configure_logging(config.logging)


def _fail(exc: BaseException) -> typer.Exit:
    typer.echo(f"[ERROR] {exc}", err=True)
    return typer.Exit(code=1)


def _load_data_or_exit(config):
    """Load the configured dataset, exiting with [ERROR] on failure."""
    from boostprep.data.loader import load_dataset, resolve_source

    try:
        return load_dataset(
            resolve_source(config.data.source),
            identifier_columns=list(config.data.identifier_columns),
        )
    except Exception as exc:
        raise _fail(exc)


def _with_overrides(config, rounds: Optional[int] = None, folds: Optional[int] = None):
    """Return ``config`` with the round / fold counts replaced when given."""
    update = {}
    if rounds is not None:
        update["boost"] = config.boost.model_copy(update={"n_rounds": rounds})
    if folds is not None:
        update["cv"] = config.cv.model_copy(update={"nfold": folds})
    return config.model_copy(update=update) if update else config


def _adhoc_spec(strategy: str, no_intercept: bool, all_levels: bool, step: str, **extra):
    from boostprep.pipeline.experiment import ExperimentSpec

    return ExperimentSpec(
        step=step,
        strategy=strategy,
        formula="{target} ~ . - 1" if no_intercept else "{target} ~ .",
        keep_all_levels=all_levels,
        **extra,
    )


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Data source:      {config.data.source}")
    typer.echo(f"  Target:           {config.data.target}")
    typer.echo(f"  Categoricals:     {', '.join(config.encoding.categorical_columns)}")
    typer.echo(f"  Boost rounds:     {config.boost.n_rounds}")
    typer.echo(f"  CV folds:         {config.cv.nfold}")
    typer.echo(f"  Cache:            {config.cache.cache_dir} (enabled={config.cache.enabled})")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config is valid.")


@app.command("describe-data")
def describe_data(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Load the dataset and print its columns, dtypes and missing counts."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    df = _load_data_or_exit(config)

    categoricals = set(config.encoding.categorical_columns)
    typer.echo(f"Dataset: {config.data.source}")
    typer.echo(f"  Rows: {len(df)}   Columns: {df.shape[1]}   Target: {config.data.target}")
    typer.echo("")
    header = f"  {'Column':<10}  {'dtype':<8}  {'Missing':>7}  {'Distinct':>8}  Role"
    typer.echo(header)
    typer.echo("  " + "-" * (len(header) - 2))
    for col in df.columns:
        if col == config.data.target:
            role = "target"
        elif col in categoricals:
            levels = sorted(df[col].dropna().unique().tolist())
            role = "categorical " + str(levels)
        else:
            role = "numeric"
        typer.echo(
            f"  {col:<10}  {str(df[col].dtype):<8}  {int(df[col].isna().sum()):>7}  "
            f"{df[col].nunique():>8}  {role}"
        )


@app.command("encode")
def encode(
    strategy: str = typer.Option(
        "onehot",
        "--strategy",
        help="Encoding strategy: numeric, binary or onehot.",
    ),
    no_intercept: bool = typer.Option(
        False,
        "--no-intercept",
        help="Build the matrix without an intercept column (formula '. - 1').",
    ),
    all_levels: bool = typer.Option(
        False,
        "--all-levels",
        help="Keep every level of every factor (one-hot only).",
    ),
    inject_missing: bool = typer.Option(
        False,
        "--inject-missing",
        help="Blank a fraction of [missing].column before encoding.",
    ),
    sparse: bool = typer.Option(
        False,
        "--sparse",
        help="Use the sparse builder (zero-fills missing levels).",
    ),
    head: int = typer.Option(5, "--head", help="Rows of the matrix to print."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Encode the categoricals and print the resulting design matrix."""
    from boostprep.features.quality import build_quality_report
    from boostprep.pipeline.experiment import build_experiment_design, cache_from_config

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    df = _load_data_or_exit(config)

    spec = _adhoc_spec(
        strategy, no_intercept, all_levels, step="encode",
        inject_missing=inject_missing, sparse=sparse,
    )

    try:
        design, fingerprint, hit = build_experiment_design(
            df, spec, config, cache=cache_from_config(config)
        )
    except Exception as exc:
        raise _fail(exc)

    report = build_quality_report(design)
    typer.echo(f"Design '{design.formula}' [{strategy}]{' (cached)' if hit else ''}")
    typer.echo(f"  Dataset fingerprint: {fingerprint[:16]}")
    typer.echo(f"  Shape:   {design.n_rows} x {design.n_cols}{' (sparse)' if design.is_sparse else ''}")
    typer.echo(f"  Columns: {', '.join(design.columns)}")
    typer.echo(f"  Dropped rows:      {report.dropped_rows}")
    typer.echo(f"  Zero-filled cells: {report.zero_filled_cells}")
    if report.high_missingness_cols:
        typer.echo(f"  High missingness:  {', '.join(report.high_missingness_cols)}")
    if report.constant_cols:
        typer.echo(f"  Constant columns:  {', '.join(report.constant_cols)}")
    if head > 0:
        typer.echo("")
        typer.echo(design.to_dense().head(head).to_string())
    if not report.is_clean:
        typer.echo("")
        typer.echo("[WARN] Missing levels were zero-filled; they now read as the baseline level.")


@app.command("cv")
def cv(
    strategy: str = typer.Option(
        "onehot",
        "--strategy",
        help="Encoding strategy: numeric, binary or onehot.",
    ),
    rounds: Optional[int] = typer.Option(
        None,
        "--rounds",
        help="Boosting rounds (default: [boost].n_rounds).",
    ),
    folds: Optional[int] = typer.Option(
        None,
        "--folds",
        help="CV folds (default: [cv].nfold).",
    ),
    all_levels: bool = typer.Option(
        False,
        "--all-levels",
        help="Keep every level of every factor (one-hot only).",
    ),
    no_intercept: bool = typer.Option(
        False,
        "--no-intercept",
        help="Build the matrix without an intercept column.",
    ),
    every: int = typer.Option(10, "--every", help="Print every N-th round."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Cross-validate one encoding strategy and print the per-round curve."""
    from boostprep.pipeline.experiment import ExperimentStage
    from boostprep.reporting.formatters import format_cv_table

    config = _with_overrides(_load_config_or_exit(config_path), rounds, folds)
    _configure_logging(config)
    df = _load_data_or_exit(config)

    spec = _adhoc_spec(strategy, no_intercept, all_levels, step=f"cv_{strategy}")
    stage = ExperimentStage(config=config)
    try:
        run = stage.run(df=df, spec=spec)
    except Exception as exc:
        raise _fail(exc)

    outcome = stage.last_outcome
    typer.echo(f"cv | strategy={strategy} | formula='{outcome.result.formula}' | cols={outcome.result.n_cols}")
    typer.echo(format_cv_table(outcome.cv, every=every))
    typer.echo("")
    typer.echo(f"[OK] status={run.status} run={run.run_slug}")


@app.command("train")
def train(
    strategy: str = typer.Option(
        "onehot",
        "--strategy",
        help="Encoding strategy: numeric, binary or onehot.",
    ),
    rounds: Optional[int] = typer.Option(
        None,
        "--rounds",
        help="Boosting rounds (default: [boost].n_rounds).",
    ),
    all_levels: bool = typer.Option(
        False,
        "--all-levels",
        help="Keep every level of every factor (one-hot only).",
    ),
    no_intercept: bool = typer.Option(
        False,
        "--no-intercept",
        help="Build the matrix without an intercept column.",
    ),
    top: int = typer.Option(5, "--top", help="Largest residuals to list."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Cross-validate, retrain on all rows, print residuals and save the model.

    \b
    Artifacts:
      <output.artifact_dir>/lgbm_<strategy>_<fingerprint>_<date>.pkl
      <output.artifact_dir>/lgbm_<strategy>_<fingerprint>_<date>.json
    """
    from boostprep.pipeline.train import TrainStage
    from boostprep.reporting.formatters import format_residuals

    config = _with_overrides(_load_config_or_exit(config_path), rounds)
    _configure_logging(config)
    df = _load_data_or_exit(config)

    spec = _adhoc_spec(strategy, no_intercept, all_levels, step=f"train_{strategy}")
    stage = TrainStage(config=config)
    try:
        stage.run(df=df, spec=spec)
    except Exception as exc:
        raise _fail(exc)

    outcome = stage.last_outcome
    result = outcome.result
    typer.echo(f"train | strategy={strategy} | formula='{result.formula}'")
    typer.echo(
        f"  CV {result.metric}: final={result.final_test:.4f} "
        f"best={result.best_test:.4f} @ round {result.best_round}"
    )
    typer.echo(format_residuals(outcome.residuals, top=top))

    importance = outcome.model.feature_importance()
    if importance:
        typer.echo("")
        typer.echo("  Feature importance (gain):")
        for name, gain in list(importance.items())[:10]:
            typer.echo(f"    {name:<16} {gain:>10.2f}")

    typer.echo("")
    typer.echo(f"[OK] Model saved: {stage.artifact_path}")


@app.command("walkthrough")
def walkthrough(
    step: Optional[List[str]] = typer.Option(
        None,
        "--step",
        help="Run only this step (repeatable). Default: all steps in order.",
    ),
    retrain: bool = typer.Option(
        False,
        "--retrain",
        help="Also retrain on all rows and record the residual RMSE per step.",
    ),
    json_path: Optional[str] = typer.Option(
        None,
        "--json",
        help="Write the step results to this JSON file.",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Run the encoding walkthrough and print a comparison of every step.

    \b
    Steps:
      numeric               categoricals as plain numbers (mpg ~ .)
      numeric_no_intercept  same without the intercept (mpg ~ . - 1)
      binary                categoricals as base-2 digit columns
      onehot                indicators; only the first factor keeps all levels
      onehot_all_levels     indicators with every level retained
      missing_zero_fill     injected NaN + sparse builder (pitfall)
      missing_propagated    injected NaN + na_action='pass' (corrected)
    """
    from boostprep.pipeline.walkthrough import WalkthroughStage
    from boostprep.reporting.formatters import format_comparison, write_results_json

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    df = _load_data_or_exit(config)

    stage = WalkthroughStage(config=config)
    try:
        run = stage.run(df=df, steps=step, retrain=retrain)
    except Exception as exc:
        raise _fail(exc)

    typer.echo(format_comparison(stage.results))

    if json_path:
        out = write_results_json(stage.results, Path(json_path))
        typer.echo("")
        typer.echo(f"  Results written: {out}")

    typer.echo("")
    typer.echo(f"[OK] {run.rows_processed} step(s) complete. run={run.run_slug}")


@app.command("cache-clear")
def cache_clear(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Delete every cached design matrix."""
    from boostprep.pipeline.experiment import cache_from_config

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    cache = cache_from_config(config)
    removed = cache.clear()
    typer.echo(f"[OK] Removed {removed} cache entr{'y' if removed == 1 else 'ies'} from {cache.cache_dir}")


if __name__ == "__main__":
    app()
