"""
ASCII terminal formatters for CLI commands.

All formatters accept result objects and return plain multi-line strings
suitable for ``typer.echo()``.

Comparison table
----------------
``format_comparison()`` prints one row per walkthrough step.  The ``Zero-fill``
column is the number of indicator cells that were silently set to 0 for a
missing level; any non-zero value there is flagged with ``<- pitfall``::

  Step                  Strategy   Cols  Dropped  Zero-fill  Best  rmse@best  rmse@final
  missing_zero_fill     onehot       11        0         10    38     2.9113      3.0210  <- pitfall
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from boostprep.ml.booster import ResidualSummary
from boostprep.ml.cv import CVResult
from boostprep.models.meta import ExperimentResult


def _fmt(value: float | None, width: int = 10) -> str:
    if value is None:
        return f"{'-':>{width}}"
    return f"{value:>{width}.4f}"


# ── CV curve ──────────────────────────────────────────────────────────────────


def format_cv_table(result: CVResult, every: int = 10) -> str:
    """Format the per-round CV curve.

    Prints round 1, every ``every``-th round, and the final round.

    Args:
        result: Output of ``cross_validate()``.
        every:  Row stride (>= 1).

    Returns:
        Multi-line string.
    """
    every = max(1, every)
    metric = result.metric
    lines: list[str] = []
    lines.append("")
    lines.append(f"=== {result.nfold}-fold CV, {result.n_rounds} rounds ({metric}) ===")
    header = (
        f"  {'Round':>5}  {'train-mean':>10}  {'train-std':>10}  "
        f"{'test-mean':>10}  {'test-std':>10}"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))

    rounds = sorted(
        {1, result.n_rounds} | set(range(every, result.n_rounds + 1, every))
    )
    for r in rounds:
        i = r - 1
        marker = "  *" if r == result.best_round else ""
        lines.append(
            f"  {r:>5}  {_fmt(result.train_mean[i])}  {_fmt(result.train_std[i])}  "
            f"{_fmt(result.test_mean[i])}  {_fmt(result.test_std[i])}{marker}"
        )
    lines.append("")
    lines.append(
        f"  Best round: {result.best_round} (test {metric} {result.best_test:.4f}); "
        f"final test {metric} {result.final_test:.4f}"
    )
    return "\n".join(lines)


# ── Walkthrough comparison ────────────────────────────────────────────────────


def format_comparison(results: Sequence[ExperimentResult]) -> str:
    """Format one line per experiment, in run order."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Walkthrough Comparison ===")
    if not results:
        lines.append("  (no results)")
        return "\n".join(lines)

    metric = results[0].metric
    header = (
        f"  {'Step':<22}  {'Strategy':<8}  {'Cols':>4}  {'Dropped':>7}  "
        f"{'Zero-fill':>9}  {'Best':>4}  {metric + '@best':>10}  {metric + '@final':>11}"
    )
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for r in results:
        flag = "  <- pitfall" if r.zero_filled_cells else ""
        lines.append(
            f"  {r.step[:22]:<22}  {r.strategy:<8}  {r.n_cols:>4}  {r.dropped_rows:>7}  "
            f"{r.zero_filled_cells:>9}  {r.best_round:>4}  {_fmt(r.best_test)}  "
            f"{_fmt(r.final_test, 11)}{flag}"
        )

    for r in results:
        if r.description:
            lines.append("")
            lines.append(f"  [{r.step}] {r.description}")
            lines.append(f"    formula: {r.formula}")
    return "\n".join(lines)


# ── Residuals ─────────────────────────────────────────────────────────────────


def format_residuals(summary: ResidualSummary, top: int = 5) -> str:
    """Format a residual summary and the ``top`` worst-fitted rows."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== In-sample Residuals (actual - predicted) ===")
    lines.append(f"  Rows:    {len(summary.residuals)}")
    lines.append(f"  Mean:    {summary.mean:+.4f}")
    lines.append(f"  Std:     {summary.std:.4f}")
    lines.append(f"  RMSE:    {summary.rmse:.4f}")
    lines.append(f"  Max |r|: {summary.max_abs:.4f}")

    worst = summary.largest(top)
    if worst:
        lines.append("")
        lines.append(f"  Largest {len(worst)} residual(s):")
        pos = {label: i for i, label in enumerate(summary.row_index)}
        for label, resid in worst:
            i = pos[label]
            lines.append(
                f"    {str(label)[:24]:<24}  actual {summary.actual[i]:>7.2f}  "
                f"predicted {summary.predicted[i]:>7.2f}  resid {resid:+.3f}"
            )
    return "\n".join(lines)


# ── Export ────────────────────────────────────────────────────────────────────


def write_results_json(results: Sequence[ExperimentResult], path: Path) -> Path:
    """Write ``results`` to a pretty-printed JSON list.

    Returns:
        ``path`` as written (parent dirs created if missing).
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [r.model_dump() for r in results]
    path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
    return path
