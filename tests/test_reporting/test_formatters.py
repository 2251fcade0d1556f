"""
Tests for boostprep/reporting/formatters.py.

What we test
------------
format_cv_table():
  - Round 1, every N-th round and the final round are printed.
  - The best round is marked and summarised.

format_comparison():
  - One row per result; zero-filled steps are flagged as a pitfall.
  - Empty input prints a placeholder.

format_residuals():
  - Summary statistics and the largest residual rows.

write_results_json():
  - Writes a JSON list of result dicts, creating parent dirs.
"""

from __future__ import annotations

import json

from boostprep.ml.booster import ResidualSummary
from boostprep.ml.cv import CVResult
from boostprep.models.meta import ExperimentResult
from boostprep.reporting.formatters import (
    format_comparison,
    format_cv_table,
    format_residuals,
    write_results_json,
)


def _cv(n: int = 25) -> CVResult:
    test = [5.0 - 0.1 * i for i in range(n)]
    test[-1] = 4.0  # best is round n - 1
    return CVResult(
        metric="rmse", n_rounds=n, nfold=5,
        train_mean=[4.0 - 0.1 * i for i in range(n)], train_std=[0.1] * n,
        test_mean=test, test_std=[0.2] * n,
    )


def _result(step: str, zero_filled: int = 0) -> ExperimentResult:
    return ExperimentResult(
        step=step, description=f"{step} description", strategy="onehot",
        formula="mpg ~ .", n_rows=32, n_cols=17, columns=["(Intercept)"],
        zero_filled_cells=zero_filled, metric="rmse", n_rounds=50, nfold=5,
        final_train=1.2, final_test=3.1, best_round=40, best_test=3.0,
    )


# ── format_cv_table() ─────────────────────────────────────────────────────────

def test_cv_table_rows():
    text = format_cv_table(_cv(25), every=10)
    rows = [ln.split()[0] for ln in text.splitlines() if ln.strip()[:1].isdigit()]
    assert rows == ["1", "10", "20", "25"]


def test_cv_table_marks_best_round():
    res = _cv(25)
    text = format_cv_table(res, every=10)
    assert res.best_round == 24
    assert "Best round: 24" in text
    assert "5-fold CV, 25 rounds (rmse)" in text


def test_cv_table_every_one_prints_all():
    text = format_cv_table(_cv(5), every=1)
    rows = [ln for ln in text.splitlines() if ln.strip()[:1].isdigit()]
    assert len(rows) == 5


# ── format_comparison() ───────────────────────────────────────────────────────

def test_comparison_rows_and_pitfall_flag():
    text = format_comparison([_result("onehot"), _result("missing_zero_fill", zero_filled=10)])
    lines = text.splitlines()
    onehot_line = next(ln for ln in lines if ln.strip().startswith("onehot "))
    zero_line = next(ln for ln in lines if ln.strip().startswith("missing_zero_fill "))
    assert "pitfall" not in onehot_line
    assert "<- pitfall" in zero_line
    assert "rmse@best" in text
    assert "[missing_zero_fill] missing_zero_fill description" in text


def test_comparison_empty():
    assert "(no results)" in format_comparison([])


# ── format_residuals() ────────────────────────────────────────────────────────

def test_residuals_text():
    summary = ResidualSummary(
        row_index=[0, 1, 2],
        actual=[21.0, 22.8, 30.4],
        predicted=[20.5, 23.0, 27.4],
        residuals=[0.5, -0.2, 3.0],
        mean=1.1, std=1.4, max_abs=3.0, rmse=1.75,
    )
    text = format_residuals(summary, top=2)
    assert "RMSE:    1.7500" in text
    assert "Largest 2 residual(s)" in text
    worst = [ln for ln in text.splitlines() if "resid" in ln and "actual" in ln]
    assert worst[0].strip().startswith("2")
    assert "+3.000" in worst[0]


# ── write_results_json() ──────────────────────────────────────────────────────

def test_write_results_json(tmp_path):
    path = write_results_json([_result("a"), _result("b")], tmp_path / "out" / "r.json")
    payload = json.loads(path.read_text())
    assert [p["step"] for p in payload] == ["a", "b"]
    assert payload[0]["n_cols"] == 17
