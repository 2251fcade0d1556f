"""
Tests for boostprep/utils/logging.py.

What we test
------------
configure_logging():
  - File handler receives records at the configured level.
  - JSON lines carry ts/level/logger/msg plus experiment context.
  - Text lines end with ``| key=value`` context when a record carries it.
  - lightgbm, category_encoders, pyarrow and httpx loggers are held at WARNING.

experiment_context():
  - Drops None values; rejects unknown keys.

Integration:
  - build_design_matrix() logs its formula and zero-filled cell count as context.
"""

from __future__ import annotations

import json
import logging

import numpy as np
import pytest

from boostprep.config import LoggingConfig
from boostprep.features.design import build_design_matrix
from boostprep.utils.logging import QUIET_LOGGERS, configure_logging, experiment_context


@pytest.fixture(autouse=True)
def _reset_root_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def _flush() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


def test_file_handler_and_level(tmp_path):
    log_file = tmp_path / "logs" / "x.log"
    configure_logging(LoggingConfig(level="DEBUG", log_file=str(log_file)))
    logging.getLogger("boostprep.test").debug("hello %s", "there")
    _flush()
    assert logging.getLogger().level == logging.DEBUG
    assert "hello there" in log_file.read_text()


def test_json_format(tmp_path):
    log_file = tmp_path / "x.log"
    configure_logging(LoggingConfig(level="INFO", log_file=str(log_file), json_format=True))
    logging.getLogger("boostprep.test").info(
        "step done", extra=experiment_context(step="onehot", n_cols=17)
    )
    _flush()
    line = json.loads(log_file.read_text().strip().splitlines()[-1])
    assert line["level"] == "INFO"
    assert line["logger"] == "boostprep.test"
    assert line["msg"] == "step done"
    assert line["step"] == "onehot"
    assert line["n_cols"] == 17


def test_text_format_appends_context(tmp_path):
    log_file = tmp_path / "x.log"
    configure_logging(LoggingConfig(level="INFO", log_file=str(log_file)))
    log = logging.getLogger("boostprep.test")
    log.info("plain")
    log.info("cv", extra=experiment_context(formula="mpg ~ .", nfold=5))
    _flush()
    plain, cv = log_file.read_text().strip().splitlines()[-2:]
    assert plain.endswith("boostprep.test: plain")
    assert cv.endswith("boostprep.test: cv | formula='mpg ~ .' nfold=5")


def test_experiment_context():
    assert experiment_context(step="a", metric=None) == {"step": "a"}
    with pytest.raises(ValueError, match="colour"):
        experiment_context(colour="red")


def test_third_party_loggers_quietened(tmp_path):
    configure_logging(LoggingConfig(level="DEBUG", log_file=str(tmp_path / "x.log")))
    assert "category_encoders" in QUIET_LOGGERS
    assert "pyarrow" in QUIET_LOGGERS
    for name in QUIET_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_design_logs_zero_fill_context(toy_df, caplog):
    df = toy_df.copy()
    df.loc[1, "color"] = np.nan
    with caplog.at_level(logging.WARNING, logger="boostprep.features.design"):
        build_design_matrix(df, "y ~ color", sparse=True)
    record = next(r for r in caplog.records if hasattr(r, "zero_filled_cells"))
    assert record.formula == "y ~ color"
    assert record.zero_filled_cells == 2
