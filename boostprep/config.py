"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local overrides (gitignored)
  4. Environment variables        — ``BOOSTPREP_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Every pipeline stage and CLI command receives an ``AppConfig`` instance —
never raw dicts or individual env var lookups scattered through the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DataConfig(BaseModel):
    """Where the dataset lives and which columns play which role."""

    model_config = ConfigDict(frozen=True)

    source: str = "data/mtcars.csv"
    identifier_columns: list[str] = ["model"]
    target: str = "mpg"


class EncodingConfig(BaseModel):
    """Categorical columns and the one-hot level-retention switch."""

    model_config = ConfigDict(frozen=True)

    categorical_columns: list[str] = ["cyl", "gear", "carb"]
    keep_all_levels: bool = False


class BoostConfig(BaseModel):
    """LightGBM hyperparameters shared by CV and full retraining.

    Defaults are sized for small tables (tens of rows): LightGBM's stock
    ``min_data_in_leaf=20`` would refuse to split mtcars at all.
    """

    model_config = ConfigDict(frozen=True)

    objective: str = "regression"
    metric: str = "rmse"
    n_rounds: int = 50
    learning_rate: float = 0.1
    num_leaves: int = 7
    max_depth: int = -1
    min_data_in_leaf: int = 3
    feature_fraction: float = 1.0
    bagging_fraction: float = 1.0
    bagging_freq: int = 0
    seed: int = 42

    @field_validator("n_rounds")
    @classmethod
    def validate_rounds(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"n_rounds must be >= 1, got {v}.")
        return v

    @field_validator("learning_rate")
    @classmethod
    def validate_learning_rate(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"learning_rate must be in (0.0, 1.0], got {v}.")
        return v

    def lgb_params(self) -> dict[str, Any]:
        """Return the LightGBM parameter dict (everything except round count)."""
        return {
            "objective":          self.objective,
            "metric":             self.metric,
            "learning_rate":      self.learning_rate,
            "num_leaves":         self.num_leaves,
            "max_depth":          self.max_depth,
            "min_data_in_leaf":   self.min_data_in_leaf,
            "min_data_in_bin":    1,
            "feature_pre_filter": False,
            "feature_fraction":   self.feature_fraction,
            "bagging_fraction":   self.bagging_fraction,
            "bagging_freq":       self.bagging_freq,
            "seed":               self.seed,
            "verbose":            -1,
        }


class CVConfig(BaseModel):
    """k-fold cross-validation settings."""

    model_config = ConfigDict(frozen=True)

    nfold: int = 5
    shuffle: bool = True
    seed: int = 42

    @field_validator("nfold")
    @classmethod
    def validate_nfold(cls, v: int) -> int:
        if v < 2:
            raise ValueError(f"nfold must be >= 2, got {v}.")
        return v


class MissingConfig(BaseModel):
    """Synthetic missing-value injection for the missing-data walkthrough steps."""

    model_config = ConfigDict(frozen=True)

    column: str = "cyl"
    fraction: float = 0.15
    seed: int = 7

    @field_validator("fraction")
    @classmethod
    def validate_fraction(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"fraction must be in (0.0, 1.0), got {v}.")
        return v


class CacheConfig(BaseModel):
    """Encoded design-matrix cache."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    cache_dir: str = "data/cache"


class OutputConfig(BaseModel):
    """Filesystem paths for run records and model artifacts."""

    model_config = ConfigDict(frozen=True)

    runs_dir: str = "data/outputs/runs"
    artifact_dir: str = "data/outputs/models"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/boostprep.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()``, which merges TOML + .env + env vars.
    """

    model_config = ConfigDict(frozen=True)

    data: DataConfig = DataConfig()
    encoding: EncodingConfig = EncodingConfig()
    boost: BoostConfig = BoostConfig()
    cv: CVConfig = CVConfig()
    missing: MissingConfig = MissingConfig()
    cache: CacheConfig = CacheConfig()
    output: OutputConfig = OutputConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def resolve_project_path(path: str, root: Optional[Path] = None) -> Path:
    """Resolve a configured relative path against the project root.

    Absolute paths are returned unchanged.
    """
    p = Path(path)
    if p.is_absolute():
        return p
    return (root or _find_project_root()) / p


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the config file does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    raw = _apply_env_overrides(raw)

    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply BOOSTPREP_* env vars to the raw config dict.

    Supported overrides:
      BOOSTPREP_DATA_SOURCE → raw["data"]["source"]
      BOOSTPREP_LOG_LEVEL   → raw["logging"]["level"]
      BOOSTPREP_CACHE_DIR   → raw["cache"]["cache_dir"]
      BOOSTPREP_DEBUG       → raw["debug"]
    """
    if source := os.environ.get("BOOSTPREP_DATA_SOURCE"):
        raw.setdefault("data", {})["source"] = source

    if log_level := os.environ.get("BOOSTPREP_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if cache_dir := os.environ.get("BOOSTPREP_CACHE_DIR"):
        raw.setdefault("cache", {})["cache_dir"] = cache_dir

    if debug := os.environ.get("BOOSTPREP_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        data=DataConfig(**raw.get("data", {})),
        encoding=EncodingConfig(**raw.get("encoding", {})),
        boost=BoostConfig(**raw.get("boost", {})),
        cv=CVConfig(**raw.get("cv", {})),
        missing=MissingConfig(**raw.get("missing", {})),
        cache=CacheConfig(**raw.get("cache", {})),
        output=OutputConfig(**raw.get("output", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
