"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files
from matching.settings import MatchingSettings


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class RatebookImportSettings:
    """
    Runtime settings for ratebook ingestion.
    """

    batch_size: int = 100
    max_error_log: int = 100
    result_error_limit: int = 20
    log_row_errors: bool = True
    failure_ratio: float = 0.5


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@lru_cache(maxsize=1)
def get_ratebook_import_settings() -> RatebookImportSettings:
    """
    Return cached ratebook ingestion settings from environment variables.
    """

    return RatebookImportSettings(
        batch_size=max(1, _get_int_env("RATEBOOK_BATCH_SIZE", 100)),
        max_error_log=max(1, _get_int_env("RATEBOOK_MAX_ERROR_LOG", 100)),
        result_error_limit=max(1, _get_int_env("RATEBOOK_RESULT_ERROR_LIMIT", 20)),
        log_row_errors=_get_bool_env("RATEBOOK_LOG_ROW_ERRORS", True),
        failure_ratio=min(1.0, max(0.0, _get_float_env("RATEBOOK_FAILURE_RATIO", 0.5))),
    )


@lru_cache(maxsize=1)
def get_matching_settings() -> MatchingSettings:
    """
    Return cached CAP matching thresholds from environment variables.
    """

    defaults = MatchingSettings()
    return MatchingSettings(
        price_hard_reject_pence=max(
            0, _get_int_env("MATCH_PRICE_HARD_REJECT_PENCE", defaults.price_hard_reject_pence)
        ),
        price_tolerance_pence=max(
            0, _get_int_env("MATCH_PRICE_TOLERANCE_PENCE", defaults.price_tolerance_pence)
        ),
        high_confidence=min(100, max(0, _get_int_env("MATCH_HIGH_CONFIDENCE", defaults.high_confidence))),
        medium_confidence=min(
            100, max(0, _get_int_env("MATCH_MEDIUM_CONFIDENCE", defaults.medium_confidence))
        ),
        base_model_min_similarity=min(
            100,
            max(0, _get_int_env("MATCH_BASE_MODEL_MIN_SIMILARITY", defaults.base_model_min_similarity)),
        ),
        candidate_limit=max(1, _get_int_env("MATCH_CANDIDATE_LIMIT", defaults.candidate_limit)),
    )


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings(level=_get_str_env("LOG_LEVEL", "INFO").upper())
