from __future__ import annotations
import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class AlignConfig:
    metric: str = "rating"
    max_entities: int = 6
    history_window: int = 8
    axis_window: int = 10


def get_align_config() -> AlignConfig:
    return AlignConfig(
        metric=os.getenv("RACEFORM_METRIC", "rating"),
        max_entities=_env_int("RACEFORM_MAX_ENTITIES", 6),
        history_window=_env_int("RACEFORM_HISTORY_WINDOW", 8),
        axis_window=_env_int("RACEFORM_AXIS_WINDOW", 10),
    )


@dataclass(frozen=True)
class ApiConfig:
    api_key: str | None = None
    rate_limit_n: int = 5
    rate_limit_window_sec: float = 1.0


def get_api_config() -> ApiConfig:
    return ApiConfig(
        api_key=os.getenv("API_KEY") or None,
        rate_limit_n=_env_int("RATE_LIMIT_N", 5),
        rate_limit_window_sec=_env_float("RATE_LIMIT_WINDOW_SEC", 1.0),
    )
