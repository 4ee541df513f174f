"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

SEARCH_MODES = ("grid", "single")


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class EngineConfig:
    """Tunables for the grid planner, search client and pacer.

    ``grid_step_degrees`` is an empirical spacing chosen so that neighbouring
    cells overlap at the default radius; it does not guarantee full coverage
    of large or irregular areas.
    """

    grid_step_degrees: float = 0.02
    search_radius_meters: int = 2000
    per_cell_max: int = 60
    max_pages: int = 3
    details_delay_seconds: float = 0.12
    page_token_delay_seconds: float = 2.0
    mode: str = "grid"
    parallel_workers: int = 1


@dataclass(frozen=True)
class Settings:
    google_api_key: str
    worker_port: int = 9000
    max_results: int = 1000
    grid_step_degrees: float = 0.02
    search_radius_meters: int = 2000
    per_cell_max: int = 60
    max_pages: int = 3
    details_delay_seconds: float = 0.12
    page_token_delay_seconds: float = 2.0
    search_mode: str = "grid"
    parallel_workers: int = 1

    def engine_config(self) -> EngineConfig:
        return EngineConfig(
            grid_step_degrees=self.grid_step_degrees,
            search_radius_meters=self.search_radius_meters,
            per_cell_max=self.per_cell_max,
            max_pages=self.max_pages,
            details_delay_seconds=self.details_delay_seconds,
            page_token_delay_seconds=self.page_token_delay_seconds,
            mode=self.search_mode,
            parallel_workers=self.parallel_workers,
        )

    def require_api_key(self) -> str:
        if not self.google_api_key:
            raise ConfigError("GOOGLE_API_KEY must be set in the environment to run a search.")
        return self.google_api_key


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %s.", name, raw, default)
        return default
    if value < minimum:
        logger.warning("%s=%s is below %s; using %s.", name, value, minimum, default)
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s.", name, raw, default)
        return default
    if value < 0:
        logger.warning("%s=%s is negative; using %s.", name, value, default)
        return default
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    search_mode = os.getenv("SEARCH_MODE", "grid").strip().lower()
    if search_mode not in SEARCH_MODES:
        logger.warning("SEARCH_MODE=%r is not one of %s; using grid.", search_mode, ", ".join(SEARCH_MODES))
        search_mode = "grid"

    if not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; Google Places requests will fail.")

    return Settings(
        google_api_key=google_api_key,
        worker_port=_env_int("WORKER_PORT", 9000),
        max_results=_env_int("MAX_RESULTS", 1000),
        grid_step_degrees=_env_float("GRID_STEP_DEGREES", 0.02),
        search_radius_meters=_env_int("SEARCH_RADIUS_METERS", 2000),
        per_cell_max=_env_int("PER_CELL_MAX", 60),
        max_pages=_env_int("MAX_PAGES", 3),
        details_delay_seconds=_env_float("DETAILS_DELAY_SECONDS", 0.12),
        page_token_delay_seconds=_env_float("PAGE_TOKEN_DELAY_SECONDS", 2.0),
        search_mode=search_mode,
        parallel_workers=_env_int("PARALLEL_WORKERS", 1),
    )
