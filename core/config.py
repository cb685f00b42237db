# core/config.py
"""Centralized configuration for the causal graph viewer.

Every value can be overridden through environment variables.
Defaults match the telemetry backend's development setup.
"""

from typing import Literal

from pydantic_settings import BaseSettings


class BackendSettings(BaseSettings):
    """Telemetry backend connection.

    Environment variables:
        CAUSALVIEW_BACKEND_BASE_URL: API root (default: http://localhost:8081/api)
        CAUSALVIEW_BACKEND_TIMEOUT_SECONDS: per-request timeout (default: 10)
    """

    base_url: str = "http://localhost:8081/api"
    timeout_seconds: float = 10.0

    model_config = {"env_prefix": "CAUSALVIEW_BACKEND_"}


class TimelineSettings(BaseSettings):
    """Live polling cadence and the scrubbable window.

    Environment variables:
        CAUSALVIEW_TIMELINE_WINDOW_SIZE_MS: visible window width (default: 1 hour)
        CAUSALVIEW_TIMELINE_WINDOW_TICK_MS: window slide period while live (default: 1000)
        CAUSALVIEW_TIMELINE_FETCH_INTERVAL_MS: live fetch period (default: 2000)
        CAUSALVIEW_TIMELINE_STEP_MS: step size for skip back / forward (default: 5000)
    """

    window_size_ms: int = 60 * 60 * 1000
    window_tick_ms: int = 1000
    fetch_interval_ms: int = 2000
    step_ms: int = 5000

    model_config = {"env_prefix": "CAUSALVIEW_TIMELINE_"}


class LayoutSettings(BaseSettings):
    """Node footprint and spacing for the left-to-right layout."""

    node_width: float = 220.0
    node_height: float = 80.0
    rank_gap: float = 80.0
    node_gap: float = 40.0
    component_gap: float = 80.0
    crossing_sweeps: int = 4

    model_config = {"env_prefix": "CAUSALVIEW_LAYOUT_"}


class AppSettings(BaseSettings):
    """Application-level configuration."""

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    backend: BackendSettings = BackendSettings()
    timeline: TimelineSettings = TimelineSettings()
    layout: LayoutSettings = LayoutSettings()

    model_config = {"env_prefix": "CAUSALVIEW_"}


# Singleton instance — importable from anywhere
settings = AppSettings()
