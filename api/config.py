"""
External API configuration.

Environment variables:
  - EXTERNAL_API_URL (relay target for /api/final and /call_api)
  - EXTERNAL_API_TIMEOUT (seconds, default: 30)
  - SEARCH_ENDPOINT_1 .. SEARCH_ENDPOINT_4 (default: the example search URLs)
  - SEARCH_TIMEOUT (seconds per call, default: 5)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from flask import Flask, current_app

SEARCH_TERM_LENGTH = 11

DEFAULT_SEARCH_ENDPOINTS: dict[str, str] = {
    "API One": "https://api.example.com/search/v1",
    "API Two": "https://api.example.com/search/v2",
    "API Three": "https://api.example.com/search/v3",
    "API Four": "https://api.example.com/search/v4",
}


def _env(name: str, default: str | None = None) -> str | None:
    val = os.environ.get(name)
    if val is None:
        return default
    val = val.strip()
    return val or default


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class ExternalApiSettings:
    """Where the API routes send their outbound requests."""

    relay_url: str | None = None
    relay_timeout: float = 30.0
    search_endpoints: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SEARCH_ENDPOINTS))
    search_timeout: float = 5.0

    @staticmethod
    def from_env() -> "ExternalApiSettings":
        endpoints = {}
        for i, (label, default_url) in enumerate(DEFAULT_SEARCH_ENDPOINTS.items(), start=1):
            endpoints[label] = _env(f"SEARCH_ENDPOINT_{i}", default_url) or default_url

        return ExternalApiSettings(
            relay_url=_env("EXTERNAL_API_URL"),
            relay_timeout=_env_float("EXTERNAL_API_TIMEOUT", 30.0),
            search_endpoints=endpoints,
            search_timeout=_env_float("SEARCH_TIMEOUT", 5.0),
        )


def init_external_apis(app: Flask, settings: ExternalApiSettings | None = None) -> ExternalApiSettings:
    settings = settings or ExternalApiSettings.from_env()
    app.config["EXTERNAL_API_SETTINGS"] = settings
    return settings


def get_external_api_settings() -> ExternalApiSettings:
    settings = current_app.config.get("EXTERNAL_API_SETTINGS")
    if not isinstance(settings, ExternalApiSettings):
        raise RuntimeError("External API settings not initialized. Call api.config.init_external_apis(app) at startup.")
    return settings
