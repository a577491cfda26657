#!/usr/bin/env python3

"""
Runtime settings.

Precedence: environment variables override Streamlit secrets, which override
the defaults below.

    DATABASE_URL            postgres URL; SQLite under the data dir otherwise
    FITNESS_DATA_DIR        data directory (default: ./data)
    FITNESS_STORAGE         "database" (default) or "json"
    FITNESS_TREND_DAYS      trailing window for the net-calorie trend (30)
    FITNESS_AVERAGE_WINDOW  entries in the dashboard average (7)
    FITNESS_SESSION_HOURS   login session lifetime (24)
    FITNESS_LOG_LEVEL       logging level (WARNING)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import streamlit as st

from storage import JsonFileStorage, Storage

DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data")
STORAGE_CHOICES = ("database", "json")


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    data_dir: str = DEFAULT_DATA_DIR
    storage_backend: str = "database"
    trend_window_days: int = 30
    average_window: int = 7
    session_hours: int = 24
    log_level: str = "WARNING"


def _secrets() -> Mapping[str, Any]:
    # Outside `streamlit run`, or with no secrets.toml, st.secrets raises on access
    try:
        return dict(st.secrets)
    except Exception:
        return {}


def load_settings(environ: Optional[Mapping[str, str]] = None, secrets: Optional[Mapping[str, Any]] = None) -> Settings:
    env = os.environ if environ is None else environ
    sec = _secrets() if secrets is None else secrets

    def get(key: str, default: Any) -> Any:
        if env.get(key):
            return env[key]
        if sec.get(key):
            return sec[key]
        return default

    backend = str(get("FITNESS_STORAGE", "database")).lower()
    if backend not in STORAGE_CHOICES:
        raise ValueError(f"FITNESS_STORAGE must be one of {STORAGE_CHOICES}, got {backend!r}")

    return Settings(
        database_url=get("DATABASE_URL", None),
        data_dir=str(get("FITNESS_DATA_DIR", DEFAULT_DATA_DIR)),
        storage_backend=backend,
        trend_window_days=int(get("FITNESS_TREND_DAYS", 30)),
        average_window=int(get("FITNESS_AVERAGE_WINDOW", 7)),
        session_hours=int(get("FITNESS_SESSION_HOURS", 24)),
        log_level=str(get("FITNESS_LOG_LEVEL", "WARNING")).upper(),
    )


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_backend(settings: Settings, storage: Any = None) -> Any:
    """Entry backend for the configured storage kind."""
    if settings.storage_backend == "json":
        return JsonFileStorage(settings.data_dir)
    if storage is None:
        storage = Storage(settings.data_dir, settings.database_url)
        storage.init_database()
    return storage
