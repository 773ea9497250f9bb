"""Runtime settings for watchnight."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Mapping

APP_NAME = "FamilyWatchNight"
DB_FILENAME = "FamilyWatchNight.db"

WATCHMODE_URL = "https://api.watchmode.com/datasets/title_id_map.csv"
TMDB_EXPORT_URL = "http://files.tmdb.org/p/exports/movie_ids_{date:%m_%d_%Y}.json.gz"

ENV_PREFIX = "WATCHNIGHT_"


def default_data_dir(platform: str | None = None, environ: Mapping[str, str] | None = None) -> Path:
    """Per-user directory holding the SQLite database."""
    platform = platform or sys.platform
    environ = os.environ if environ is None else environ

    if platform == "win32":
        app_data = environ.get("APPDATA")
        if not app_data:
            raise RuntimeError("APPDATA is not set")
        return Path(app_data) / APP_NAME / "sqlite"
    if platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME / "sqlite"
    return Path.home() / ".config" / APP_NAME / "sqlite"


def _default_db_path() -> str:
    return str(default_data_dir() / DB_FILENAME)


@dataclass
class Settings:
    """Configuration for the database, the import feeds and the import loop."""

    db_path: str = field(default_factory=_default_db_path)
    watchmode_url: str = WATCHMODE_URL
    tmdb_export_url: str = TMDB_EXPORT_URL  # Formatted with the export date
    http_timeout: float = 60.0
    cancel_poll_interval: int = 10  # Records between cancellation checks
    yield_interval: int = 500  # Records between event loop yields
    progress_interval: int = 1000  # Records between progress reports
    temp_dir: str | None = None  # None = system temp dir

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from WATCHNIGHT_* environment variables.

        Each field maps to its upper-cased name, e.g. WATCHNIGHT_DB_PATH or
        WATCHNIGHT_YIELD_INTERVAL. Unset variables keep the defaults.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            overrides[f.name] = _coerce(f.name, raw, str(f.type))
        return cls(**overrides)


def _coerce(name: str, raw: str, type_name: str) -> object:
    try:
        if type_name == "int":
            return int(raw)
        if type_name == "float":
            return float(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from None
    return raw
