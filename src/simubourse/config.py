"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "SimuBourse"
    DB_FILENAME = "simubourse.db"
    ENV_PREFIX = "SIMUBOURSE_"

    def __init__(self) -> None:
        self.DEV_MODE = _env_bool("SIMUBOURSE_DEV_MODE", default=True)
        self.DATA_DIR = self._resolve_data_dir()
        self.DATABASE_URL = os.getenv("SIMUBOURSE_DATABASE_URL", self._build_sqlite_url())
        self.CONTENT_URL: Optional[str] = os.getenv("SIMUBOURSE_CONTENT_URL") or None
        self.CONTENT_API_KEY: Optional[str] = os.getenv("SIMUBOURSE_CONTENT_API_KEY") or None
        self.CONTENT_TIMEOUT = _env_float("SIMUBOURSE_CONTENT_TIMEOUT", 10.0)
        self.MARKET_TICK_SECONDS = _env_int("SIMUBOURSE_MARKET_TICK_SECONDS", 60)
        self.AI_MARKET_COUNT = _env_int("SIMUBOURSE_AI_MARKET_COUNT", 4)
        if self.MARKET_TICK_SECONDS <= 0:
            raise ValueError("SIMUBOURSE_MARKET_TICK_SECONDS must be positive.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("SIMUBOURSE_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if self.DATABASE_URL.startswith("sqlite"):
            # Writers queue on the database lock for up to ``timeout`` seconds.
            return {"connect_args": {"check_same_thread": False, "timeout": 30}}
        return {"pool_pre_ping": True}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestConfig(BaseConfig):
    """Configuration for the test-suite: in-memory database, no network."""

    __test__ = False
    DEBUG = False
    TESTING = True

    def __init__(self) -> None:
        super().__init__()
        self.DATABASE_URL = "sqlite://"
        self.CONTENT_URL = None

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        from sqlalchemy.pool import StaticPool

        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
