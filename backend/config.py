from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent
DEFAULT_DATA_DIR = BACKEND_DIR.parents[0] / "data"
DEFAULT_CORS_ORIGINS = ["http://127.0.0.1:5173", "http://localhost:5173"]


@dataclass
class Settings:
    data_dir: Path
    database_url: str
    lock_timeout_s: float = 30.0
    log_level: str = "INFO"
    log_file: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @property
    def lock_dir(self) -> Path:
        return self.data_dir / "locks"


def _load_yaml_file(path: str | None) -> dict[str, Any]:
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        logger.warning("Config file %s not found, using environment only", p)
        return {}
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {p} must contain a mapping")
    return data


def load_settings(config_path: str | None = None) -> Settings:
    file_cfg = _load_yaml_file(config_path or os.getenv("LORELINE_CONFIG"))

    def pick(env_key: str, file_key: str, default: Any) -> Any:
        value = os.getenv(env_key)
        if value is not None and value != "":
            return value
        return file_cfg.get(file_key, default)

    data_dir = Path(pick("LORELINE_DATA_DIR", "data_dir", DEFAULT_DATA_DIR))
    database_url = pick("LORELINE_DATABASE_URL", "database_url", f"sqlite:///{data_dir / 'loreline.db'}")
    origins = pick("LORELINE_CORS_ORIGINS", "cors_origins", DEFAULT_CORS_ORIGINS)
    if isinstance(origins, str):
        origins = [o.strip() for o in origins.split(",") if o.strip()]

    return Settings(
        data_dir=data_dir,
        database_url=str(database_url),
        lock_timeout_s=float(pick("LORELINE_LOCK_TIMEOUT_S", "lock_timeout_s", 30.0)),
        log_level=str(pick("LORELINE_LOG_LEVEL", "log_level", "INFO")).upper(),
        log_file=pick("LORELINE_LOG_FILE", "log_file", None),
        cors_origins=list(origins),
    )
