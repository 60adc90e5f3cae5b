"""Configuration for the assessment identity service."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .storage import resolve_database_path

DEFAULT_SESSION_COOKIE = "assessment_session"
DEFAULT_SESSION_MAX_AGE = 60 * 60 * 24 * 7


def _env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the YAML file and the environment."""

    database_path: Path
    session_secret: Optional[str] = None
    session_cookie: str = DEFAULT_SESSION_COOKIE
    session_max_age: int = DEFAULT_SESSION_MAX_AGE
    session_https_only: bool = False
    log_level: str = "INFO"

    @staticmethod
    def from_dict(data: Dict[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""

        known = {field.name for field in fields(Settings)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        raw_path = data.get("database_path")
        if raw_path:
            expanded = Path(str(raw_path)).expanduser()
            if not expanded.is_absolute() and base_path is not None:
                expanded = base_path / expanded
            database_path = expanded.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        secret = data.get("session_secret")
        return Settings(
            database_path=database_path,
            session_secret=str(secret) if secret else None,
            session_cookie=str(data.get("session_cookie", DEFAULT_SESSION_COOKIE)),
            session_max_age=int(data.get("session_max_age", DEFAULT_SESSION_MAX_AGE)),  # type: ignore[arg-type]
            session_https_only=bool(data.get("session_https_only", False)),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "assessment.yaml").resolve(strict=False)


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Load settings from an optional YAML file, then apply environment overrides."""

    env = os.environ if environ is None else environ
    if config_path is None:
        config_path = resolve_config_path(env.get("ASSESSMENT_CONFIG"))

    raw: Dict[str, object] = {}
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        raw.update(loaded)

    if env.get("ASSESSMENT_DB_PATH"):
        raw["database_path"] = env["ASSESSMENT_DB_PATH"]
    if env.get("ASSESSMENT_SESSION_SECRET"):
        raw["session_secret"] = env["ASSESSMENT_SESSION_SECRET"]
    if env.get("ASSESSMENT_SESSION_SECURE") is not None:
        raw["session_https_only"] = _env_flag(env.get("ASSESSMENT_SESSION_SECURE"))
    if env.get("ASSESSMENT_LOG_LEVEL"):
        raw["log_level"] = env["ASSESSMENT_LOG_LEVEL"]

    return Settings.from_dict(raw, base_path=config_path.parent)


__all__ = ["Settings", "load_settings", "resolve_config_path", "resolve_database_path"]
