"""
config.py
---------
Centralised configuration management for the database import tool.

Two layers:
    * Process settings loaded from environment variables (with .env file
      support via python-dotenv): log level, log file, default connection
      parameters and the default location of the import config file.
    * The JSON import config (``provider``, ``connections``, ``actions``)
      loaded from disk by :func:`load_import_config`.

Design Decision:
    Settings are frozen dataclasses with environment-driven defaults, so the
    tool works without any .env file while still allowing overrides for
    production runs. Passwords may come from ``DB_PASSWORD`` rather than
    from the JSON config file.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    load_dotenv(dotenv_path=_env_path)


@dataclass(frozen=True)
class DatabaseConfig:
    """Default connection settings applied under the JSON connection block."""
    host: str = field(default_factory=lambda: os.getenv("DB_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.getenv("DB_PORT", "3306")))
    charset: str = field(default_factory=lambda: os.getenv("DB_CHARSET", "utf8"))
    connect_timeout: int = field(
        default_factory=lambda: int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
    )
    password: str | None = field(default_factory=lambda: os.getenv("DB_PASSWORD"))


@dataclass(frozen=True)
class ImportConfigDefaults:
    """Locations and logging for a run."""
    config_file: Path = field(
        default_factory=lambda: Path(os.getenv("IMPORT_CONFIG", "cfg/config.json"))
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    log_file: str | None = field(
        default_factory=lambda: os.getenv("LOG_FILE")  # None → log to stderr only
    )


@dataclass(frozen=True)
class AppConfig:
    """Root application configuration."""
    db: DatabaseConfig = field(default_factory=DatabaseConfig)
    run: ImportConfigDefaults = field(default_factory=ImportConfigDefaults)
    app_name: str = "db-import"
    app_version: str = "0.1.0"


def load_config() -> AppConfig:
    """
    Build and return the application configuration.

    Example::

        cfg = load_config()
        print(cfg.db.host)           # "localhost"
        print(cfg.run.config_file)   # cfg/config.json
    """
    return AppConfig()


# Module-level singleton used throughout the application
CONFIG: AppConfig = load_config()


def get_log_level() -> int:
    """Convert string log level from config to logging module constant."""
    level = getattr(logging, CONFIG.run.log_level, None)
    if not isinstance(level, int):
        return logging.INFO
    return level


# ---------------------------------------------------------------------------
# JSON import config
# ---------------------------------------------------------------------------

class ImportConfigError(Exception):
    """Raised when the import config file is missing or malformed."""


@dataclass(frozen=True)
class ImportConfig:
    """
    Parsed import config file.

    Attributes:
        provider:    Name of the storage backend (e.g. ``"mysql"``).
        connections: Connection block per provider.
        actions:     Action blocks keyed by action name
                     (``"create-storage"``, ``"import-data"``).
        base_dir:    Directory that relative definition paths resolve against.
    """
    provider: str
    connections: dict[str, dict[str, Any]] = field(default_factory=dict)
    actions: dict[str, dict[str, Any]] = field(default_factory=dict)
    base_dir: Path = Path(".")

    def connection(self) -> dict[str, Any]:
        """Return the connection block for the configured provider."""
        try:
            return dict(self.connections[self.provider])
        except KeyError:
            raise ImportConfigError(
                f"No connection settings for provider '{self.provider}'."
            ) from None

    def action(self, name: str) -> dict[str, Any]:
        """Return the config block for action *name*."""
        try:
            return dict(self.actions[name])
        except KeyError:
            raise ImportConfigError(f"Action '{name}' is not configured.") from None

    @staticmethod
    def from_dict(data: dict[str, Any], base_dir: Path | str = ".") -> "ImportConfig":
        if not isinstance(data, dict):
            raise ImportConfigError("Import config must be a JSON object.")
        provider = data.get("provider")
        if not provider or not isinstance(provider, str):
            raise ImportConfigError("Import config is missing 'provider'.")
        return ImportConfig(
            provider=provider,
            connections=dict(data.get("connections") or {}),
            actions=dict(data.get("actions") or {}),
            base_dir=Path(base_dir),
        )


def load_import_config(path: Path | str | None = None) -> ImportConfig:
    """
    Read the JSON import config.

    Args:
        path: Config file path; defaults to ``CONFIG.run.config_file``.

    Raises:
        ImportConfigError: If the file cannot be read or parsed.
    """
    cfg_path = Path(path) if path else CONFIG.run.config_file
    try:
        text = cfg_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ImportConfigError(f"Cannot read import config '{cfg_path}': {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportConfigError(f"Invalid JSON in import config '{cfg_path}': {exc}") from exc
    return ImportConfig.from_dict(data, base_dir=Path.cwd())
