"""Configuration loader for pagegather using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags / ``GatherFlags`` (where applicable)
  2. Environment variables (PAGEGATHER_* with __ for nesting)
  3. settings.local.toml
  4. settings.{env}.toml
  5. settings.default.toml
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("PAGEGATHER_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "PAGEGATHER_ENV"
DEFAULT_ENV = "local"


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class DevtoolsSettings(BaseSettings):
    """Where the remote-debugging endpoint lives and how long to wait on it."""

    model_config = SettingsConfigDict(env_prefix="PAGEGATHER_DEVTOOLS__")

    hostname: str = "localhost"
    port: int = 9222
    http_timeout_sec: float = 10.0
    command_timeout_sec: float = 30.0


class GatherSettings(BaseSettings):
    """Run-level behaviour of the gather orchestrator."""

    model_config = SettingsConfigDict(env_prefix="PAGEGATHER_GATHER__")

    log_level: str = "error"
    log_format: Literal["text", "json"] = "text"
    dispose_driver: bool = False


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root pagegather settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="PAGEGATHER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    debug: bool = False

    devtools: DevtoolsSettings = Field(default_factory=DevtoolsSettings)
    gather: GatherSettings = Field(default_factory=GatherSettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Merge: defaults < env-specific < local < explicit values
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val
        return merged


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
