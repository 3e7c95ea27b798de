"""Application configuration management.

Handles loading and validating configuration from multiple sources:
    - TOML/JSON config files
    - Environment variables (REPOKIT_* prefix)
    - Default values

Key components:
    - AppConfig: Main configuration model
    - load_config(): Safe config loading with fallback
    - ConfigLoadResult: Metadata about config source
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from unittest.mock import patch

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

CONFIG_ENV_VAR = "REPOKIT_CONFIG"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded or validated."""


# -----------------------------------------------------------------------------
# Sub-configuration Models
# -----------------------------------------------------------------------------


class ScaffoldConfig(BaseModel):
    """Template generation settings."""

    template_name: str = Field(default="github", description="Template used for new projects.")
    template_dir: Path | None = Field(
        default=None,
        description="Directory holding custom templates; the bundled ones are used when unset.",
    )


class HostingConfig(BaseModel):
    """Code hosting settings."""

    host: str = Field(default="github.com", description="SSH host of the code hosting service.")
    cli: str = Field(default="hub", description="CLI used to create hosted repositories.")
    user_config_key: str = Field(
        default="user.name", description="Global git config key holding the hosting user."
    )


class ToolsConfig(BaseModel):
    """External tool settings."""

    git: str = Field(default="git", description="git executable.")
    ci_cli: str = Field(default="travisify", description="CLI that configures CI.")
    install_command: list[str] = Field(
        default_factory=lambda: ["pip", "install", "-e", "."],
        description="Command that installs the new project's dependencies.",
    )
    check_tools: bool = Field(
        default=True, description="Verify external tools are on PATH before starting."
    )
    command_timeout: float | None = Field(
        default=None, description="Seconds before an external command is killed; None waits forever."
    )

    @field_validator("install_command")
    @classmethod
    def ensure_install_command(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("install_command must name an executable")
        return v


@dataclass
class ConfigLoadResult:
    path: Path
    file_loaded: bool
    env_overrides: set[str]
    error: str | None = None


class AppConfig(BaseSettings):
    """Application-wide configuration with nested sub-configs."""

    model_config = SettingsConfigDict(
        env_prefix="REPOKIT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(default="WARNING", description="Log level for repokit output.")
    scaffold: ScaffoldConfig = Field(default_factory=ScaffoldConfig)
    hosting: HostingConfig = Field(default_factory=HostingConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    @field_validator("scaffold", mode="after")
    @classmethod
    def expand_template_dir(cls, v: ScaffoldConfig) -> ScaffoldConfig:
        if v.template_dir is not None:
            v.template_dir = v.template_dir.expanduser()
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        # Environment variables override config file entries.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


def _resolve_config_path(config_path: Path | None, env_vars: Mapping[str, str]) -> Path:
    candidate = config_path or env_vars.get(CONFIG_ENV_VAR) or (Path.home() / ".repokit.toml")
    return Path(candidate).expanduser()


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    raw = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    parser = json.loads if suffix == ".json" else tomllib.loads

    try:
        data = parser(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Syntax error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config root in {path} must be a mapping.")

    return data


def _detect_env_overrides(env_vars: Mapping[str, str]) -> set[str]:
    """Detect which fields are overridden by environment variables.

    Nested fields use the delimiter, e.g. REPOKIT_HOSTING__CLI.
    """
    prefix = AppConfig.model_config.get("env_prefix", "")
    delimiter = AppConfig.model_config.get("env_nested_delimiter", "__")
    overrides: set[str] = set()

    if f"{prefix}LOG_LEVEL" in env_vars:
        overrides.add("log_level")

    nested_models: dict[str, type[BaseModel]] = {
        "scaffold": ScaffoldConfig,
        "hosting": HostingConfig,
        "tools": ToolsConfig,
    }

    for group_name, model_cls in nested_models.items():
        for field in model_cls.model_fields:
            env_key = f"{prefix}{group_name}{delimiter}{field}".upper()
            if env_key in env_vars:
                overrides.add(f"{group_name}.{field}")

    return overrides


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[AppConfig, ConfigLoadResult]:
    """
    Load configuration with Safe Mode fallback.
    If the file is invalid, returns default config + error message.
    """
    env_vars: Mapping[str, str] = os.environ if env is None else {**os.environ, **env}
    resolved_path = _resolve_config_path(config_path, env_vars)
    env_overrides = _detect_env_overrides(env_vars)

    error: str | None = None
    file_loaded = False
    file_data: dict[str, Any] = {}

    try:
        file_data = _read_config_file(resolved_path)
        file_loaded = resolved_path.exists()
    except ConfigError as exc:
        error = str(exc)

    context_manager = (
        patch.dict(os.environ, env_vars, clear=False) if env is not None else nullcontext()
    )

    try:
        with context_manager:
            config = AppConfig(**file_data)
    except ValidationError as exc:
        error = str(exc)
        config = AppConfig()

    load_result = ConfigLoadResult(
        path=resolved_path,
        file_loaded=file_loaded,
        env_overrides=env_overrides,
        error=error,
    )

    return config, load_result
