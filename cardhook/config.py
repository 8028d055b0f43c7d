"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cardhook import __version__
from cardhook.models import Result
from cardhook.utils.logging import get_logger

log = get_logger(__name__)


def get_config_dir() -> Path:
    """Directory holding config.yaml and webhooks.yaml."""
    override = os.environ.get("CARDHOOK_CONFIG_DIR")
    if override:
        return Path(override)
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming")) / "cardhook"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "cardhook"
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "cardhook"


class DispatchConfig(BaseModel):
    max_workers: int = Field(default=8, ge=1)
    default_timeout: float = Field(default=30.0, gt=0)
    user_agent: str = f"cardhook/{__version__}"


class Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["started", "completed"]
    status: str | None = None

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        try:
            Result.parse(value)
        except ValueError:
            names = ", ".join(r.value.lower() for r in Result)
            raise ValueError(f"unknown status {value!r}, expected one of: {names}") from None
        return value


class CustomMessage(BaseModel):
    """Name and value template of a user-defined fact."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    value: str = ""

    @field_validator("name", "value", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Target(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    name: str = ""
    timeout: float | None = Field(default=None, gt=0)
    rules: tuple[Rule, ...] = ()
    start_notification: bool = False
    notify_success: bool = True
    notify_failure: bool = True
    notify_unstable: bool = True
    notify_aborted: bool = True
    notify_not_built: bool = True
    notify_back_to_normal: bool = True
    notify_repeated_failure: bool = True
    custom_messages: tuple[CustomMessage, ...] = ()

    @property
    def display_name(self) -> str:
        return self.name or self.url


class TargetsFile(BaseModel):
    """Persisted webhook configuration: defaults plus per-job overrides."""

    model_config = ConfigDict(frozen=True)

    webhooks: tuple[Target, ...] = ()
    jobs: dict[str, tuple[Target, ...]] = Field(default_factory=dict)

    def targets_for(self, job_name: str) -> tuple[Target, ...]:
        if job_name in self.jobs:
            return self.jobs[job_name]
        return self.webhooks


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CARDHOOK_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    targets_file: str = ""
    log_level: str = "INFO"
    log_json: bool = False

    def get_targets_path(self) -> Path:
        if self.targets_file:
            return Path(self.targets_file)
        return get_config_dir() / "webhooks.yaml"


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    # Determine config file path
    if config_path is None:
        config_path = os.environ.get("CARDHOOK_CONFIG")
    if config_path is None:
        default = get_config_dir() / "config.yaml"
        if default.exists():
            config_path = default

    # Load YAML if found
    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_data = yaml.safe_load(f) or {}

    # Build settings: values from the YAML file win over env vars
    return Settings(**yaml_data)


def load_targets(path: str | Path) -> TargetsFile:
    """Load the webhook targets file. A missing file means no targets."""
    path = Path(path)
    if not path.exists():
        log.debug("targets_file_missing", path=str(path))
        return TargetsFile()
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return TargetsFile.model_validate(data)
