"""
Typed configuration helpers for the scoring core.

The execution client never reads process state itself: callers build an
``ExecutionSettings`` (from YAML, from the environment at the CLI/proxy edge,
or directly in tests) and hand it to the constructor.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_API_URL = "https://judge0-ce.p.rapidapi.com"
DEFAULT_API_HOST = "judge0-ce.p.rapidapi.com"
JAVA_LANGUAGE_ID = 62  # Java (OpenJDK 13.0.1)
DEFAULT_PLACEHOLDER = "{{USER_CODE}}"

ENV_API_KEY = "JUDGE0_API_KEY"
ENV_API_URL = "JUDGE0_API_URL"
ENV_API_HOST = "JUDGE0_API_HOST"
ENV_PROXY_URL = "JUDGE0_PROXY_URL"
ENV_TRANSPORT = "JUDGE0_TRANSPORT"


class TransportMode(str, Enum):
    """How the execution client reaches the remote service."""

    DIRECT = "direct"
    PROXIED = "proxied"

    @classmethod
    def choices(cls) -> List[str]:
        return [member.value for member in cls]


class ExecutionSettings(BaseModel):
    """Connection info and resource limits for the remote execution service."""

    model_config = ConfigDict(frozen=True)

    api_url: str = Field(default=DEFAULT_API_URL, description="Base URL of the execution service.")
    api_key: str | None = Field(default=None, repr=False)
    api_key_env: str = Field(default=ENV_API_KEY, description="Environment variable holding the API key.")
    api_host: str = Field(default=DEFAULT_API_HOST)
    transport: TransportMode = TransportMode.DIRECT
    proxy_url: str | None = Field(default=None, description="Base URL of the submissions proxy.")
    language_id: int = Field(default=JAVA_LANGUAGE_ID, ge=1)
    cpu_time_limit: float = Field(default=10.0, gt=0, description="Seconds of CPU time per run.")
    memory_limit_kb: int = Field(default=128000, ge=1024)
    wall_time_limit: float | None = Field(default=None, gt=0)
    max_attempts: int = Field(default=10, ge=1)
    poll_interval_ms: int = Field(default=1000, ge=0)
    test_case_delay_ms: int = Field(default=500, ge=0)
    request_timeout: float = Field(default=30.0, gt=0)

    @field_validator("api_key", "proxy_url", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("api_url", "proxy_url")
    @classmethod
    def strip_trailing_slash(cls, value: str | None) -> str | None:
        return value.rstrip("/") if value else value

    @property
    def effective_wall_time_limit(self) -> float:
        return self.wall_time_limit if self.wall_time_limit is not None else self.cpu_time_limit + 5

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)


class ScoringConfig(BaseModel):
    """Top-level configuration for scoring runs (CLI and services)."""

    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    question_bank_path: Path | None = None
    history_path: Path | None = None
    placeholder: str = Field(default=DEFAULT_PLACEHOLDER, min_length=1)

    @field_validator("question_bank_path", "history_path", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        return Path(value).expanduser().resolve()


def read_yaml_file(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return a dictionary."""
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at root of {path}, received {type(data)}")
    return data


def _resolve_config_path(value: Any, base_dir: Path) -> str:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    else:
        path = path.resolve()
    return str(path)


def load_scoring_config(path: Path, *, base_dir: Path | None = None) -> ScoringConfig:
    """Load the scoring YAML; relative paths resolve against ``base_dir`` (default: the file's folder)."""
    path = path.expanduser().resolve()
    data = read_yaml_file(path)
    anchor = (base_dir or path.parent).resolve()
    for key in ("question_bank_path", "history_path"):
        if data.get(key):
            data[key] = _resolve_config_path(data[key], anchor)
    execution = data.get("execution")
    if isinstance(execution, dict) and execution.get("api_key"):
        raise ValueError(f"Refusing to read an inline api_key from {path}; set {ENV_API_KEY} instead")
    try:
        return ScoringConfig.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid scoring config in {path}") from exc


def settings_from_env(
    base: ExecutionSettings | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> ExecutionSettings:
    """Overlay credentials and endpoints from the environment onto ``base``."""
    source = os.environ if env is None else env
    base = base or ExecutionSettings()
    updates: Dict[str, Any] = {}

    api_key = source.get(base.api_key_env) or source.get(ENV_API_KEY)
    if api_key and api_key.strip():
        updates["api_key"] = api_key.strip()
    for env_var, field_name in ((ENV_API_URL, "api_url"), (ENV_API_HOST, "api_host"), (ENV_PROXY_URL, "proxy_url")):
        raw = source.get(env_var)
        if raw and raw.strip():
            updates[field_name] = raw.strip()

    transport = source.get(ENV_TRANSPORT)
    if transport and transport.strip():
        token = transport.strip().lower()
        try:
            updates["transport"] = TransportMode(token)
        except ValueError as exc:
            valid = ", ".join(TransportMode.choices())
            raise ValueError(f"Unknown transport '{token}'. Valid options: {valid}") from exc

    if not updates:
        return base
    return ExecutionSettings.model_validate({**base.model_dump(), **updates})


__all__ = [
    "DEFAULT_PLACEHOLDER",
    "ExecutionSettings",
    "ScoringConfig",
    "TransportMode",
    "load_scoring_config",
    "read_yaml_file",
    "settings_from_env",
]
