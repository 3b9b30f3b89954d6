from __future__ import annotations

import functools
import os
import pathlib
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, validator

from .errors import ConfigurationError


class RetryConfig(BaseModel):
    attempts: int = Field(default=1, ge=1)
    backoff_seconds: float = Field(default=1.0, ge=0)


class AppConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    json_logs: bool = False
    api_prefix: str = ""

    @validator("api_prefix")
    def validate_prefix(cls, v: str) -> str:
        v = v.rstrip("/")
        if v and not v.startswith("/"):
            raise ValueError("api_prefix must start with '/'")
        return v


class PostgresConfig(BaseModel):
    user: str
    password: str
    host: str = "localhost"
    port: int = 5432
    database: str = "CustomersDB"
    min_pool_size: int = Field(default=1, ge=1)
    max_pool_size: int = Field(default=10, ge=1)
    statement_timeout_ms: int = Field(default=10000, ge=100)
    max_rows: int = Field(default=1000, ge=1)
    initialize_schema: bool = True

    @validator("max_pool_size")
    def validate_pool_sizes(cls, v: int, values: Dict[str, int]) -> int:
        min_size = values.get("min_pool_size", 1)
        if v < min_size:
            raise ValueError("max_pool_size must be >= min_pool_size")
        return v


class LLMConfig(BaseModel):
    provider: str = "openai"
    api_key: str
    api_base: str = "https://api.openai.com/v1"
    model: str = "gpt-4"
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1024, ge=1)
    request_timeout_s: float = Field(default=30.0, gt=0)
    retry: RetryConfig = Field(default_factory=RetryConfig)


class CommunicationConfig(BaseModel):
    connection_string: str
    phone_number: str
    token_scopes: List[str] = Field(default_factory=lambda: ["voip"])


class SecurityConfig(BaseModel):
    enforce_select_only: bool = True
    disallowed_functions: List[str] = Field(
        default_factory=lambda: [
            "pg_sleep",
            "pg_terminate_backend",
            "pg_cancel_backend",
            "pg_read_file",
            "pg_read_binary_file",
            "pg_ls_dir",
            "pg_stat_file",
            "pg_reload_conf",
            "pg_advisory_lock",
            "set_config",
            "lo_import",
            "lo_export",
            "dblink",
            "dblink_exec",
            "dblink_connect",
        ]
    )


class ObservabilityConfig(BaseModel):
    service_name: str = "crm-api"
    metrics_port: int = Field(default=0, ge=0)


class Settings(BaseModel):
    environment: str = "development"
    app: AppConfig = Field(default_factory=AppConfig)
    postgres: PostgresConfig
    llm: LLMConfig
    communication: CommunicationConfig
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


# env var -> (section, key, required)
ENV_OVERRIDES: Dict[str, Tuple[str, str, bool]] = {
    "POSTGRES_USER": ("postgres", "user", True),
    "POSTGRES_PASSWORD": ("postgres", "password", True),
    "POSTGRES_HOST": ("postgres", "host", False),
    "POSTGRES_PORT": ("postgres", "port", False),
    "POSTGRES_DB": ("postgres", "database", False),
    "OPENAI_API_KEY": ("llm", "api_key", True),
    "OPENAI_MODEL": ("llm", "model", False),
    "ACS_CONNECTION_STRING": ("communication", "connection_string", True),
    "ACS_PHONE_NUMBER": ("communication", "phone_number", True),
    "LOG_LEVEL": ("app", "log_level", False),
}


def _load_yaml(path: pathlib.Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return raw


def _apply_env(raw: Dict[str, Any], env: Mapping[str, str]) -> List[str]:
    missing = []
    for name, (section, key, required) in ENV_OVERRIDES.items():
        value = env.get(name)
        target = raw.setdefault(section, {})
        if value:
            target[key] = value
        elif required and not target.get(key):
            missing.append(name)
    return missing


def load_settings(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from an optional YAML file overlaid with environment variables.

    Every missing required value is reported in a single ConfigurationError so an
    operator can fix the deployment in one pass.
    """
    if env is None:
        load_dotenv()
        env = os.environ
    cfg_path = pathlib.Path(path or env.get("CRM_CONFIG") or "config.yaml").resolve()
    raw: Dict[str, Any] = _load_yaml(cfg_path) if cfg_path.exists() else {}
    missing = _apply_env(raw, env)
    if missing:
        raise ConfigurationError("Missing required settings", missing=missing)
    try:
        return Settings(**raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
