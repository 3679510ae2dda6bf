from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError


@dataclass
class DatabaseConfig:
    url: str
    pool_size: int | None = None
    max_overflow: int | None = None
    pool_pre_ping: bool = True


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8082


@dataclass
class ApiConfig:
    default_limit: int = 5
    default_offset: int = 0
    max_limit: int = -1
    strict_inserts: bool = True


@dataclass
class ObservabilityConfig:
    log_level: str = "info"
    propagate_request_ids: bool = True


@dataclass
class AppConfig:
    database: DatabaseConfig
    server: ServerConfig = field(default_factory=ServerConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)


def _resolve_env(value: Any, env: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        expanded = os.path.expandvars(value)
        if expanded.startswith("${") and expanded.endswith("}"):
            key = expanded[2:-1]
            if key not in env:
                raise ConfigError(f"Environment variable {key} is required but not set")
            return env[key]
        return expanded
    if isinstance(value, list):
        return [_resolve_env(v, env) for v in value]
    if isinstance(value, dict):
        return {k: _resolve_env(v, env) for k, v in value.items()}
    return value


def _as_int(value: Any, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be an integer") from exc


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _optional_int(value: Any, field_name: str) -> int | None:
    if value is None:
        return None
    parsed = _as_int(value, field_name)
    if parsed <= 0:
        raise ConfigError(f"{field_name} must be greater than 0")
    return parsed


def _validate_positive_or_unlimited(value: int, field_name: str) -> int:
    if value == -1:
        return value
    if value <= 0:
        raise ConfigError(f"{field_name} must be greater than 0 or -1 for no limit")
    return value


def parse_config(raw: Mapping[str, Any], env: Mapping[str, str] | None = None) -> AppConfig:
    env = env if env is not None else os.environ
    resolved = _resolve_env(dict(raw), env)

    try:
        database_raw = resolved["database"] or {}
    except KeyError as exc:
        raise ConfigError(f"Missing config section: {exc.args[0]}") from exc
    server_raw = resolved.get("server") or {}
    api_raw = resolved.get("api") or {}
    observability_raw = resolved.get("observability") or {}

    url = database_raw.get("url")
    if not url:
        raise ConfigError("database.url is required")

    database = DatabaseConfig(
        url=str(url),
        pool_size=_optional_int(database_raw.get("pool_size"), "pool_size"),
        max_overflow=_optional_int(database_raw.get("max_overflow"), "max_overflow"),
        pool_pre_ping=_as_bool(database_raw.get("pool_pre_ping", True)),
    )

    server = ServerConfig(
        host=str(server_raw.get("host", "0.0.0.0")),
        port=_as_int(server_raw.get("port", 8082), "port"),
    )
    if not 0 < server.port < 65536:
        raise ConfigError("port must be between 1 and 65535")

    api = ApiConfig(
        default_limit=_as_int(api_raw.get("default_limit", 5), "default_limit"),
        default_offset=_as_int(api_raw.get("default_offset", 0), "default_offset"),
        max_limit=_validate_positive_or_unlimited(
            _as_int(api_raw.get("max_limit", -1), "max_limit"), "max_limit"
        ),
        strict_inserts=_as_bool(api_raw.get("strict_inserts", True)),
    )
    if api.default_limit <= 0:
        raise ConfigError("default_limit must be greater than 0")
    if api.default_offset < 0:
        raise ConfigError("default_offset cannot be negative")

    observability = ObservabilityConfig(
        log_level=str(observability_raw.get("log_level", "info")),
        propagate_request_ids=_as_bool(observability_raw.get("propagate_request_ids", True)),
    )

    return AppConfig(
        database=database,
        server=server,
        api=api,
        observability=observability,
    )


def load_config(path: str | Path, env: Mapping[str, str] | None = None) -> AppConfig:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    raw = yaml.safe_load(config_path.read_text()) or {}
    if not isinstance(raw, dict):
        raise ConfigError("Config file must contain a mapping")
    return parse_config(raw, env)
