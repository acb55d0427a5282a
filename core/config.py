"""Collector configuration and the NSX Manager inventory.

Two YAML files are read at startup. Credentials never live in them: the
Influx token comes from ``token_file`` or ``INFLUX_TOKEN``, and each
manager names the environment variables holding its username and password.
An optional ``.env`` file is loaded first without overriding variables
already present in the environment.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from models.manager import Manager

log = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 40.0
DEFAULT_SLOW_INTERVAL_SECONDS = 300.0
LOG_FORMATS = ("json", "console")


class ConfigError(Exception):
    """Configuration or credentials are missing or invalid."""


@dataclass(frozen=True)
class InfluxSettings:
    url: str = "http://localhost:8086"
    org: str = "nsx"
    bucket: str = "nsx"
    token: str = field(default="", repr=False)


@dataclass(frozen=True)
class TelemetrySettings:
    enabled: bool = False
    host: str = ""
    port: int = 9101


@dataclass(frozen=True)
class Settings:
    influxdb: InfluxSettings = field(default_factory=InfluxSettings)
    log_level: str = "INFO"
    log_format: str = "json"
    telemetry: TelemetrySettings = field(default_factory=TelemetrySettings)
    interval: float = DEFAULT_INTERVAL_SECONDS
    slow_interval: float = DEFAULT_SLOW_INTERVAL_SECONDS


def load_env_file(path: str | None) -> bool:
    """Load ``path`` into ``os.environ``; real env vars take precedence."""
    if path and Path(path).exists():
        return load_dotenv(path, override=False)
    if path:
        log.warning("env file %s not found, using process environment only", path)
    return False


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigError(f"reading {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"parsing {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"section {name!r} must be a mapping")
    return value


def _seconds(raw: Any, default: float, name: str) -> float:
    """Accept plain seconds or a ``"40s"`` / ``"5m"`` / ``"1h"`` string."""
    if raw is None or raw == "":
        return default
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip().lower()
        scale = {"s": 1, "m": 60, "h": 3600}.get(text[-1:], None)
        try:
            value = float(text[:-1]) * scale if scale else float(text)
        except ValueError as exc:
            raise ConfigError(f"{name}: invalid duration {raw!r}") from exc
    else:
        raise ConfigError(f"{name}: invalid duration {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name}: duration must be positive")
    return value


def _parse_address(address: str) -> tuple[str, int]:
    host, _, port = address.rpartition(":")
    try:
        return host, int(port)
    except ValueError as exc:
        raise ConfigError(f"telemetry.address: invalid address {address!r}") from exc


def _resolve_token(influx: dict[str, Any]) -> str:
    token_file = influx.get("token_file")
    if token_file:
        try:
            token = Path(token_file).read_text(encoding="utf-8").strip()
        except OSError:
            log.warning("influxdb token_file %s unreadable, falling back to INFLUX_TOKEN", token_file)
        else:
            if token:
                return token
    return os.getenv("INFLUX_TOKEN", "").strip()


def load_settings(path: str, require_token: bool = True) -> Settings:
    data = _read_yaml(path)
    influx = _section(data, "influxdb")
    logging_cfg = _section(data, "logging")
    telemetry = _section(data, "telemetry")
    intervals = _section(data, "intervals")

    log_format = str(logging_cfg.get("format") or "json").lower()
    if log_format not in LOG_FORMATS:
        raise ConfigError(f"logging.format: expected json or console, got {log_format!r}")

    token = _resolve_token(influx)
    if require_token and not token:
        raise ConfigError("no influxdb token found: set INFLUX_TOKEN or configure token_file")

    defaults = InfluxSettings()
    host, port = _parse_address(str(telemetry.get("address") or ":9101"))

    return Settings(
        influxdb=InfluxSettings(
            url=influx.get("url") or defaults.url,
            org=influx.get("org") or defaults.org,
            bucket=influx.get("bucket") or defaults.bucket,
            token=token,
        ),
        log_level=str(logging_cfg.get("level") or "info").upper(),
        log_format=log_format,
        telemetry=TelemetrySettings(
            enabled=bool(telemetry.get("enabled", False)),
            host=host,
            port=port,
        ),
        interval=_seconds(intervals.get("default"), DEFAULT_INTERVAL_SECONDS, "intervals.default"),
        slow_interval=_seconds(intervals.get("slow"), DEFAULT_SLOW_INTERVAL_SECONDS, "intervals.slow"),
    )


def load_managers(path: str) -> list[Manager]:
    """Return the enabled managers with credentials resolved from the env."""
    data = _read_yaml(path)
    entries = data.get("managers") or []
    if not isinstance(entries, list):
        raise ConfigError(f"{path}: 'managers' must be a list")

    managers: list[Manager] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ConfigError(f"{path}: manager entries must be mappings")
        if not entry.get("enabled", False):
            continue
        site = str(entry.get("site") or "").strip()
        url = str(entry.get("url") or "").strip()
        if not site or not url:
            raise ConfigError(f"{path}: every enabled manager needs 'site' and 'url'")

        user_env = entry.get("user_env") or ""
        password_env = entry.get("password_env") or ""
        username = os.getenv(user_env, "").strip() if user_env else ""
        password = os.getenv(password_env, "").strip() if password_env else ""
        if not username:
            raise ConfigError(f"manager {site}: env var {user_env or '<user_env>'} not set")
        if not password:
            raise ConfigError(f"manager {site}: env var {password_env or '<password_env>'} not set")

        managers.append(
            Manager(
                site=site,
                url=url,
                username=username,
                password=password,
                tls_skip_verify=bool(entry.get("tls_skip_verify", False)),
            )
        )

    if not managers:
        raise ConfigError(f"no enabled managers found in {path}")
    return managers
