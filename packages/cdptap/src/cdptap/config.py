"""Configuration management for cdptap.

Settings come from three layers, later ones winning:
dataclass defaults, the ``[cdptap]`` table of cdptap.toml, environment variables.

PUBLIC API:
  - Config: Resolved settings
  - load_config: Build a Config from file and environment
  - validate_host: Enforce the local-only connection policy
"""

import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping, Optional

from cdptap.errors import InvalidInput

CONFIG_FILENAME = "cdptap.toml"

# env var -> Config field
_ENV_VARS = {
    "CDP_HOST": "cdp_host",
    "CDP_PORT": "cdp_port",
    "CDP_SECURITY_LOCALONLY": "security_local_only",
    "LOG_LEVEL": "log_level",
    "DEFAULT_BUFFER_SIZE": "default_buffer_size",
    "DEFAULT_TTL_SEC": "default_ttl_sec",
    "GC_INTERVAL_SEC": "gc_interval_sec",
    "MAX_BODY_BYTES": "max_body_bytes",
    "CDPTAP_API_HOST": "api_host",
    "CDPTAP_API_PORT": "api_port",
}


@dataclass
class Config:
    """Resolved cdptap settings.

    Attributes:
        cdp_host: Chrome debugging host.
        cdp_port: Chrome debugging port.
        security_local_only: Refuse to connect to 0.0.0.0.
        log_level: Root log level name.
        default_buffer_size: Ring buffer capacity when observe() gives none.
        default_ttl_sec: Idle seconds before gc() reclaims a session.
        gc_interval_sec: Seconds between gc sweeps.
        max_body_bytes: Byte budget for text and body previews.
        api_host: HTTP API bind host.
        api_port: HTTP API bind port.
    """

    cdp_host: str = "127.0.0.1"
    cdp_port: int = 9222
    security_local_only: bool = True
    log_level: str = "INFO"
    default_buffer_size: int = 10000
    default_ttl_sec: int = 3600
    gc_interval_sec: int = 60
    max_body_bytes: int = 64000
    api_host: str = "127.0.0.1"
    api_port: int = 8766


def _find_config_file() -> Optional[Path]:
    """Find cdptap.toml in current or parent directories."""
    current = Path.cwd()

    for parent in [current] + list(current.parents):
        config_file = parent / CONFIG_FILENAME
        if config_file.exists():
            return config_file

    return None


def _load_file(path: Optional[Path]) -> dict:
    if path is None or not path.exists():
        return {}

    with open(path, "rb") as f:
        data = tomllib.load(f)
    return data.get("cdptap", {})


def _coerce(name: str, kind: type, value):
    if kind is bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() not in ("false", "0", "no", "off")
    if kind is int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid integer for {name}: {value!r}")
    return str(value)


def load_config(path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> Config:
    """Build configuration from cdptap.toml and environment.

    Args:
        path: Explicit config file. Defaults to searching upward from cwd.
        env: Environment mapping. Defaults to os.environ.

    Returns:
        Resolved Config.

    Raises:
        ValueError: If a numeric setting cannot be parsed.
    """
    env = os.environ if env is None else env
    kinds = {f.name: type(f.default) for f in fields(Config)}

    values: dict = {}
    for key, value in _load_file(path or _find_config_file()).items():
        if key in kinds:
            values[key] = _coerce(key, kinds[key], value)

    for var, key in _ENV_VARS.items():
        if var in env:
            values[key] = _coerce(var, kinds[key], env[var])

    return Config(**values)


def validate_host(host: str, config: Config) -> None:
    """Reject wildcard hosts when the local-only policy is on.

    Raises:
        InvalidInput: If the host is blocked.
    """
    if config.security_local_only and host == "0.0.0.0":
        raise InvalidInput("Connection to 0.0.0.0 is blocked by security policy")


__all__ = ["Config", "load_config", "validate_host"]
