"""Configuration — frozen dataclass loaded from a JSON/YAML file and env vars.

JSON is a subset of YAML, so ``config.json`` files are read with
``yaml.safe_load`` as well.
"""

import logging
import os
from dataclasses import dataclass, replace

import yaml

logger = logging.getLogger(__name__)

DEFAULT_IP = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_ENDPOINT = "/metrics"
DEFAULT_TICKER_INTERVAL = 60  # seconds
DEFAULT_SHUTDOWN_GRACE = 5.0


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Config:
    repos: tuple[str, ...] = ()
    ip: str = DEFAULT_IP
    port: int = DEFAULT_PORT
    endpoint: str = DEFAULT_ENDPOINT
    ticker_interval: int = DEFAULT_TICKER_INTERVAL
    shutdown_grace: float = DEFAULT_SHUTDOWN_GRACE


def _parse_int(key: str, value) -> int:
    """File values must already be integers; 8080.9 or "9101" is an error."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    return value


def _parse_env_int(key: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from None


def _parse_float(key: str, value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {value!r}") from None


def _parse_repos(value) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(r, str) for r in value):
        raise ConfigError(f"repos must be a list of paths, got {value!r}")
    return tuple(value)


def load_file(path: str) -> dict:
    """Read the config file. Raises ConfigError if it's missing or invalid."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return data


def from_dict(data: dict) -> Config:
    """Build a Config from file data. Missing keys keep their zero values."""
    return Config(
        repos=_parse_repos(data.get("repos")),
        ip=str(data.get("ip") or ""),
        port=_parse_int("port", data.get("port") or 0),
        endpoint=str(data.get("endpoint") or ""),
        ticker_interval=_parse_int("ticker_interval", data.get("ticker_interval") or 0),
        shutdown_grace=_parse_float(
            "shutdown_grace", data.get("shutdown_grace", DEFAULT_SHUTDOWN_GRACE)
        ),
    )


def apply_env(config: Config, environ=None) -> Config:
    """Overlay EXPORTER_* environment variables on top of file values."""
    env = os.environ if environ is None else environ
    overrides: dict = {}
    if env.get("EXPORTER_REPOS"):
        overrides["repos"] = tuple(
            r.strip() for r in env["EXPORTER_REPOS"].split(",") if r.strip()
        )
    if "EXPORTER_IP" in env:
        overrides["ip"] = env["EXPORTER_IP"]
    if "EXPORTER_PORT" in env:
        overrides["port"] = _parse_env_int("EXPORTER_PORT", env["EXPORTER_PORT"])
    if "EXPORTER_ENDPOINT" in env:
        overrides["endpoint"] = env["EXPORTER_ENDPOINT"]
    if "EXPORTER_TICKER_INTERVAL" in env:
        overrides["ticker_interval"] = _parse_env_int(
            "EXPORTER_TICKER_INTERVAL", env["EXPORTER_TICKER_INTERVAL"]
        )
    if "EXPORTER_SHUTDOWN_GRACE" in env:
        overrides["shutdown_grace"] = _parse_float(
            "EXPORTER_SHUTDOWN_GRACE", env["EXPORTER_SHUTDOWN_GRACE"]
        )
    return replace(config, **overrides)


def apply_defaults(config: Config) -> Config:
    """Replace empty/zero values with defaults, then validate."""
    config = replace(
        config,
        ip=config.ip or DEFAULT_IP,
        port=config.port or DEFAULT_PORT,
        endpoint=config.endpoint or DEFAULT_ENDPOINT,
        ticker_interval=config.ticker_interval or DEFAULT_TICKER_INTERVAL,
    )
    if not 0 < config.port < 65536:
        raise ConfigError(f"port out of range: {config.port}")
    if config.ticker_interval < 0:
        raise ConfigError(f"ticker_interval must be positive: {config.ticker_interval}")
    if config.shutdown_grace < 0:
        raise ConfigError(f"shutdown_grace must not be negative: {config.shutdown_grace}")
    if not config.endpoint.startswith("/"):
        raise ConfigError(f"endpoint must start with '/': {config.endpoint!r}")
    if config.endpoint == "/health":
        raise ConfigError("endpoint '/health' is reserved for the health check")
    if not config.repos:
        logger.warning("No repositories configured, nothing will be exported")
    return config


def load_config(path: str, environ=None) -> Config:
    """File values <- EXPORTER_* env vars <- defaults for anything left empty."""
    config = from_dict(load_file(path))
    return apply_defaults(apply_env(config, environ))
