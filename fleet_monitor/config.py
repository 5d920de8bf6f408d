import os
import logging
from dataclasses import dataclass, replace
from typing import Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from dotenv import load_dotenv

from fleet_monitor.errors import ConfigError
from fleet_monitor.models import ValidatorEndpoint

logger = logging.getLogger(__name__)

DEFAULT_MIN_PEERS = 2
DEFAULT_MAX_BLOCK_LAG = 10
DEFAULT_RPC_TIMEOUT = 10.0
DEFAULT_MAX_CONCURRENCY = 8
DEFAULT_HEALTH_METHOD = "system_health"
DEFAULT_HEAD_METHOD = "chain_getHeader"
DEFAULT_LOG_FILE = "/tmp/fleet-monitor.log"
DEFAULT_ALERT_FILE = "/tmp/fleet-alerts.log"
DEFAULT_ALERT_BACKUP_COUNT = 5
DEFAULT_ALERT_LABEL = "fleet-monitor"


@dataclass(frozen=True)
class MonitorConfig:
    """Settings for one monitor run, read once at startup"""

    validators: Tuple[ValidatorEndpoint, ...]
    min_peers: int = DEFAULT_MIN_PEERS
    max_block_lag: int = DEFAULT_MAX_BLOCK_LAG
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    health_method: str = DEFAULT_HEALTH_METHOD
    head_method: str = DEFAULT_HEAD_METHOD
    log_file: Optional[str] = DEFAULT_LOG_FILE
    alert_file: str = DEFAULT_ALERT_FILE
    alert_max_bytes: int = 0
    alert_backup_count: int = DEFAULT_ALERT_BACKUP_COUNT
    faucet_url: Optional[str] = None
    alert_webhook_url: Optional[str] = None
    alert_label: str = DEFAULT_ALERT_LABEL


def _check_url(url: str, what: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"Invalid {what} URL: {url!r}. Must be http(s)://host[:port]")
    return url


def parse_validators(value: Optional[str]) -> Tuple[ValidatorEndpoint, ...]:
    """
    Parse a comma-separated list of `name|url` pairs.

    Order is kept; names must be unique.
    """
    if not value or not value.strip():
        return ()
    return build_validators(item for item in value.split(",") if item.strip())


def build_validators(pairs: Iterable[str]) -> Tuple[ValidatorEndpoint, ...]:
    endpoints: List[ValidatorEndpoint] = []
    seen = set()
    for pair in pairs:
        name, sep, url = pair.strip().partition("|")
        name, url = name.strip(), url.strip()
        if not sep or not name or not url:
            raise ConfigError(f"Invalid validator entry {pair.strip()!r}. Expected name|url")
        if name in seen:
            raise ConfigError(f"Duplicate validator name: {name}")
        seen.add(name)
        endpoints.append(ValidatorEndpoint(name=name, rpc_url=_check_url(url, f"validator {name}")))
    return tuple(endpoints)


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"Invalid {key}: {raw!r}. Must be an integer") from None


def _get_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"Invalid {key}: {raw!r}. Must be a number") from None


def _get_str(env: Mapping[str, str], key: str, default: Optional[str] = None) -> Optional[str]:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


def validate_config(config: MonitorConfig):
    """Raise ConfigError on fatal problems and log warnings for questionable values."""
    if not config.validators:
        raise ConfigError("No validators configured. Set FLEET_VALIDATORS=name|url,...")

    if config.min_peers < 0:
        raise ConfigError(f"Invalid min_peers: {config.min_peers}. Must not be negative")
    if config.max_block_lag < 0:
        raise ConfigError(f"Invalid max_block_lag: {config.max_block_lag}. Must not be negative")
    if config.rpc_timeout <= 0:
        raise ConfigError(f"Invalid rpc_timeout: {config.rpc_timeout}. Must be positive")
    if config.max_concurrency <= 0:
        raise ConfigError(f"Invalid max_concurrency: {config.max_concurrency}. Must be positive")
    if config.alert_max_bytes < 0:
        raise ConfigError(f"Invalid alert_max_bytes: {config.alert_max_bytes}. Must not be negative")
    if config.alert_backup_count < 0:
        raise ConfigError(f"Invalid alert_backup_count: {config.alert_backup_count}. Must not be negative")
    if config.faucet_url:
        _check_url(config.faucet_url, "faucet")
    if config.alert_webhook_url:
        _check_url(config.alert_webhook_url, "alert webhook")

    warnings = []
    if config.rpc_timeout > 60:
        warnings.append(f"Large rpc_timeout: {config.rpc_timeout}s. A pass may take this long per node batch")
    if config.max_concurrency > 100:
        warnings.append(f"Large max_concurrency: {config.max_concurrency}. Consider if this is appropriate")
    if config.alert_max_bytes and config.alert_backup_count == 0:
        warnings.append("alert_max_bytes is set with alert_backup_count=0; the alert log will be truncated on rotation")

    for warning in warnings:
        logger.warning(f"Configuration warning: {warning}")


def load_config(env: Optional[Mapping[str, str]] = None, dotenv: bool = True, **overrides) -> MonitorConfig:
    """
    Build a MonitorConfig from the environment (and .env, if present).

    Keyword overrides that are not None replace the environment values
    before validation, so command-line flags win over FLEET_* variables.
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    config = MonitorConfig(
        validators=parse_validators(env.get("FLEET_VALIDATORS")),
        min_peers=_get_int(env, "FLEET_MIN_PEERS", DEFAULT_MIN_PEERS),
        max_block_lag=_get_int(env, "FLEET_MAX_BLOCK_LAG", DEFAULT_MAX_BLOCK_LAG),
        rpc_timeout=_get_float(env, "FLEET_RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT),
        max_concurrency=_get_int(env, "FLEET_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY),
        health_method=_get_str(env, "FLEET_HEALTH_METHOD", DEFAULT_HEALTH_METHOD),
        head_method=_get_str(env, "FLEET_HEAD_METHOD", DEFAULT_HEAD_METHOD),
        log_file=_get_str(env, "FLEET_LOG_FILE", DEFAULT_LOG_FILE),
        alert_file=_get_str(env, "FLEET_ALERT_FILE", DEFAULT_ALERT_FILE),
        alert_max_bytes=_get_int(env, "FLEET_ALERT_MAX_BYTES", 0),
        alert_backup_count=_get_int(env, "FLEET_ALERT_BACKUP_COUNT", DEFAULT_ALERT_BACKUP_COUNT),
        faucet_url=_get_str(env, "FLEET_FAUCET_URL"),
        alert_webhook_url=_get_str(env, "FLEET_ALERT_WEBHOOK_URL"),
        alert_label=_get_str(env, "FLEET_ALERT_LABEL", DEFAULT_ALERT_LABEL),
    )
    changes = {key: value for key, value in overrides.items() if value is not None}
    if changes:
        config = replace(config, **changes)
    validate_config(config)
    return config
