import logging

import pytest

from fleet_monitor.config import load_config, parse_validators
from fleet_monitor.errors import ConfigError
from fleet_monitor.models import ValidatorEndpoint

VALIDATORS = "Alice|http://51.79.26.123:9944,Bob|http://51.79.26.168:9944,Charlie|http://209.38.225.4:9944"


def test_parse_validators_keeps_order():
    assert parse_validators(VALIDATORS) == (
        ValidatorEndpoint("Alice", "http://51.79.26.123:9944"),
        ValidatorEndpoint("Bob", "http://51.79.26.168:9944"),
        ValidatorEndpoint("Charlie", "http://209.38.225.4:9944"),
    )


def test_parse_validators_tolerates_whitespace():
    assert parse_validators(" Alice | http://a:9944 , ,Bob|https://b ") == (
        ValidatorEndpoint("Alice", "http://a:9944"),
        ValidatorEndpoint("Bob", "https://b"),
    )


@pytest.mark.parametrize(
    "value",
    ["Alice", "Alice|", "|http://a:9944", "Alice|ws://a:9944", "Alice|not a url", "A|http://a,A|http://b"],
)
def test_parse_validators_rejects_bad_entries(value):
    with pytest.raises(ConfigError):
        parse_validators(value)


def test_defaults():
    config = load_config({"FLEET_VALIDATORS": VALIDATORS})

    assert len(config.validators) == 3
    assert config.min_peers == 2
    assert config.max_block_lag == 10
    assert config.rpc_timeout == 10.0
    assert config.health_method == "system_health"
    assert config.head_method == "chain_getHeader"
    assert config.faucet_url is None
    assert config.alert_webhook_url is None
    assert config.alert_max_bytes == 0


def test_environment_values():
    config = load_config(
        {
            "FLEET_VALIDATORS": VALIDATORS,
            "FLEET_MIN_PEERS": "3",
            "FLEET_MAX_BLOCK_LAG": "0",
            "FLEET_RPC_TIMEOUT": "2.5",
            "FLEET_FAUCET_URL": "http://51.79.26.123:8080",
            "FLEET_ALERT_MAX_BYTES": "1048576",
            "FLEET_ALERT_WEBHOOK_URL": "https://hooks.example/T000",
        }
    )

    assert config.min_peers == 3
    assert config.max_block_lag == 0
    assert config.rpc_timeout == 2.5
    assert config.faucet_url == "http://51.79.26.123:8080"
    assert config.alert_max_bytes == 1048576
    assert config.alert_webhook_url == "https://hooks.example/T000"


def test_overrides_win():
    config = load_config({"FLEET_VALIDATORS": VALIDATORS, "FLEET_MIN_PEERS": "3"}, min_peers=5, faucet_url=None)

    assert config.min_peers == 5


def test_overrides_supply_validators():
    validators = (ValidatorEndpoint("Solo", "http://127.0.0.1:9944"),)

    config = load_config({}, validators=validators)

    assert config.validators == validators


def test_empty_validator_list_is_fatal():
    with pytest.raises(ConfigError, match="No validators"):
        load_config({})


@pytest.mark.parametrize(
    "key, value",
    [
        ("FLEET_MIN_PEERS", "two"),
        ("FLEET_MIN_PEERS", "-1"),
        ("FLEET_RPC_TIMEOUT", "0"),
        ("FLEET_MAX_CONCURRENCY", "0"),
        ("FLEET_FAUCET_URL", "faucet:8080"),
        ("FLEET_ALERT_BACKUP_COUNT", "-2"),
    ],
)
def test_invalid_values_are_fatal(key, value):
    with pytest.raises(ConfigError):
        load_config({"FLEET_VALIDATORS": VALIDATORS, key: value})


def test_questionable_values_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="fleet_monitor.config"):
        load_config({"FLEET_VALIDATORS": VALIDATORS, "FLEET_RPC_TIMEOUT": "120"})

    assert "Large rpc_timeout" in caplog.text
