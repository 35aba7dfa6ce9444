"""
Tests for lifecycle configuration loading.
"""

import pytest
import yaml

from config_loader import get_nested_value, load_lifecycle_config, validate_config

BASE_CONFIG = {
    "name": "devnet-run",
    "rpc_endpoint": "https://api.devnet.solana.com",
    "private_key": "${TEST_LIFECYCLE_KEY}",
    "token": {
        "name": "Test Token",
        "symbol": "TEST",
        "uri": "https://test.com/metadata",
    },
}


def write_config(tmp_path, config, name="run.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(config))
    return str(path)


@pytest.fixture(autouse=True)
def private_key_env(monkeypatch):
    monkeypatch.setenv("TEST_LIFECYCLE_KEY", "resolved-key")


def test_load_applies_defaults_and_resolves_env(tmp_path):
    config = load_lifecycle_config(write_config(tmp_path, BASE_CONFIG))

    assert config["private_key"] == "resolved-key"
    assert config["commitment"] == "finalized"
    assert config["log_level"] == "INFO"
    assert config["confirmation"]["timeout"] == 60
    assert config["retries"]["max_attempts"] == 1


def test_explicit_values_override_defaults(tmp_path):
    config = load_lifecycle_config(
        write_config(
            tmp_path,
            {**BASE_CONFIG, "commitment": "confirmed", "retries": {"max_attempts": 3}},
        )
    )

    assert config["commitment"] == "confirmed"
    assert config["retries"]["max_attempts"] == 3
    assert config["confirmation"]["timeout"] == 60


def test_env_file_next_to_config_is_loaded(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_LIFECYCLE_KEY")
    (tmp_path / "lifecycle.env").write_text("TEST_LIFECYCLE_KEY=from-env-file\n")

    config = load_lifecycle_config(
        write_config(tmp_path, {**BASE_CONFIG, "env_file": "lifecycle.env"})
    )

    assert config["private_key"] == "from-env-file"


def test_missing_env_var_is_reported(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_LIFECYCLE_KEY")

    with pytest.raises(ValueError, match="TEST_LIFECYCLE_KEY"):
        load_lifecycle_config(write_config(tmp_path, BASE_CONFIG))


def test_missing_required_field(tmp_path):
    config = {**BASE_CONFIG, "token": {"name": "Test Token", "symbol": "TEST"}}

    with pytest.raises(ValueError, match="token.uri"):
        load_lifecycle_config(write_config(tmp_path, config))


@pytest.mark.parametrize(
    "override, message",
    [
        ({"rpc_endpoint": "wss://api.devnet.solana.com"}, "rpc_endpoint"),
        ({"commitment": "rooted"}, "commitment"),
        ({"retries": {"max_attempts": 0}}, "retries.max_attempts"),
        ({"confirmation": {"timeout": "soon"}}, "confirmation.timeout"),
        ({"confirmation": {"timeout": 0}}, "confirmation.timeout"),
        ({"scenario": {"burn_amount": -1}}, "scenario.burn_amount"),
        ({"scenario": {"mint_amount": 2**64}}, "scenario.mint_amount"),
        ({"scenario": {"mint_amount": True}}, "scenario.mint_amount"),
        ({"scenario": {"mint_amount": 10, "transfer_amount": 11}}, "transfer_amount"),
    ],
)
def test_invalid_values_are_rejected(tmp_path, override, message):
    with pytest.raises(ValueError, match=message):
        load_lifecycle_config(write_config(tmp_path, {**BASE_CONFIG, **override}))


def test_get_nested_value():
    config = {"retries": {"max_attempts": 2}}

    assert get_nested_value(config, "retries.max_attempts") == 2
    with pytest.raises(ValueError):
        get_nested_value(config, "retries.backoff")


def test_validate_config_requires_defaults_applied():
    config = {**BASE_CONFIG, "private_key": "key"}

    with pytest.raises(ValueError, match="commitment"):
        validate_config(config)


def test_empty_sections_load_as_defaults(tmp_path):
    path = tmp_path / "run.yaml"
    path.write_text(yaml.safe_dump(BASE_CONFIG) + "scenario:\nconfirmation:\n")

    config = load_lifecycle_config(str(path))

    assert config["scenario"] == {}
    assert config["confirmation"]["timeout"] == 60
