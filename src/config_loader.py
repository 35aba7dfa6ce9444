"""
Configuration loading and validation for token lifecycle runs.
"""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

from core.client import COMMITMENT_LEVELS

REQUIRED_FIELDS = [
    "name",
    "rpc_endpoint",
    "private_key",
    "token.name",
    "token.symbol",
    "token.uri",
]

CONFIG_VALIDATION_RULES = [
    ("confirmation.timeout", (int, float), 0, float("inf"), "confirmation.timeout must be a positive number"),
    ("retries.max_attempts", int, 1, 100, "retries.max_attempts must be between 1 and 100"),
    ("scenario.mint_amount", int, 0, 2**64 - 1, "scenario.mint_amount must be a u64"),
    ("scenario.recipient_mint_amount", int, 0, 2**64 - 1, "scenario.recipient_mint_amount must be a u64"),
    ("scenario.transfer_amount", int, 0, 2**64 - 1, "scenario.transfer_amount must be a u64"),
    ("scenario.burn_amount", int, 0, 2**64 - 1, "scenario.burn_amount must be a u64"),
]

# Valid values for enum-like fields
VALID_VALUES = {
    "commitment": COMMITMENT_LEVELS,
    "log_level": ["DEBUG", "INFO", "WARNING", "ERROR"],
}

DEFAULTS = {
    "commitment": "finalized",
    "log_level": "INFO",
    "confirmation": {"timeout": 60},
    "retries": {"max_attempts": 1},
    "scenario": {},
}


def load_lifecycle_config(path: str) -> dict:
    """Load and validate a lifecycle configuration from a YAML file."""
    with open(path) as f:
        config = yaml.safe_load(f) or {}

    env_file = config.get("env_file")
    if env_file:
        env_path = os.path.join(os.path.dirname(path), env_file)
        if os.path.exists(env_path):
            load_dotenv(env_path, override=True)
        else:
            load_dotenv(env_file, override=True)

    resolve_env_vars(config)
    apply_defaults(config)
    validate_config(config)
    return config


def resolve_env_vars(config: dict) -> None:
    """Recursively resolve environment variables in the configuration."""
    def resolve_env(value):
        if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            env_var = value[2:-1]
            env_value = os.getenv(env_var)
            if env_value is None:
                raise ValueError(f"Environment variable '{env_var}' not found")
            return env_value
        return value

    def resolve_all(d):
        for k, v in d.items():
            if isinstance(v, dict):
                resolve_all(v)
            else:
                d[k] = resolve_env(v)

    resolve_all(config)


def apply_defaults(config: dict) -> None:
    """Fill in optional settings that are not present."""
    for key, default in DEFAULTS.items():
        if isinstance(default, dict):
            # An empty YAML section loads as None
            section = config.get(key) or {}
            config[key] = section
            for sub_key, sub_default in default.items():
                section.setdefault(sub_key, sub_default)
        else:
            config.setdefault(key, default)


def get_nested_value(config: dict, path: str) -> Any:
    """Get a nested value from the configuration using dot notation."""
    keys = path.split(".")
    value = config
    for key in keys:
        if not isinstance(value, dict) or key not in value:
            raise ValueError(f"Missing required config key: {path}")
        value = value[key]
    return value


def validate_config(config: dict) -> None:
    """Validate the configuration against defined rules."""
    # Validate required fields
    for field in REQUIRED_FIELDS:
        get_nested_value(config, field)

    if not str(config["rpc_endpoint"]).startswith(("http://", "https://")):
        raise ValueError("rpc_endpoint must start with http:// or https://")

    # Validate config rules
    for path, expected_type, min_val, max_val, error_msg in CONFIG_VALIDATION_RULES:
        try:
            value = get_nested_value(config, path)
        except ValueError:
            continue

        if isinstance(value, bool) or not isinstance(value, expected_type):
            raise ValueError(f"Type error: {error_msg}")

        if not (min_val <= value <= max_val):
            raise ValueError(f"Range error: {error_msg}")

    timeout = (config.get("confirmation") or {}).get("timeout")
    if timeout is not None and timeout <= 0:
        raise ValueError("Range error: confirmation.timeout must be a positive number")

    # Validate enum-like fields
    for path, valid_values in VALID_VALUES.items():
        value = get_nested_value(config, path)
        if value not in valid_values:
            raise ValueError(f"{path} must be one of {valid_values}")

    # A transfer cannot move more than the wallet was funded with
    scenario = config.get("scenario") or {}
    if scenario.get("transfer_amount", 0) > scenario.get("mint_amount", 0):
        raise ValueError("scenario.transfer_amount cannot exceed scenario.mint_amount")


def print_config_summary(config: dict) -> None:
    """Print a summary of the loaded configuration."""
    token = config.get("token", {})
    print(f"Run name: {config.get('name', 'unnamed')}")
    print(f"RPC endpoint: {config.get('rpc_endpoint')}")
    print(f"Commitment: {config.get('commitment')}")
    print(f"Token: {token.get('name')} ({token.get('symbol')}) - {token.get('uri')}")

    scenario = config.get("scenario") or {}
    if scenario:
        print("Scenario:")
        for key, value in scenario.items():
            if key != "recipient_private_key":
                print(f"  - {key}: {value}")

    print("Configuration loaded successfully!")
