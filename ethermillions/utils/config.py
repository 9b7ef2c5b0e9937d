"""
Configuration Management
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).parent.parent.parent / "config" / "client.conf"

DEFAULT_CONFIG: Dict[str, Any] = {
    "blockchain": {
        "rpc_url": "http://127.0.0.1:8545",
        "rpc_timeout": 10.0,
        "chain_id": 31337,
        "gas_multiplier": 1.15,
        "tx_timeout": 180,
    },
    "client": {
        "refresh_interval": 30,
    },
    "wallet": {
        "private_keys": "",
    },
    "server": {
        "host": "127.0.0.1",
        "port": 6080,
    },
}

_ENV_SECTIONS = {
    "BLOCKCHAIN_": "blockchain",
    "CLIENT_": "client",
    "WALLET_": "wallet",
    "SERVER_": "server",
}


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from defaults, a JSON file and environment variables"""
    config = copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_file or os.getenv("ETHERMILLIONS_CONFIG") or DEFAULT_CONFIG_FILE)
    if path.exists():
        try:
            with open(path, 'r') as f:
                file_config = json.load(f)
            _merge(config, file_config)
            logger.info(f"Loaded configuration from {path}")
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
    else:
        logger.warning(f"Config file {path} not found. Will only use defaults and environment variables.")

    # Override with environment variables, defined in .env
    config = _apply_env_overrides(config)

    logger.debug("Configuration after applying environment overrides: %s", json.dumps(_redacted(config), indent=2))

    return config


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    for section, values in override.items():
        if isinstance(values, dict) and isinstance(base.get(section), dict):
            base[section].update(values)
        else:
            base[section] = values


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration"""
    for key, value in os.environ.items():
        for prefix, section in _ENV_SECTIONS.items():
            if key.startswith(prefix):
                config.setdefault(section, {})[key[len(prefix):].lower()] = value
                break

    return config


def _redacted(config: Dict[str, Any]) -> Dict[str, Any]:
    shown = copy.deepcopy(config)
    wallet = shown.get("wallet")
    if isinstance(wallet, dict) and wallet.get("private_keys"):
        wallet["private_keys"] = "***"
    return shown


def get_config_value(config: Dict[str, Any], key_path: str, default=None):
    """Get configuration value by dot-separated key path"""
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default

