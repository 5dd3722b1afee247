#!/usr/bin/env python3
"""
Config Loader Module

Loads the earnings-alerts configuration from a local JSON file and applies
environment variable overrides, so secrets (SMTP password, sheet ID) can be
injected by the scheduler instead of living in config.json.

Environment overrides:
    GOOGLE_SHEET_ID                 -> sheets.spreadsheet_id
    SHEET_NAME                      -> sheets.tab_name
    GOOGLE_CREDENTIALS_FILE         -> sheets.credentials_file
    EARNINGS_ALERTS_LEDGER_PATH     -> alerts.ledger_path
    EARNINGS_ALERTS_SMTP_USER       -> email.username
    EARNINGS_ALERTS_SMTP_PASSWORD   -> email.password
"""

import copy
import json
import logging
import os
from typing import Any, Dict

from earnings_alerts.alert_ledger import DEFAULT_DAYS_TO_KEEP, DEFAULT_LEDGER_PATH

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "sheets": {
        "spreadsheet_id": "",
        "tab_name": None,
        "credentials_file": "config/google_credentials.json",
        "timeout": 15,
        "columns": {},
        "skip_header": True,
    },
    "alerts": {
        "alert_days_before": [0],
        "ledger_path": DEFAULT_LEDGER_PATH,
        "retention_days": DEFAULT_DAYS_TO_KEEP,
    },
    "email": {
        "enabled": True,
        "recipients": [],
        "smtp_host": "smtp.gmail.com",
        "smtp_port": 465,
        "sender": "",
        "username": "",
        "password": "",
    },
}

ENV_OVERRIDES = {
    "GOOGLE_SHEET_ID": ("sheets", "spreadsheet_id"),
    "SHEET_NAME": ("sheets", "tab_name"),
    "GOOGLE_CREDENTIALS_FILE": ("sheets", "credentials_file"),
    "EARNINGS_ALERTS_LEDGER_PATH": ("alerts", "ledger_path"),
    "EARNINGS_ALERTS_SMTP_USER": ("email", "username"),
    "EARNINGS_ALERTS_SMTP_PASSWORD": ("email", "password"),
}


class ConfigLoader:
    """
    Configuration loader: defaults <- config.json <- environment.

    Usage:
        loader = ConfigLoader("config/config.json")
        config = loader.load_config()
    """

    def __init__(self, local_config_path: str = DEFAULT_CONFIG_PATH):
        """
        Initialize config loader.

        Args:
            local_config_path: Path to the JSON config file
        """
        self.local_config_path = local_config_path
        self._config = None

    def load_config(self) -> Dict[str, Any]:
        """
        Load configuration (cached after the first call).

        Returns:
            dict: Full configuration dictionary

        Raises:
            FileNotFoundError: If the config file doesn't exist
            json.JSONDecodeError: If the config file is invalid JSON
            ValueError: If a setting is invalid
        """
        if self._config is not None:
            return self._config

        if not os.path.exists(self.local_config_path):
            raise FileNotFoundError(
                f"Config file not found: {self.local_config_path}\n"
                f"Copy config/config.example.json to {self.local_config_path}"
            )

        with open(self.local_config_path, "r") as f:
            file_config = json.load(f)

        logger.info(f"Loaded config from: {self.local_config_path}")

        config = copy.deepcopy(DEFAULT_CONFIG)
        for section, values in file_config.items():
            if isinstance(values, dict) and isinstance(config.get(section), dict):
                config[section].update(values)
            else:
                config[section] = values

        self._apply_env_overrides(config)
        validate_config(config)

        self._config = config
        return config

    @staticmethod
    def _apply_env_overrides(config: Dict[str, Any]):
        for env_var, (section, key) in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value:
                config[section][key] = value
                logger.debug(f"{section}.{key} set from {env_var}")


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration values.

    Args:
        config: Configuration dictionary

    Returns:
        bool: True if valid, raises ValueError otherwise
    """
    for section in ("sheets", "alerts", "email"):
        if not isinstance(config.get(section), dict):
            raise ValueError(f"Missing config section: {section}")

    offsets = config["alerts"].get("alert_days_before")
    if not isinstance(offsets, list) or not offsets:
        raise ValueError("alerts.alert_days_before must be a non-empty list")
    for offset in offsets:
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ValueError(
                f"alerts.alert_days_before entries must be non-negative integers, got {offset!r}"
            )

    retention = config["alerts"].get("retention_days")
    if isinstance(retention, bool) or not isinstance(retention, int) or retention < 1:
        raise ValueError(f"alerts.retention_days must be a positive integer, got {retention!r}")

    if not config["alerts"].get("ledger_path"):
        raise ValueError("alerts.ledger_path must be set")

    if not isinstance(config["email"].get("recipients", []), list):
        raise ValueError("email.recipients must be a list")

    if not config["sheets"].get("spreadsheet_id"):
        logger.warning("sheets.spreadsheet_id is empty - set GOOGLE_SHEET_ID")

    return True


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Convenience function for loading configuration.

    Args:
        config_path: Path to the JSON config file

    Returns:
        dict: Configuration dictionary
    """
    return ConfigLoader(config_path).load_config()
