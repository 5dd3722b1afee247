"""
Unit tests for configuration loading and validation.

Run tests with: python -m pytest tests/test_config_loader.py -v
"""

import json
import os
import sys
import tempfile

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from earnings_alerts.config_loader import (
    DEFAULT_CONFIG,
    ENV_OVERRIDES,
    ConfigLoader,
    load_config,
    validate_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Make sure no override variables leak in from the shell."""
    for env_var in ENV_OVERRIDES:
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def config_file():
    """Write a config dict to a temp file and return its path."""
    paths = []

    def _write(data):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            json.dump(data, f)
            paths.append(f.name)
        return f.name

    yield _write

    for path in paths:
        if os.path.exists(path):
            os.remove(path)


class TestConfigLoader:

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/config.json")

    def test_defaults_fill_missing_keys(self, config_file):
        path = config_file({"sheets": {"spreadsheet_id": "abc"}})

        config = load_config(path)

        assert config["sheets"]["spreadsheet_id"] == "abc"
        assert config["sheets"]["skip_header"] is True
        assert config["alerts"]["alert_days_before"] == [0]
        assert config["email"]["smtp_port"] == 465

    def test_defaults_not_mutated(self, config_file):
        path = config_file({"alerts": {"alert_days_before": [5, 1]}})
        load_config(path)
        assert DEFAULT_CONFIG["alerts"]["alert_days_before"] == [0]

    def test_env_overrides(self, config_file, monkeypatch):
        path = config_file({"sheets": {"spreadsheet_id": "from-file"}})
        monkeypatch.setenv("GOOGLE_SHEET_ID", "from-env")
        monkeypatch.setenv("EARNINGS_ALERTS_SMTP_PASSWORD", "secret")

        config = load_config(path)

        assert config["sheets"]["spreadsheet_id"] == "from-env"
        assert config["email"]["password"] == "secret"

    def test_config_is_cached(self, config_file):
        path = config_file({})
        loader = ConfigLoader(path)

        first = loader.load_config()
        os.remove(path)

        assert loader.load_config() is first

    def test_invalid_json(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
            f.write("{broken")
        try:
            with pytest.raises(json.JSONDecodeError):
                load_config(f.name)
        finally:
            os.remove(f.name)


class TestValidateConfig:

    def _config(self, **alerts):
        config = json.loads(json.dumps(DEFAULT_CONFIG))
        config["sheets"]["spreadsheet_id"] = "abc"
        config["alerts"].update(alerts)
        return config

    def test_defaults_are_valid(self):
        assert validate_config(self._config()) is True

    @pytest.mark.parametrize("offsets", [[], [-1], ["1"], [True], "0"])
    def test_bad_offsets(self, offsets):
        with pytest.raises(ValueError):
            validate_config(self._config(alert_days_before=offsets))

    @pytest.mark.parametrize("retention", [0, -5, "30", None])
    def test_bad_retention(self, retention):
        with pytest.raises(ValueError):
            validate_config(self._config(retention_days=retention))

    def test_missing_section(self):
        config = self._config()
        del config["email"]
        with pytest.raises(ValueError):
            validate_config(config)

    def test_recipients_must_be_list(self):
        config = self._config()
        config["email"]["recipients"] = "me@example.com"
        with pytest.raises(ValueError):
            validate_config(config)

    def test_empty_spreadsheet_id_only_warns(self, caplog):
        config = self._config()
        config["sheets"]["spreadsheet_id"] = ""
        assert validate_config(config) is True
        assert "spreadsheet_id" in caplog.text
