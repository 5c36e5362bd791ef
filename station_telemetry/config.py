import copy
import logging
import os

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TELEMETRY_CONFIG"


class Config:
    """Configuration manager that loads from YAML and merges with defaults."""

    DEFAULTS = {
        "environment": "development",
        "storage": {
            "max_logs": 1000,
        },
        "logging": {
            "level": "DEBUG",
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        },
        "forwarding": {
            "enabled": False,
            "base_url": "https://fuel-station-backend.onrender.com",
            "endpoint": "/api/logs",
            "queue_size": 500,
            "timeout": 5.0,
        },
        "api": {
            "base_url": "https://fuel-station-backend.onrender.com",
            "timeout": 10.0,
        },
        "server": {
            "host": "0.0.0.0",
            "port": 5000,
            "debug": False,
        },
    }

    def __init__(self, config_path=None, overrides=None):
        self._config = copy.deepcopy(self.DEFAULTS)

        if config_path is not None:
            try:
                with open(config_path, "r") as f:
                    user_config = yaml.safe_load(f)

                if user_config and isinstance(user_config, dict):
                    self._config = self._deep_merge(self._config, user_config)
            except FileNotFoundError:
                pass
            except yaml.YAMLError:
                logger.warning("Invalid YAML in %s, using defaults", config_path)

        if overrides:
            self._config = self._deep_merge(self._config, overrides)

    @classmethod
    def from_env(cls):
        """Load the file named by ``TELEMETRY_CONFIG`` (defaults to config.yaml)."""
        return cls(os.environ.get(CONFIG_ENV_VAR, "config.yaml"))

    @staticmethod
    def _deep_merge(base, override):
        """Recursively merge override dict into base dict."""
        result = copy.deepcopy(base)
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)
        return result

    @property
    def forwarding_enabled(self):
        """Remote forwarding runs when switched on explicitly or in production."""
        return bool(self["forwarding"]["enabled"]) or self["environment"] == "production"

    @property
    def forwarding_url(self):
        fwd = self["forwarding"]
        return fwd["base_url"].rstrip("/") + fwd["endpoint"]

    def get(self, key, default=None):
        """Get a top-level config key."""
        return self._config.get(key, default)

    def __getitem__(self, key):
        return self._config[key]

    def __contains__(self, key):
        return key in self._config
