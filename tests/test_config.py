import os
import tempfile

import yaml

from station_telemetry.config import Config


class TestConfig:
    def test_default_config(self, config):
        """Verify defaults are loaded when no file is given."""
        assert config["environment"] == "development"
        assert config["storage"]["max_logs"] == 1000
        assert config["logging"]["level"] == "DEBUG"
        assert config["forwarding"]["enabled"] is False
        assert config["forwarding"]["endpoint"] == "/api/logs"
        assert config["forwarding"]["queue_size"] == 500
        assert config["api"]["timeout"] == 10.0
        assert config["server"]["port"] == 5000

    def test_load_from_yaml(self):
        """Write a temp YAML with overrides, verify merge."""
        override = {
            "storage": {"max_logs": 5000},
            "forwarding": {"enabled": True, "base_url": "http://collector:5000"},
        }
        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".yaml", delete=False
        ) as f:
            yaml.dump(override, f)
            temp_path = f.name

        try:
            cfg = Config(temp_path)
            assert cfg["storage"]["max_logs"] == 5000
            assert cfg["forwarding"]["enabled"] is True
            assert cfg["forwarding"]["endpoint"] == "/api/logs"  # default preserved
            assert cfg.forwarding_url == "http://collector:5000/api/logs"
        finally:
            os.unlink(temp_path)

    def test_missing_file_uses_defaults(self):
        cfg = Config("/nonexistent/path/config.yaml")
        assert cfg["storage"]["max_logs"] == 1000

    def test_invalid_yaml_uses_defaults(self, tmp_path, caplog):
        path = tmp_path / "broken.yaml"
        path.write_text("storage: [max_logs: 10\n")
        cfg = Config(str(path))
        assert cfg["storage"]["max_logs"] == 1000
        assert "Invalid YAML" in caplog.text

    def test_overrides_applied_last(self):
        cfg = Config(overrides={"storage": {"max_logs": 25}})
        assert cfg["storage"]["max_logs"] == 25

    def test_deep_merge(self):
        """Verify nested override works (e.g., override only server.port)."""
        base = {"server": {"host": "localhost", "port": 5000, "debug": False}}
        override = {"server": {"port": 9090}}
        result = Config._deep_merge(base, override)
        assert result["server"]["port"] == 9090
        assert result["server"]["host"] == "localhost"
        assert result["server"]["debug"] is False

    def test_forwarding_flag(self):
        assert Config().forwarding_enabled is False
        assert Config(overrides={"forwarding": {"enabled": True}}).forwarding_enabled is True
        assert Config(overrides={"environment": "production"}).forwarding_enabled is True

    def test_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "telemetry.yaml"
        path.write_text("environment: staging\n")
        monkeypatch.setenv("TELEMETRY_CONFIG", str(path))
        assert Config.from_env()["environment"] == "staging"

    def test_get_and_contains(self, config):
        assert config.get("nonexistent", "fallback") == "fallback"
        assert "storage" in config
        assert "nonexistent" not in config
