"""Tests for application settings."""

from erp.core.config import Settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ERP_DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.database_url.startswith("sqlite")
        assert settings.dna_path.endswith("approval-thresholds.md")
        assert settings.seed_demo_data is False

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("ERP_DNA_PATH", "/etc/dna/rules.yaml")
        monkeypatch.setenv("ERP_LOG_LEVEL", "DEBUG")
        settings = Settings(_env_file=None)
        assert settings.dna_path == "/etc/dna/rules.yaml"
        assert settings.log_level == "DEBUG"

    def test_cors_origins_list(self):
        settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test,")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
