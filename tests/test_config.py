"""
Tests for engine configuration.
"""

from datetime import time

from handover_engine.config import Config, config


class TestConfig:
    def test_validate_reports_missing_database_url(self, monkeypatch):
        monkeypatch.setattr(Config, 'DATABASE_URL', '')

        assert config.validate() == ['DATABASE_URL']

    def test_validate_passes(self, monkeypatch):
        monkeypatch.setattr(Config, 'DATABASE_URL', 'postgresql://localhost/app')

        assert config.validate() == []

    def test_handover_defaults_parse_as_times(self):
        assert time.fromisoformat(config.HANDOVER_DEFAULT_START) < time.fromisoformat(config.HANDOVER_DEFAULT_END)

    def test_retry_and_depth_limits_positive(self):
        assert config.SECTION_WRITE_MAX_ATTEMPTS >= 1
        assert config.CATALOG_MAX_BUNDLE_DEPTH >= 0
