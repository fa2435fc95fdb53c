"""Tests for Settings configuration model."""

import logging
from pathlib import Path

import pytest

from cortex.config import Settings
from cortex.logging_setup import LOG_FORMAT, configure_logging


class TestDefaults:
    def test_default_memory_model(self):
        s = Settings()
        assert s.default_memory_model == "haiku"

    def test_default_database_path(self):
        s = Settings()
        assert s.database_path == Path("data/cortex.db")

    def test_session_limits(self):
        s = Settings()
        assert s.session_ttl_hours == 4
        assert s.memory_window_size == 50
        assert s.memory_summarize_threshold == 20
        assert s.memory_max_entities == 50
        assert s.memory_max_facts == 30
        assert s.memory_topic_history_size == 10

    def test_min_confidence_cutoff(self):
        s = Settings()
        assert s.memory_min_confidence == 0.7

    def test_default_risk_catalog_path(self):
        s = Settings()
        assert s.risk_catalog_path == Path("config/RISK_CATALOG.toml")


class TestDerived:
    def test_session_ttl_seconds(self):
        s = Settings(session_ttl_hours=2)
        assert s.session_ttl_seconds == 7200


class TestExtraForbidden:
    def test_unknown_field_raises(self):
        with pytest.raises(ValueError, match="extra_forbidden"):
            Settings(**{"nonexistent_field": "value"})


class TestConfigureLogging:
    def test_quiets_httpx_and_applies_level(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        root.handlers = []
        try:
            configure_logging("debug")
            assert root.level == logging.DEBUG
            assert root.handlers[0].formatter._fmt == LOG_FORMAT
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
