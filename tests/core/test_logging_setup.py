"""Tests for ingestbridge.core.logging."""

import json

import structlog

from ingestbridge.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)


class TestConfigureLogging:
    def test_json_output_includes_bound_context(self, capsys):
        configure_logging(level="INFO", json_format=True)
        logger = get_logger("ingestbridge.test")
        with LogContext(provenance="/in/obs.csv"):
            logger.info("converting_path", written=2)
        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "converting_path"
        assert event["provenance"] == "/in/obs.csv"
        assert event["written"] == 2
        assert event["service.name"] == "ingest-bridge"

    def test_context_is_unbound_after_block(self):
        with LogContext(provenance="/in/obs.csv"):
            assert structlog.contextvars.get_contextvars()["provenance"] == "/in/obs.csv"
        assert "provenance" not in structlog.contextvars.get_contextvars()

    def test_level_filters_debug(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        get_logger("ingestbridge.test").info("hidden_event")
        assert "hidden_event" not in capsys.readouterr().err


class TestContextHelpers:
    def test_bind_unbind_clear(self):
        clear_context()
        bind_context(processor="ingest", type_name="obs")
        unbind_context("type_name")
        assert structlog.contextvars.get_contextvars() == {"processor": "ingest"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
