"""
Tests for Logging Configuration
"""
import structlog

from src.dealflow.utils.logger import SERVICE_NAME, add_app_context, tenant_context


class TestLogger:
    """Tests for the logging helpers."""

    def test_app_context_is_stamped(self):
        event = add_app_context(None, "info", {"event": "signals_pipeline_started"})

        assert event["service"] == SERVICE_NAME
        assert "environment" in event

    def test_app_context_keeps_explicit_values(self):
        event = add_app_context(None, "info", {"event": "x", "service": "other"})

        assert event["service"] == "other"

    def test_tenant_context_binds_and_unbinds(self):
        with tenant_context("org-1", trigger="cli"):
            assert structlog.contextvars.get_contextvars() == {"org_id": "org-1", "trigger": "cli"}

        assert "org_id" not in structlog.contextvars.get_contextvars()
