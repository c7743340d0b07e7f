"""
Tests for Sentry error tracking.
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from coursework.observability import ErrorTracker, _serialize_value


class TestInit:
    """Tests for ErrorTracker.init()."""

    def test_skipped_without_dsn(self):
        """Test that init is a no-op when no DSN is configured."""
        tracker = ErrorTracker()

        with patch("coursework.observability.settings") as mock_settings, patch(
            "coursework.observability.sentry_sdk.init"
        ) as mock_init:
            mock_settings.SENTRY_DSN = ""
            assert tracker.init() is False

        mock_init.assert_not_called()
        assert tracker.is_initialized is False

    def test_initializes_with_dsn(self):
        """Test that sentry_sdk.init receives the configured values."""
        tracker = ErrorTracker()

        with patch("coursework.observability.settings") as mock_settings, patch(
            "coursework.observability.sentry_sdk.init"
        ) as mock_init:
            mock_settings.SENTRY_DSN = "https://public@sentry.io/123456"
            mock_settings.ENV = "production"
            mock_settings.APP_VERSION = "2.0.0"
            mock_settings.SENTRY_TRACES_SAMPLE_RATE = 0.25

            assert tracker.init() is True

        call_kwargs = mock_init.call_args[1]
        assert call_kwargs["dsn"] == "https://public@sentry.io/123456"
        assert call_kwargs["environment"] == "production"
        assert call_kwargs["release"] == "2.0.0"
        assert call_kwargs["traces_sample_rate"] == pytest.approx(0.25)
        assert call_kwargs["send_default_pii"] is False
        integration_names = {type(i).__name__ for i in call_kwargs["integrations"]}
        assert {"StarletteIntegration", "FastApiIntegration"} <= integration_names
        assert tracker.is_initialized is True

    def test_init_failure_returns_false(self):
        """Test that SDK errors are logged instead of raised."""
        tracker = ErrorTracker()

        with patch("coursework.observability.settings") as mock_settings, patch(
            "coursework.observability.sentry_sdk.init",
            side_effect=Exception("bad dsn"),
        ):
            mock_settings.SENTRY_DSN = "not-a-dsn"
            assert tracker.init() is False

        assert tracker.is_initialized is False


class TestCaptureError:
    """Tests for ErrorTracker.capture_error()."""

    def test_returns_none_when_not_initialized(self):
        """Test that nothing is sent before init."""
        with patch("coursework.observability.sentry_sdk.capture_exception") as capture:
            assert ErrorTracker().capture_error(RuntimeError("x")) is None

        capture.assert_not_called()

    def test_sends_context_and_tags(self):
        """Test that context and tags are attached to the scope."""
        tracker = ErrorTracker()
        tracker._initialized = True
        scope = MagicMock()
        new_scope = MagicMock()
        new_scope.return_value.__enter__.return_value = scope

        with patch("coursework.observability.sentry_sdk.new_scope", new_scope), patch(
            "coursework.observability.sentry_sdk.capture_exception",
            return_value="event-1",
        ) as capture:
            event_id = tracker.capture_error(
                RuntimeError("x"),
                context={"submission_id": 7, "path": "/v1/submissions/7"},
                tags={"error_type": "RuntimeError"},
            )

        assert event_id == "event-1"
        capture.assert_called_once()
        scope.set_context.assert_called_once_with(
            "additional", {"submission_id": 7, "path": "/v1/submissions/7"}
        )
        scope.set_tag.assert_called_once_with("error_type", "RuntimeError")
        assert scope.level == "error"


class TestSerializeValue:
    """Tests for context value serialization."""

    def test_primitives_unchanged(self):
        assert _serialize_value(3) == 3
        assert _serialize_value(None) is None
        assert _serialize_value("a") == "a"

    def test_datetimes_become_iso_strings(self):
        value = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert _serialize_value(value) == "2024-01-15T12:00:00+00:00"

    def test_nested_containers(self):
        assert _serialize_value({"ids": (1, 2), 3: object}) == {
            "ids": [1, 2],
            "3": str(object),
        }
