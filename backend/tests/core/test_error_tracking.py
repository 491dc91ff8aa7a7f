"""
Tests for Sentry initialization and error capture.
"""
from unittest.mock import patch

import pytest

from portal.core import error_tracking


@pytest.fixture(autouse=True)
def reset_initialized():
    error_tracking._initialized = False
    yield
    error_tracking._initialized = False


class TestInitErrorTracking:
    def test_skipped_without_dsn(self):
        with patch.object(error_tracking.settings, "SENTRY_DSN", ""), patch(
            "portal.core.error_tracking.sentry_sdk.init"
        ) as mock_init:
            assert error_tracking.init_error_tracking() is False

        mock_init.assert_not_called()

    def test_initializes_with_dsn(self):
        with patch.object(
            error_tracking.settings, "SENTRY_DSN", "https://public@sentry.io/123456"
        ), patch("portal.core.error_tracking.sentry_sdk.init") as mock_init:
            assert error_tracking.init_error_tracking() is True

        kwargs = mock_init.call_args.kwargs
        assert kwargs["dsn"] == "https://public@sentry.io/123456"
        assert kwargs["send_default_pii"] is False

    def test_init_failure_is_logged_not_raised(self, caplog):
        with patch.object(
            error_tracking.settings, "SENTRY_DSN", "https://public@sentry.io/123456"
        ), patch(
            "portal.core.error_tracking.sentry_sdk.init",
            side_effect=RuntimeError("bad dsn"),
        ):
            assert error_tracking.init_error_tracking() is False

        assert "Failed to initialize Sentry" in caplog.text


class TestCaptureError:
    def test_noop_when_not_initialized(self):
        with patch("portal.core.error_tracking.sentry_sdk.capture_exception") as capture:
            assert error_tracking.capture_error(ValueError("x")) is None

        capture.assert_not_called()

    def test_captures_when_initialized(self):
        error_tracking._initialized = True
        with patch(
            "portal.core.error_tracking.sentry_sdk.capture_exception",
            return_value="event-1",
        ) as capture:
            event_id = error_tracking.capture_error(
                ValueError("x"), context={"path": "/v1/session/start"}
            )

        assert event_id == "event-1"
        capture.assert_called_once()
