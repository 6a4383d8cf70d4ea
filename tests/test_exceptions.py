"""
Tests for the shared error types.
"""

from domains.core import (
    ConfigurationError,
    NotFoundError,
    Outcome,
    TransportError,
    UnauthorizedError,
    ValidationError,
)


class TestApplicationErrors:
    """Tests for status mapping and retry classification."""

    def test_status_codes(self):
        assert NotFoundError("候选人", "c1").http_status_code == 404
        assert ValidationError("bad").http_status_code == 400
        assert UnauthorizedError().http_status_code == 401
        assert TransportError("collab-api", "down").http_status_code == 502
        assert ConfigurationError("STORE_BACKEND", "x").http_status_code == 500

    def test_only_transport_errors_are_retryable(self):
        assert TransportError("collab-api", "down").retryable
        assert not UnauthorizedError().retryable
        assert not NotFoundError("通知", "r1").retryable

    def test_validation_details(self):
        error = ValidationError("笔记内容不能为空", field="raw_text")
        assert error.details == {"field": "raw_text"}
        assert ValidationError("bad").details is None

    def test_unauthorized_carries_redirect(self):
        error = UnauthorizedError(redirect="/signin")
        assert error.redirect == "/signin"
        assert error.details == {"redirect": "/signin"}
        assert str(error).startswith("[UNAUTHORIZED]")


class TestOutcome:
    """Tests for Outcome."""

    def test_changed(self):
        assert Outcome.APPLIED.changed
        assert not Outcome.CONFLICT_IGNORED.changed
