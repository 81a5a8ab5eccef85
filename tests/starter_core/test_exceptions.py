"""
Tests for the exception hierarchy.
"""

from starter_core import (
    AlreadyRegisteredError,
    ChannelMisuseError,
    ConfigurationError,
    DuplicateRegistrationError,
    ErrorClassification,
    HealthCheckError,
    InvalidStateError,
    LifecycleError,
    OrchestratorExistsError,
    ProtocolError,
    Severity,
    StarterException,
    StartupError,
    UnhandledError,
)


class TestHierarchy:
    """Tests for base classes and defaults."""

    def test_protocol_errors(self):
        for error in (
            DuplicateRegistrationError("db"),
            AlreadyRegisteredError("db", "main"),
            ChannelMisuseError("db", "stopped"),
            InvalidStateError("bad"),
            OrchestratorExistsError("again"),
        ):
            assert isinstance(error, ProtocolError)
            assert isinstance(error, StarterException)
            assert not error.is_recoverable

    def test_lifecycle_errors(self):
        assert isinstance(StartupError("x"), LifecycleError)
        assert isinstance(HealthCheckError("x"), LifecycleError)
        assert HealthCheckError("x").classification == ErrorClassification.TRANSIENT
        assert HealthCheckError("x").is_recoverable

    def test_severity_defaults(self):
        assert StarterException("x").severity == Severity.MEDIUM
        assert ConfigurationError("x").severity == Severity.HIGH
        assert OrchestratorExistsError("x").severity == Severity.CRITICAL
        assert UnhandledError("x").severity == Severity.CRITICAL

    def test_severity_override(self):
        error = StartupError("x", severity=Severity.LOW)

        assert error.severity == Severity.LOW


class TestContext:
    """Tests for structured context."""

    def test_duplicate_registration(self):
        error = DuplicateRegistrationError("db")

        assert error.context == {"unit": "db"}
        assert "db" in str(error)

    def test_configuration_error(self):
        error = ConfigurationError("bad port", config_key="port", actual_value=0)

        assert error.context == {"config_key": "port", "actual_value": "0"}

    def test_cause_recorded(self):
        cause = OSError("address in use")
        error = HealthCheckError("cannot bind", cause=cause)

        assert error.cause is cause
        assert error.context["cause_type"] == "OSError"
        assert error.context["cause_message"] == "address in use"

    def test_to_dict(self):
        error = StartupError("interrupted", unit="web")

        data = error.to_dict()

        assert data["type"] == "StartupError"
        assert data["message"] == "interrupted"
        assert data["severity"] == "high"
        assert data["classification"] == "recoverable"
        assert data["context"] == {"unit": "web"}
        assert data["cause"] is None
        assert "timestamp" in data

    def test_to_log_format(self):
        error = InvalidStateError("cannot start", operation="start", status="running")

        assert error.to_log_format() == (
            "[HIGH] InvalidStateError: cannot start | operation=start, status=running"
        )

    def test_to_log_format_without_context(self):
        assert UnhandledError("boom").to_log_format() == "[CRITICAL] UnhandledError: boom"
