"""
Unit tests for AgenticHub error handling system.
"""

import pytest

from agentichub.errors import (
    ConfigurationError,
    DecodingError,
    HubError,
    HubErrorCode,
    HubNetworkError,
    InstallationFailedError,
    InvalidResponseError,
    load_failed,
)


class TestHubErrorCode:
    """Test error code enumeration."""

    def test_error_codes_exist(self):
        """Test that all expected error codes exist."""
        assert HubErrorCode.INTERNAL_ERROR == 1
        assert HubErrorCode.INVALID_RESPONSE == 1000
        assert HubErrorCode.DECODING_ERROR == 1001
        assert HubErrorCode.NETWORK_ERROR == 1002
        assert HubErrorCode.CONFIGURATION_ERROR == 2000
        assert HubErrorCode.INSTALLATION_FAILED == 2001
        assert HubErrorCode.REGISTRY_LOAD_FAILED == 3000
        assert HubErrorCode.CLIENT_DISCOVERY_FAILED == 3001

    def test_error_code_values_unique(self):
        """Test that all error codes have unique values."""
        codes = [code.value for code in HubErrorCode]
        assert len(codes) == len(set(codes)), "Duplicate error code values found"


class TestHubError:
    """Test base HubError class."""

    def test_basic_error_creation(self):
        """Test creating a basic error."""
        error = HubError(HubErrorCode.INTERNAL_ERROR, "Test error")

        assert error.code == HubErrorCode.INTERNAL_ERROR
        assert error.message == "Test error"
        assert error.data == {}
        assert str(error) == "Test error"

    def test_to_dict(self):
        """Test JSON rendering of an error."""
        error = HubError(HubErrorCode.NETWORK_ERROR, "offline", {"url": "https://x"})

        assert error.to_dict() == {
            "code": 1002,
            "type": "network_error",
            "message": "offline",
            "data": {"url": "https://x"},
        }

    def test_repr(self):
        error = HubError(HubErrorCode.INTERNAL_ERROR, "boom")
        assert "boom" in repr(error)
        assert "INTERNAL_ERROR" in repr(error)


class TestSpecificErrors:
    """Test the typed error subclasses."""

    def test_invalid_response(self):
        error = InvalidResponseError("https://api.test/servers", 502)

        assert isinstance(error, HubError)
        assert error.code == HubErrorCode.INVALID_RESPONSE
        assert error.status_code == 502
        assert error.url == "https://api.test/servers"
        assert "HTTP 502" in error.message

    def test_invalid_response_with_reason(self):
        error = InvalidResponseError("https://api.test", reason="body is not JSON")

        assert error.status_code is None
        assert error.message.endswith("body is not JSON")

    def test_decoding_error(self):
        error = DecodingError("server listing", "name missing", url="https://x")

        assert error.code == HubErrorCode.DECODING_ERROR
        assert error.data == {"what": "server listing", "reason": "name missing", "url": "https://x"}

    def test_network_error(self):
        error = HubNetworkError("https://x", "timed out")

        assert error.code == HubErrorCode.NETWORK_ERROR
        assert "timed out" in str(error)

    def test_configuration_error(self):
        error = ConfigurationError("no path", client="trae")

        assert error.code == HubErrorCode.CONFIGURATION_ERROR
        assert error.data == {"client": "trae"}

    def test_installation_failed(self):
        error = InstallationFailedError("fs", "read-only", client="cursor")

        assert error.code == HubErrorCode.INSTALLATION_FAILED
        assert error.message == "Failed to install 'fs': read-only"
        assert error.data["server"] == "fs"

    def test_errors_are_raisable(self):
        with pytest.raises(HubError):
            raise ConfigurationError("bad")


class TestLoadFailed:
    def test_registry_failure_wraps_cause(self):
        cause = InvalidResponseError("https://x", 500)

        error = load_failed(HubErrorCode.REGISTRY_LOAD_FAILED, cause)

        assert error.code == HubErrorCode.REGISTRY_LOAD_FAILED
        assert error.message == f"Failed to load registry: {cause}"
        assert error.data == {"cause": "InvalidResponseError", "cause_code": 1000}

    def test_discovery_failure_with_plain_exception(self):
        error = load_failed(HubErrorCode.CLIENT_DISCOVERY_FAILED, OSError("denied"))

        assert error.message == "Failed to discover clients: denied"
        assert "cause_code" not in error.data
