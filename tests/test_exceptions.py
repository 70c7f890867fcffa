"""Unit tests for the crptclient exception hierarchy.

Covers message rendering with context suffixes, cause chaining and the
attributes carried by per-document failures.
"""

import httpx
import pytest

from crptclient.exceptions import (
    ClientClosedError,
    ConfigError,
    CrptClientError,
    DispatchError,
    DocumentSerializationError,
    RejectedDocumentError,
    TransportError,
)


@pytest.mark.unit
class TestCrptClientError:
    """Tests for message rendering on the root error."""

    def test_plain_message_should_render_unchanged(self) -> None:
        """Without context the string is the bare message."""
        error = CrptClientError("Client is not started")

        assert str(error) == "Client is not started"
        assert error.message == "Client is not started"
        assert error.cause is None

    def test_cause_should_be_appended(self) -> None:
        """A cause is rendered after the message.

        Given: A TypeError raised while encoding a payload.
        When: It is wrapped as the cause of a CrptClientError.
        Then: Both texts appear and the cause is kept as an attribute.
        """
        cause = TypeError("date is not JSON serializable")

        error = CrptClientError("Failed to encode payload", cause=cause)

        assert str(error) == (
            "Failed to encode payload (caused by: date is not JSON serializable)"
        )
        assert error.cause is cause

    def test_raise_from_should_chain(self) -> None:
        """``raise ... from`` keeps the original exception on __cause__."""
        with pytest.raises(ClientClosedError) as exc_info:
            try:
                raise RuntimeError("loop stopped")
            except RuntimeError as e:
                raise ClientClosedError("Client is closed") from e

        assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.unit
class TestConfigError:
    """Tests for ConfigError context."""

    def test_without_field_should_render_message_only(self) -> None:
        """No field path means no suffix."""
        error = ConfigError("Configuration file must contain a mapping")

        assert str(error) == "Configuration file must contain a mapping"
        assert error.field_path is None

    def test_field_path_should_follow_cause(self) -> None:
        """Field path and cause are both rendered, cause first.

        Given: A ValueError cause and the request limit field path.
        When: ConfigError is rendered.
        Then: The suffixes appear in a stable order.
        """
        error = ConfigError(
            "Request limit must be positive",
            field_path="rate_limit.request_limit",
            cause=ValueError("got 0"),
        )

        assert str(error) == (
            "Request limit must be positive (caused by: got 0) "
            "(field: rate_limit.request_limit)"
        )


@pytest.mark.unit
class TestDispatchErrors:
    """Tests for per-document failure exceptions."""

    def test_transport_error_should_name_endpoint_and_cause(self) -> None:
        """TransportError renders the endpoint and the httpx cause.

        Given: A ConnectError from httpx.
        When: It is wrapped in TransportError for the create endpoint.
        Then: Message, cause and URL all appear.
        """
        cause = httpx.ConnectError("connection refused")

        error = TransportError("Request failed", url="https://x.test/create", cause=cause)

        assert str(error) == (
            "Request failed (caused by: connection refused) "
            "(url: https://x.test/create)"
        )
        assert error.url == "https://x.test/create"

    def test_rejected_document_error_should_keep_response(self) -> None:
        """RejectedDocumentError keeps status and body of the response."""
        error = RejectedDocumentError(500, '{"error": "internal"}')

        assert error.status_code == 500
        assert error.body == '{"error": "internal"}'
        assert str(error) == "Document rejected with status 500"


@pytest.mark.parametrize(
    ("exception_class", "parent_class"),
    [
        (ConfigError, CrptClientError),
        (ClientClosedError, CrptClientError),
        (DispatchError, CrptClientError),
        (TransportError, DispatchError),
        (DocumentSerializationError, DispatchError),
        (RejectedDocumentError, DispatchError),
    ],
)
def test_hierarchy(
    exception_class: type[CrptClientError], parent_class: type[Exception]
) -> None:
    """Every error derives from its category and from CrptClientError."""
    assert issubclass(exception_class, parent_class)
    assert issubclass(exception_class, CrptClientError)
