"""Exception types raised or reported by crptclient.

``CrptClientError`` is the root. Configuration problems and use of a
closed client are raised to the caller; per-document failures
(``DispatchError`` and subclasses) are never raised out of
``CrptApi.submit`` and travel inside a ``SubmissionOutcome`` instead.
"""


class CrptClientError(Exception):
    """Root of every crptclient error.

    Attributes:
        message: Error description without context suffixes.
        cause: Underlying exception, if any.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def _context(self) -> list[str]:
        """Suffixes appended to the message, e.g. ``"field: timeout"``."""
        if self.cause is not None:
            return [f"caused by: {self.cause}"]
        return []

    def __str__(self) -> str:
        parts = [self.message]
        parts.extend(f"({item})" for item in self._context())
        return " ".join(parts)


class ConfigError(CrptClientError):
    """Invalid client configuration.

    Raised for a non-positive request limit or window, an unknown time
    unit, malformed YAML and unknown override keys.

    Attributes:
        field_path: Dotted path of the offending field, such as
            ``rate_limit.request_limit``.
    """

    def __init__(
        self,
        message: str,
        field_path: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause)
        self.field_path = field_path

    def _context(self) -> list[str]:
        context = super()._context()
        if self.field_path:
            context.append(f"field: {self.field_path}")
        return context


class ClientClosedError(CrptClientError):
    """The client was closed.

    Raised by submit after close, and used as the outcome error of
    documents still queued when the client closed.
    """


class DispatchError(CrptClientError):
    """Failure of one document submission."""


class TransportError(DispatchError):
    """The request failed before any response was received."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause)
        self.url = url

    def _context(self) -> list[str]:
        context = super()._context()
        if self.url:
            context.append(f"url: {self.url}")
        return context


class DocumentSerializationError(DispatchError):
    """The document payload could not be encoded as JSON."""


class RejectedDocumentError(DispatchError):
    """The API answered with a status other than 200.

    Attributes:
        status_code: HTTP status of the response.
        body: Raw response body.
    """

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"Document rejected with status {status_code}")
        self.status_code = status_code
        self.body = body
