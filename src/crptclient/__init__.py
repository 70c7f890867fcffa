"""crptclient - rate-limited client for the CRPT document registration API.

This package queues document-creation requests, admits at most a fixed
number of them per time window and reports each outcome asynchronously.
"""

__version__ = "0.1.0"

from crptclient.client import CrptApi
from crptclient.config.settings import ClientConfig, RateLimitConfig, Window
from crptclient.exceptions import (
    ClientClosedError,
    ConfigError,
    CrptClientError,
    DispatchError,
    DocumentSerializationError,
    RejectedDocumentError,
    TransportError,
)
from crptclient.schemas.documents import Description, Document, Product
from crptclient.schemas.outcomes import ClientStats, SubmissionOutcome

__all__ = [
    "__version__",
    "CrptApi",
    "ClientConfig",
    "RateLimitConfig",
    "Window",
    "CrptClientError",
    "ConfigError",
    "ClientClosedError",
    "DispatchError",
    "TransportError",
    "DocumentSerializationError",
    "RejectedDocumentError",
    "Document",
    "Description",
    "Product",
    "ClientStats",
    "SubmissionOutcome",
]
