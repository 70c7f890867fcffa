"""Data models for documents, submission tasks and their outcomes."""

from crptclient.schemas.documents import (
    Description,
    Document,
    DocStatus,
    DocType,
    Product,
    ProductType,
)
from crptclient.schemas.outcomes import ClientStats, OutcomeStatus, SubmissionOutcome
from crptclient.schemas.tasks import CompletionHook, Payload, SubmissionTask

__all__ = [
    "ClientStats",
    "CompletionHook",
    "Description",
    "DocStatus",
    "DocType",
    "Document",
    "OutcomeStatus",
    "Payload",
    "Product",
    "ProductType",
    "SubmissionOutcome",
    "SubmissionTask",
]
