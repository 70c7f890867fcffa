"""Deferred document submission task."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from crptclient.schemas.documents import Document
from crptclient.schemas.outcomes import SubmissionOutcome

if TYPE_CHECKING:
    from crptclient.ratelimit.gate import Permit

Payload = Document | Mapping[str, Any]
CompletionHook = Callable[[SubmissionOutcome], Awaitable[None] | None]


class SubmissionTask:
    """One queued document submission.

    Created by the client on submit and consumed exactly once by the
    dispatcher. The replenisher may attach a permit before dispatch;
    otherwise the dispatcher acquires one itself.

    Attributes:
        task_id: Monotonic submission sequence number.
        payload: Document or JSON-serializable mapping.
        signature: Value of the Signature request header.
        on_complete: Optional hook receiving the terminal outcome.
        permit: Permit granted at admission, if any.
    """

    __slots__ = ("task_id", "payload", "signature", "on_complete", "permit")

    def __init__(
        self,
        task_id: int,
        payload: Payload,
        signature: str,
        on_complete: CompletionHook | None = None,
    ) -> None:
        self.task_id = task_id
        self.payload = payload
        self.signature = signature
        self.on_complete = on_complete
        self.permit: Permit | None = None

    @property
    def pre_admitted(self) -> bool:
        return self.permit is not None

    def __repr__(self) -> str:
        return (
            f"SubmissionTask(task_id={self.task_id}, "
            f"pre_admitted={self.pre_admitted})"
        )
