"""Network dispatch of admitted submission tasks.

The dispatcher owns the only I/O of the client: one POST per task. Every
outcome, including serialization and transport failures, is reported
through the task's completion hook and the log; nothing is raised back
to the submitter. The task's permit is released exactly once on every
path.
"""

import inspect
import json
import logging
import time
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

import httpx
from pydantic import BaseModel

from crptclient.exceptions import (
    DispatchError,
    DocumentSerializationError,
    RejectedDocumentError,
    TransportError,
)
from crptclient.logger import get_logger, mask_sensitive
from crptclient.ratelimit.gate import CapacityGate
from crptclient.schemas.documents import Document
from crptclient.schemas.outcomes import SubmissionOutcome
from crptclient.schemas.tasks import Payload, SubmissionTask

SUCCESS_STATUS = 200


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_payload(payload: Payload) -> str:
    """Serialize a document payload to a JSON request body.

    Args:
        payload: Document model, any pydantic model, or a mapping.

    Returns:
        JSON string using wire field names.

    Raises:
        DocumentSerializationError: If the payload cannot be serialized.
    """
    try:
        if isinstance(payload, Document):
            return payload.to_json()
        if isinstance(payload, BaseModel):
            return payload.model_dump_json(by_alias=True, exclude_none=True)
        if isinstance(payload, Mapping):
            return json.dumps(dict(payload), default=_json_default, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise DocumentSerializationError(
            f"Failed to serialize document payload: {e}", cause=e
        ) from e

    raise DocumentSerializationError(
        f"Unsupported payload type: {type(payload).__name__}"
    )


class Dispatcher:
    """Send admitted tasks to the registration endpoint.

    Attributes:
        http_client: Async HTTP client used for every request.
        gate: Permit pool shared with the replenisher.
        api_url: Registration endpoint.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        gate: CapacityGate,
        api_url: str,
        logger: logging.Logger | None = None,
        on_outcome: Callable[[SubmissionOutcome], None] | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            http_client: Async HTTP client; not closed by the dispatcher.
            gate: Gate to acquire permits from for tasks admitted without one.
            api_url: Registration endpoint.
            logger: Optional logger; defaults to the module logger.
            on_outcome: Optional observer called with every outcome before
                the task's own completion hook.
        """
        self.http_client = http_client
        self.gate = gate
        self.api_url = api_url
        self._on_outcome = on_outcome
        self._logger = logger or get_logger(__name__)

    async def run(self, task: SubmissionTask) -> SubmissionOutcome:
        """Execute one task end to end.

        Acquires a permit unless the task was pre-admitted with one, sends
        the request, reports the outcome and releases the permit.

        Args:
            task: Admitted task.

        Returns:
            Terminal outcome of the task.
        """
        start = time.perf_counter()

        try:
            if task.permit is None:
                task.permit = await self.gate.acquire()

            outcome = await self._send(task, start)
            await self.report(task, outcome)
            return outcome
        finally:
            if task.permit is not None:
                task.permit.release()

    async def _send(self, task: SubmissionTask, start: float) -> SubmissionOutcome:
        try:
            body = serialize_payload(task.payload)
        except DocumentSerializationError as e:
            self._logger.error(
                "Error preparing document request: task_id=%d, error=%s",
                task.task_id,
                e,
            )
            return self._failure(task, start, e)

        headers = {"Content-Type": "application/json", "Signature": task.signature}
        self._logger.debug(
            "Dispatching document: task_id=%d, url=%s, signature=%s",
            task.task_id,
            self.api_url,
            mask_sensitive(task.signature),
        )

        try:
            response = await self.http_client.post(
                self.api_url, content=body.encode("utf-8"), headers=headers
            )
        except httpx.HTTPError as e:
            self._logger.error(
                "Error creating document: task_id=%d, error_type=%s",
                task.task_id,
                e.__class__.__name__,
            )
            self._logger.debug("Transport error details: %s", e, exc_info=True)
            error = TransportError("Request failed", url=self.api_url, cause=e)
            return self._failure(task, start, error)
        except Exception as e:
            self._logger.error(
                "Unexpected error creating document: task_id=%d", task.task_id
            )
            self._logger.debug("Unexpected error details: %s", e, exc_info=True)
            error = TransportError("Unexpected transport failure", self.api_url, e)
            return self._failure(task, start, error)

        if response.status_code == SUCCESS_STATUS:
            self._logger.info(
                "Document created successfully: task_id=%d, body=%s",
                task.task_id,
                response.text,
            )
            return SubmissionOutcome(
                task_id=task.task_id,
                status="success",
                status_code=response.status_code,
                body=response.text,
                elapsed_ms=self._elapsed_ms(start),
            )

        self._logger.warning(
            "Failed to create document: task_id=%d, status=%d, body=%s",
            task.task_id,
            response.status_code,
            response.text,
        )
        return SubmissionOutcome(
            task_id=task.task_id,
            status="failure",
            status_code=response.status_code,
            body=response.text,
            error=RejectedDocumentError(response.status_code, response.text),
            elapsed_ms=self._elapsed_ms(start),
        )

    async def report(self, task: SubmissionTask, outcome: SubmissionOutcome) -> None:
        """Deliver an outcome to the observer and the task's completion hook.

        Hook failures are logged and never propagate.

        Args:
            task: Finished task.
            outcome: Its terminal outcome.
        """
        if self._on_outcome is not None:
            self._on_outcome(outcome)

        if task.on_complete is None:
            return

        try:
            result = task.on_complete(outcome)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._logger.error(
                "Completion hook failed: task_id=%d, error=%s", task.task_id, e
            )
            self._logger.debug("Completion hook error details", exc_info=True)

    def _failure(
        self, task: SubmissionTask, start: float, error: DispatchError
    ) -> SubmissionOutcome:
        return SubmissionOutcome(
            task_id=task.task_id,
            status="failure",
            error=error,
            elapsed_ms=self._elapsed_ms(start),
        )

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return (time.perf_counter() - start) * 1000
