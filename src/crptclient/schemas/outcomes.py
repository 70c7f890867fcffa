"""Submission outcome and client statistics models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

OutcomeStatus = Literal["success", "failure"]


class SubmissionOutcome(BaseModel):
    """Terminal result of a single document submission.

    Exactly one outcome is produced per submitted task. Failures carry
    either the response (non-200 status) or the exception that ended
    the task.

    Attributes:
        task_id: Submission sequence number of the task.
        status: Success or failure.
        status_code: HTTP status code, when a response was received.
        body: Response body, when a response was received.
        error: Exception describing the failure, if any.
        elapsed_ms: Time spent in the dispatcher, permit wait included.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    task_id: int = Field(..., ge=0, description="Submission sequence number")
    status: OutcomeStatus = Field(..., description="Terminal status")
    status_code: int | None = Field(None, description="HTTP status code")
    body: str | None = Field(None, description="Raw response body")
    error: Exception | None = Field(None, description="Failure cause")
    elapsed_ms: float = Field(0.0, ge=0.0, description="Dispatch duration in ms")

    @property
    def ok(self) -> bool:
        """Whether the document was accepted."""
        return self.status == "success"


class ClientStats(BaseModel):
    """Point-in-time snapshot of client counters.

    Attributes:
        submitted: Tasks accepted by submit.
        dispatched: Tasks admitted from the queue to the dispatcher.
        succeeded: Tasks finished with a success outcome.
        failed: Tasks finished with a failure outcome.
        queued: Tasks waiting in the admission queue.
        in_flight: Permits currently held by running requests.
        available_permits: Permits free in the capacity gate.
        ticks: Replenisher ticks since start.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    submitted: int = Field(0, ge=0)
    dispatched: int = Field(0, ge=0)
    succeeded: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    queued: int = Field(0, ge=0)
    in_flight: int = Field(0, ge=0)
    available_permits: int = Field(0, ge=0)
    ticks: int = Field(0, ge=0)
