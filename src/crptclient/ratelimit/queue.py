"""Unbounded FIFO of submitted-but-not-admitted tasks."""

import asyncio

from crptclient.schemas.tasks import SubmissionTask


class AdmissionQueue:
    """Admission queue backed by an unbounded asyncio.Queue.

    Tasks leave the queue strictly in insertion order. Enqueueing never
    blocks, so submission cannot fail because of rate limiting.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[SubmissionTask] = asyncio.Queue()

    def __len__(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()

    def enqueue(self, task: SubmissionTask) -> None:
        """Append a task at the tail.

        Args:
            task: Task to admit later.
        """
        self._queue.put_nowait(task)

    def try_dequeue(self) -> SubmissionTask | None:
        """Remove the oldest task.

        Returns:
            The oldest task, or None if the queue is empty.
        """
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def drain(self) -> list[SubmissionTask]:
        """Remove and return every queued task, oldest first."""
        tasks: list[SubmissionTask] = []
        while not self._queue.empty():
            tasks.append(self._queue.get_nowait())
        return tasks
