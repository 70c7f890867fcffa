"""Rate-limited client for the document registration API.

Typical use::

    async with CrptApi("seconds", request_limit=3) as api:
        for document in documents:
            api.submit(document, signature)

``submit`` only enqueues and returns. The replenisher admits at most
``request_limit`` queued documents per window and each admitted document
is sent on its own asyncio task. Outcomes are logged and delivered to the
optional ``on_complete`` hook.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from types import TracebackType
from typing import Any

import httpx

from crptclient.config.settings import ClientConfig, TimeUnit, Window
from crptclient.exceptions import ClientClosedError, CrptClientError
from crptclient.logger import get_logger
from crptclient.ratelimit.gate import CapacityGate
from crptclient.ratelimit.queue import AdmissionQueue
from crptclient.ratelimit.replenisher import Replenisher
from crptclient.schemas.outcomes import ClientStats, SubmissionOutcome
from crptclient.schemas.tasks import CompletionHook, Payload, SubmissionTask
from crptclient.transport.dispatcher import Dispatcher


class CrptApi:
    """Public entry point for submitting documents.

    All state lives on one event loop: the loop the client is started
    on. Coroutines on that loop call ``submit``; other threads call
    ``submit_threadsafe``.

    Attributes:
        config: Validated client configuration.
        gate: Permit pool sized to the request limit.
        queue: Admission queue of pending submissions.
        replenisher: Timer admitting queued submissions each window.
        dispatcher: Sender of admitted submissions.
    """

    def __init__(
        self,
        time_unit: TimeUnit | Window,
        request_limit: int,
        *,
        http_client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
        autostart: bool = True,
        **options: Any,
    ) -> None:
        """Initialize the client.

        Args:
            time_unit: Window unit (one unit per window) or a full Window.
            request_limit: Maximum requests started per window.
            http_client: Optional HTTP client; the client closes only the
                one it creates itself.
            logger: Optional logger shared by every component.
            autostart: Start the replenisher on the first submit when an
                event loop is running.
            **options: Remaining ClientConfig fields (api_url, timeout).

        Raises:
            ConfigError: If the configuration is invalid.
        """
        config = ClientConfig.build(time_unit, request_limit, **options)
        self._setup(config, http_client, logger, autostart)

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
        autostart: bool = True,
    ) -> CrptApi:
        """Create a client from an existing configuration.

        Args:
            config: Validated configuration.
            http_client: Optional HTTP client.
            logger: Optional logger shared by every component.
            autostart: Start the replenisher on the first submit.

        Returns:
            Configured client.
        """
        api = cls.__new__(cls)
        api._setup(config, http_client, logger, autostart)
        return api

    def _setup(
        self,
        config: ClientConfig,
        http_client: httpx.AsyncClient | None,
        logger: logging.Logger | None,
        autostart: bool,
    ) -> None:
        self.config = config
        self.autostart = autostart
        self._logger = logger or get_logger(__name__)

        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=config.timeout)

        limit = config.rate_limit.request_limit
        self.gate = CapacityGate(limit, logger=self._logger)
        self.queue = AdmissionQueue()
        self.dispatcher = Dispatcher(
            self.http_client,
            self.gate,
            config.api_url,
            logger=self._logger,
            on_outcome=self._record_outcome,
        )
        self.replenisher = Replenisher(
            self.queue,
            self.gate,
            self._hand_off,
            interval=config.rate_limit.window.seconds,
            quota=limit,
            logger=self._logger,
        )

        self._sequence = itertools.count()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._dispatch_tasks: set[asyncio.Task[Any]] = set()
        self._idle = asyncio.Event()
        self._idle.set()
        self._pending = 0
        self._closed = False

        self._submitted = 0
        self._dispatched = 0
        self._succeeded = 0
        self._failed = 0

        self._logger.info(
            "Client configured: request_limit=%d, window=%s %s, url=%s",
            limit,
            config.rate_limit.window.magnitude,
            config.rate_limit.window.unit,
            config.api_url,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Bind the client to the running loop and start the replenisher.

        Raises:
            ClientClosedError: If the client was closed.
            RuntimeError: If no event loop is running.
        """
        if self._closed:
            raise ClientClosedError("Client is closed")

        loop = asyncio.get_running_loop()
        if self._loop is not None and self._loop is not loop:
            raise CrptClientError("Client is bound to another event loop")

        self._loop = loop
        self.replenisher.start()

    async def __aenter__(self) -> CrptApi:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose(drain=exc_type is None)

    def submit(
        self,
        document: Payload,
        signature: str,
        on_complete: CompletionHook | None = None,
    ) -> None:
        """Queue a document for submission and return immediately.

        Never raises because of rate limiting; excess documents wait in
        the queue for a later window.

        Args:
            document: Document model or JSON-serializable mapping.
            signature: Value of the Signature request header.
            on_complete: Optional hook called with the terminal outcome.

        Raises:
            ClientClosedError: If the client was closed.
        """
        if self._closed:
            raise ClientClosedError("Client is closed")

        if self.autostart and not self.replenisher.running:
            self._autostart()

        task = SubmissionTask(next(self._sequence), document, signature, on_complete)
        self.queue.enqueue(task)

        self._submitted += 1
        self._pending += 1
        self._idle.clear()

        self._logger.debug(
            "Document queued: task_id=%d, queued=%d", task.task_id, len(self.queue)
        )

    def submit_threadsafe(
        self,
        document: Payload,
        signature: str,
        on_complete: CompletionHook | None = None,
    ) -> None:
        """Queue a document from any thread.

        Calls from one thread are queued in call order. A document that
        reaches the loop after the client closed completes with a failure
        outcome carrying ClientClosedError.

        Args:
            document: Document model or JSON-serializable mapping.
            signature: Value of the Signature request header.
            on_complete: Optional hook called with the terminal outcome.

        Raises:
            ClientClosedError: If the client or its event loop was closed.
            CrptClientError: If the client was never started.
        """
        if self._closed:
            raise ClientClosedError("Client is closed")
        if self._loop is None:
            raise CrptClientError("Client is not started")

        if self._on_loop_thread():
            self.submit(document, signature, on_complete)
            return

        try:
            self._loop.call_soon_threadsafe(
                self._submit_from_thread, document, signature, on_complete
            )
        except RuntimeError as e:
            raise ClientClosedError("Client event loop is closed", cause=e) from e

    def _submit_from_thread(
        self,
        document: Payload,
        signature: str,
        on_complete: CompletionHook | None,
    ) -> None:
        try:
            self.submit(document, signature, on_complete)
        except ClientClosedError:
            # Closed between the caller's check and this callback
            task = SubmissionTask(
                next(self._sequence), document, signature, on_complete
            )
            self._submitted += 1
            self._logger.warning(
                "Client closed before queueing: task_id=%d", task.task_id
            )
            outcome = SubmissionOutcome(
                task_id=task.task_id,
                status="failure",
                error=ClientClosedError("Client closed before dispatch"),
            )
            report = asyncio.get_running_loop().create_task(
                self.dispatcher.report(task, outcome),
                name=f"crpt-closed-{task.task_id}",
            )
            self._dispatch_tasks.add(report)
            report.add_done_callback(self._dispatch_tasks.discard)

    async def join(self) -> None:
        """Wait until every submitted document reached a terminal outcome.

        With autostart disabled and the replenisher not running, ticks
        must be driven manually for this to return.
        """
        await self._idle.wait()

    async def aclose(self, drain: bool = False) -> None:
        """Stop the client.

        Args:
            drain: Wait for every queued document to be dispatched first.
                Otherwise queued documents complete with a failure outcome
                carrying ClientClosedError.
        """
        if self._closed:
            return

        if drain and self._pending:
            if not self.replenisher.running:
                self.start()
            await self.join()

        self._closed = True
        await self.replenisher.stop()

        abandoned = self.queue.drain()
        if abandoned:
            self._logger.warning(
                "Client closed with queued documents: count=%d", len(abandoned)
            )
        for task in abandoned:
            outcome = SubmissionOutcome(
                task_id=task.task_id,
                status="failure",
                error=ClientClosedError("Client closed before dispatch"),
            )
            await self.dispatcher.report(task, outcome)
            self._task_finished()

        if self._dispatch_tasks:
            self._logger.debug(
                "Waiting for in-flight requests: count=%d", len(self._dispatch_tasks)
            )
            await asyncio.gather(*self._dispatch_tasks, return_exceptions=True)

        if self._owns_http_client:
            await self.http_client.aclose()

        self._logger.info(
            "Client closed: submitted=%d, succeeded=%d, failed=%d",
            self._submitted,
            self._succeeded,
            self._failed,
        )

    def stats(self) -> ClientStats:
        """Snapshot of the client counters."""
        return ClientStats(
            submitted=self._submitted,
            dispatched=self._dispatched,
            succeeded=self._succeeded,
            failed=self._failed,
            queued=len(self.queue),
            in_flight=self.gate.in_flight,
            available_permits=self.gate.available,
            ticks=self.replenisher.ticks,
        )

    def _autostart(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.start()

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _hand_off(self, task: SubmissionTask) -> None:
        dispatch = asyncio.create_task(
            self.dispatcher.run(task), name=f"crpt-dispatch-{task.task_id}"
        )
        self._dispatched += 1
        self._dispatch_tasks.add(dispatch)
        dispatch.add_done_callback(lambda done: self._dispatch_done(done, task))

    def _dispatch_done(
        self, dispatch: asyncio.Task[SubmissionOutcome], task: SubmissionTask
    ) -> None:
        self._dispatch_tasks.discard(dispatch)

        if dispatch.cancelled():
            self._logger.warning("Dispatch cancelled: task_id=%d", task.task_id)
            # A cancelled dispatch may never have reached its finally block
            if task.permit is not None:
                task.permit.release()
        elif dispatch.exception() is not None:
            self._logger.error(
                "Dispatch crashed: task=%s",
                dispatch.get_name(),
                exc_info=dispatch.exception(),
            )

        self._task_finished()

    def _task_finished(self) -> None:
        self._pending -= 1
        if self._pending == 0:
            self._idle.set()

    def _record_outcome(self, outcome: SubmissionOutcome) -> None:
        if outcome.ok:
            self._succeeded += 1
        else:
            self._failed += 1

