"""Pytest configuration and standardized factories for crptclient."""

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from datetime import date
from typing import Any

import httpx
import pytest
import pytest_asyncio

from crptclient.client import CrptApi
from crptclient.config.settings import Window
from crptclient.schemas.documents import Description, Document, Product
from crptclient.schemas.outcomes import SubmissionOutcome
from crptclient.schemas.tasks import SubmissionTask

TEST_API_URL = "https://registry.test/api/v3/lk/documents/create"


class FakeRegistry:
    """A scripted registration endpoint for httpx.MockTransport.

    Records every request in 'requests', removing the need for mocks.
    Responses can be delayed or held until 'release_all' is called to
    simulate slow or hanging calls.
    """

    def __init__(
        self,
        status_code: int = 200,
        body: str = '{"value": "ok"}',
        side_effect: Exception | None = None,
        delay: float = 0.0,
        hold: bool = False,
    ):
        self.status_code = status_code
        self.body = body
        self.side_effect = side_effect
        self.delay = delay
        self.hold = hold
        self.requests: list[httpx.Request] = []
        self.active = 0
        self.max_active = 0
        self._gate = asyncio.Event()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.hold:
                await self._gate.wait()
            if self.delay > 0:
                await asyncio.sleep(self.delay)
            if self.side_effect is not None:
                raise self.side_effect
            return httpx.Response(self.status_code, text=self.body, request=request)
        finally:
            self.active -= 1

    def release_all(self) -> None:
        self._gate.set()

    @property
    def doc_ids(self) -> list[str]:
        return [json.loads(r.content)["doc_id"] for r in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def document_factory() -> Callable[..., Document]:
    """Factory to create Document instances with default valid data.

    Returns:
        A callable that generates Documents.
    """

    def _make_document(doc_id: str = "doc-0001", **kwargs: Any) -> Document:
        defaults: dict[str, Any] = {
            "description": Description(participant_inn="1234567890"),
            "doc_id": doc_id,
            "import_request": True,
            "owner_inn": "1234567890",
            "participant_inn": "1234567890",
            "producer_inn": "1234567890",
            "production_date": date(2024, 2, 12),
            "products": [
                Product(
                    certificate_document="conformity",
                    certificate_document_date=date(2024, 2, 12),
                    certificate_document_number="num-1",
                    owner_inn="1234567890",
                    producer_inn="1234567890",
                    production_date=date(2024, 2, 12),
                    tnved_code="6401",
                    uit_code="uit-1",
                )
            ],
            "reg_date": date(2024, 2, 12),
            "reg_number": "reg123",
        }
        return Document(**{**defaults, **kwargs})

    return _make_document


@pytest.fixture
def task_factory(
    document_factory: Callable[..., Document],
) -> Callable[..., SubmissionTask]:
    """Factory to create SubmissionTask instances."""

    def _make_task(
        task_id: int = 0,
        signature: str = "signature-value",
        on_complete: Callable[[SubmissionOutcome], Any] | None = None,
        payload: Any = None,
    ) -> SubmissionTask:
        if payload is None:
            payload = document_factory(doc_id=f"doc-{task_id}")
        return SubmissionTask(task_id, payload, signature, on_complete)

    return _make_task


@pytest_asyncio.fixture
async def api_factory() -> AsyncIterator[Callable[..., CrptApi]]:
    """Factory to create clients wired to a FakeRegistry.

    Clients are created with autostart disabled so tests drive ticks
    through 'api.replenisher.tick()'. Every client is closed on teardown.
    """
    created: list[tuple[CrptApi, httpx.AsyncClient]] = []

    def _make_api(
        registry: FakeRegistry,
        request_limit: int = 3,
        window: Window | None = None,
        autostart: bool = False,
    ) -> CrptApi:
        http_client = registry.client()
        api = CrptApi(
            window or Window(unit="seconds"),
            request_limit,
            http_client=http_client,
            autostart=autostart,
            api_url=TEST_API_URL,
        )
        created.append((api, http_client))
        return api

    yield _make_api

    for api, http_client in created:
        await api.aclose()
        await http_client.aclose()


async def wait_until(
    predicate: Callable[[], bool], timeout: float = 2.0, step: float = 0.005
) -> None:
    """Poll 'predicate' on the running loop until it holds.

    Raises:
        AssertionError: If the predicate still fails after 'timeout' seconds.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not reached before timeout")
        await asyncio.sleep(step)
