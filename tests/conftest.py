"""Shared fixtures: fake clock, test settings and a scripted fake try-on API.

HTTP goes through httpx.MockTransport so the real JobClient code runs without
any network. Time goes through FakeClock so polling never really sleeps.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from tryon.config import Settings

ENDPOINT = "https://tryon.test/process"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def monotonic(self) -> float:
        return self.now


class FakeTryOnAPI:
    """Scripted remote. Each entry is a dict (JSON 200), an httpx.Response or an exception."""

    def __init__(
        self,
        submit: Any = None,
        statuses: Optional[List[Any]] = None,
        sync: Any = None,
    ) -> None:
        self.submit = submit if submit is not None else {"jobId": "job-1", "status": "processing", "message": "queued"}
        self.statuses = list(statuses or [])
        self.sync = sync
        self.requests: List[httpx.Request] = []

    @property
    def posts(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]

    @property
    def status_checks(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]

    def _reply(self, request: httpx.Request, entry: Any) -> httpx.Response:
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, httpx.Response):
            return entry
        if entry is None:
            return httpx.Response(500, json={"error": "not scripted"})
        return httpx.Response(200, json=entry)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            body = json.loads(request.content)
            return self._reply(request, self.submit if body["async"] else self.sync)
        if not self.statuses:
            return httpx.Response(500, json={"error": "no more statuses"})
        return self._reply(request, self.statuses.pop(0))


@pytest.fixture
def settings() -> Settings:
    s = Settings()
    s.TRYON_API_ENDPOINT = ENDPOINT
    s.SAVE_TO_S3 = True
    s.SUBMIT_TIMEOUT_S = 30
    s.STATUS_TIMEOUT_S = 5
    s.SYNC_TIMEOUT_S = 60
    s.CONNECT_TIMEOUT_S = 5
    s.POLL_INTERVAL_S = 5
    s.POLL_MAX_ATTEMPTS = 60
    s.STATUS_CHECK_RETRIES = 0
    return s


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_api_factory() -> Callable[..., FakeTryOnAPI]:
    return FakeTryOnAPI


@pytest.fixture
def http_client_for() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def jpeg_bytes() -> bytes:
    # JPEG SOI marker plus arbitrary binary body, including bytes that are not valid UTF-8
    return b"\xff\xd8\xff\xe0" + bytes(range(256)) * 4 + b"\xff\xd9"


@pytest.fixture
def png_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\n" + b"\x00\x01\x02\xfe\xff" * 100
