"""Dummy httpx client used to fake provider HTTP APIs."""

from __future__ import annotations

from typing import Any


class DummyHTTPResponse:
    def __init__(
        self,
        status_code: int,
        json_data: Any = None,
        text: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self._json_data = json_data
        self.text = text
        self.headers = headers or {}

    def json(self) -> Any:
        if self._json_data is None:
            raise ValueError("No JSON data")
        return self._json_data


class DummyAsyncClient:
    """Pops queued responses; a queued exception is raised instead."""

    def __init__(self, post_queue: list[Any], get_queue: list[Any], calls: list[tuple]) -> None:
        self._post_queue = post_queue
        self._get_queue = get_queue
        self._calls = calls

    async def __aenter__(self) -> "DummyAsyncClient":  # pragma: no cover - helper
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:  # pragma: no cover - helper
        return None

    async def post(self, url: str, headers: dict[str, str], json: Any = None) -> DummyHTTPResponse:
        self._calls.append(("POST", url, headers, json))
        if not self._post_queue:
            raise RuntimeError("No post responses queued")
        return self._pop(self._post_queue)

    async def get(self, url: str, headers: dict[str, str]) -> DummyHTTPResponse:
        self._calls.append(("GET", url, headers, None))
        if not self._get_queue:
            raise RuntimeError("No get responses queued")
        return self._pop(self._get_queue)

    @staticmethod
    def _pop(queue: list[Any]) -> DummyHTTPResponse:
        item = queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def configure_httpx(
    monkeypatch,
    post_responses: list[Any],
    get_responses: list[Any],
) -> list[tuple]:
    """Route every ``httpx.AsyncClient`` to the queued responses; returns the call log."""

    calls: list[tuple] = []

    def factory(*args, **kwargs):
        return DummyAsyncClient(post_responses, get_responses, calls)

    monkeypatch.setattr("httpx.AsyncClient", factory)
    return calls
