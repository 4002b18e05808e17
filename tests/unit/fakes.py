"""Fake implementations for testing the exporter."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx

Handler = Callable[[httpx.Request], httpx.Response]


class FakeHttp:
    """In-memory fake for the provider HTTP APIs.

    Routes requests by scheme, host and path to registered handlers and
    records all requests for assertions. Unrouted requests get a 404.
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Handler] = {}
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def add_handler(self, url: str, handler: Handler) -> None:
        """Register a handler for a URL (query string ignored)."""
        self.handlers[url] = handler

    def add_json(self, url: str, data: Any, *, status: int = 200) -> None:
        """Register a fixed JSON response."""
        self.handlers[url] = lambda request: httpx.Response(status, json=data)

    def add_text(self, url: str, text: str) -> None:
        """Register a fixed text response."""
        self.handlers[url] = lambda request: httpx.Response(200, text=text)

    def add_pages(self, url: str, pages: dict[str | None, Any], *, param: str) -> None:
        """Register JSON responses selected by the value of one query parameter."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=pages[request.url.params.get(param)])

        self.handlers[url] = handler

    def calls(self, url: str) -> list[httpx.Request]:
        """Return the recorded requests for a URL."""
        return [r for r in self.requests if _route_key(r) == url]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.handlers.get(_route_key(request))
        if handler is None:
            return httpx.Response(404, json={"message": f"FakeHttp: no route for {request.url}"})
        return handler(request)


def _route_key(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


class FakeWriter:
    """In-memory fake for FileWriter.

    Stores files in a dict keyed by path string.
    """

    def __init__(self) -> None:
        self.files: dict[str, str] = {}

    def make_data_file(
        self,
        path: str | Path,
        *,
        contents: str | None = None,
        data: Any = None,
    ) -> None:
        """Store file contents in memory."""
        if contents is not None:
            self.files[str(path)] = contents
        else:
            self.files[str(path)] = json.dumps(data, sort_keys=True, indent=4) + "\n"

    def read_json(self, path: str | Path) -> Any:
        """Return stored JSON data."""
        return json.loads(self.files[str(path)])
