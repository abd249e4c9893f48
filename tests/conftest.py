import io
import json
from typing import Callable, Dict, List, Optional, Union

import pytest

from requesterlib.client import Client
from requesterlib.config import ClientConfig
from requesterlib.request import Request
from requesterlib.response import ResponseInfo
from requesterlib.types import TransportProtocol


class TrackedStream(io.BytesIO):
    def __init__(self, data: bytes):
        super().__init__(data)
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        super().close()


class StubTransport(TransportProtocol):
    """Serves canned responses by URL and records every request and stream."""

    def __init__(self, routes: Optional[Dict[str, Union[tuple, Callable[[Request], tuple]]]] = None):
        self.routes = routes or {}
        self.requests: List[Request] = []
        self.responses: List[ResponseInfo] = []
        self.streams: List[TrackedStream] = []
        self.releases = 0

    def add(self, url: str, status: int = 200, body: Union[bytes, str, list, dict, None] = b"", headers=None):
        self.routes[url] = (status, body, headers or {})

    def calls_to(self, url: str) -> int:
        return sum(1 for r in self.requests if r.url == url)

    def _release(self) -> None:
        self.releases += 1

    def send(self, request: Request) -> ResponseInfo:
        self.requests.append(request)
        route = self.routes.get(request.url)
        if route is None:
            status, body, headers = 404, b'{"message": "Not Found"}', {}
        elif callable(route):
            status, body, headers = route(request)
        else:
            status, body, headers = route
        if isinstance(body, (list, dict)):
            body = json.dumps(body).encode()
            headers = {"Content-Type": "application/json", **headers}
        elif isinstance(body, str):
            body = body.encode()
        stream = TrackedStream(body or b"")
        self.streams.append(stream)
        response = ResponseInfo(request, status, headers, stream, release=self._release)
        self.responses.append(response)
        return response


@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def client(transport):
    return Client(ClientConfig(api_url="https://api.test"), transport=transport)
