from typing import Any, Optional, Protocol

from .request import Request
from .response import ResponseInfo


class TransportProtocol(Protocol):
    def send(self, request: Request) -> ResponseInfo: ...


class ResponseParserProtocol(Protocol):
    def parse(self, data: bytes, schema: Any = None) -> Any: ...

    def parse_value(self, value: Any, schema: Any = None, data: Optional[bytes] = None) -> Any: ...

    def parse_into(self, data: bytes, existing: Any) -> Any: ...
