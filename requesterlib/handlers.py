"""Body handlers: strategies that turn a ResponseInfo into a typed value.

A handler runs exactly once per dispatch, inside the block that closes the
response, so the stream it reads is gone as soon as it returns.  Each variant
states whether an empty body is acceptable through ``allow_empty``.
"""
import io
from typing import Any, BinaryIO, Callable, Generic, Optional, TypeVar

from .errors import EmptyBodyError
from .response import ResponseInfo, charset_of
from .types import ResponseParserProtocol


T = TypeVar("T")


class BodyHandler(Generic[T]):
    allow_empty: bool = True

    def __call__(self, response: ResponseInfo) -> Optional[T]:
        raise NotImplementedError

    def read_body(self, response: ResponseInfo) -> bytes:
        data = response.body_bytes()
        if not data and not self.allow_empty:
            raise EmptyBodyError(response.status_code, response.url)
        return data


class Discard(BodyHandler[None]):
    allow_empty = True

    def __call__(self, response: ResponseInfo) -> None:
        stream = response.body_stream()
        while stream.read(8192):
            pass
        return None


class AsString(BodyHandler[str]):
    def __init__(self, allow_empty: bool = True):
        self.allow_empty = allow_empty

    def __call__(self, response: ResponseInfo) -> str:
        data = self.read_body(response)
        return data.decode(charset_of(response.header("Content-Type")), errors="replace")


class AsObject(BodyHandler[T]):
    def __init__(self, schema: Any, parser: ResponseParserProtocol, allow_empty: bool = False):
        self.schema = schema
        self.parser = parser
        self.allow_empty = allow_empty

    def __call__(self, response: ResponseInfo) -> Optional[T]:
        data = self.read_body(response)
        if not data:
            return None
        return self.parser.parse(data, self.schema)


class IntoObject(BodyHandler[T]):
    """Merge the response into an object the caller already holds.

    Fields missing from the payload keep their current values.
    """

    def __init__(self, existing: T, parser: ResponseParserProtocol, allow_empty: bool = False):
        self.existing = existing
        self.parser = parser
        self.allow_empty = allow_empty

    def __call__(self, response: ResponseInfo) -> T:
        data = self.read_body(response)
        if not data:
            return self.existing
        return self.parser.parse_into(data, self.existing)


class _PeekedStream(io.RawIOBase):
    def __init__(self, first: bytes, stream: BinaryIO):
        super().__init__()
        self._first = first
        self._stream = stream

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._first:
            n = min(len(buffer), len(self._first))
            buffer[:n] = self._first[:n]
            self._first = self._first[n:]
            return n
        data = self._stream.read(len(buffer))
        n = len(data)
        buffer[:n] = data
        return n

    def close(self) -> None:
        try:
            self._stream.close()
        finally:
            super().close()


class StreamTransform(BodyHandler[T]):
    """Hand the raw stream to ``fn``.

    ``fn`` must finish with the stream before returning; copy it with
    copy_to_owned_buffer if the bytes are needed afterwards.
    """

    def __init__(self, fn: Callable[[BinaryIO], T], allow_empty: bool = True):
        self.fn = fn
        self.allow_empty = allow_empty

    def __call__(self, response: ResponseInfo) -> T:
        stream = response.body_stream()
        if not self.allow_empty:
            first = stream.read(1)
            if not first:
                raise EmptyBodyError(response.status_code, response.url)
            stream = _PeekedStream(first, stream)
        return self.fn(stream)
