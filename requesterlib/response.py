import codecs
from dataclasses import dataclass
from email.message import Message
from typing import BinaryIO, Callable, Generic, Mapping, Optional, TypeVar

from urllib3 import HTTPHeaderDict

from .errors import StreamConsumedError
from .request import Request


T = TypeVar("T")


def charset_of(content_type: Optional[str], default: str = "utf-8") -> str:
    if not content_type:
        return default
    msg = Message()
    msg["Content-Type"] = content_type
    charset = msg.get_param("charset")
    if not charset or not isinstance(charset, str):
        return default
    try:
        codecs.lookup(charset)
    except LookupError:
        return default
    return charset


class ResponseInfo:
    """Status, headers and a single-use body stream for one response.

    The stream belongs to whoever calls body_stream(); close() releases it and
    may be called any number of times.
    """

    def __init__(
        self,
        request: Request,
        status_code: int,
        headers: Mapping[str, str],
        stream: BinaryIO,
        url: Optional[str] = None,
        release: Optional[Callable[[], None]] = None,
    ):
        self.request = request
        self.status_code = status_code
        self.headers = HTTPHeaderDict(headers)
        self.url = url or request.url
        self._stream = stream
        self._release = release
        self._consumed = False
        self._closed = False

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name)

    @property
    def closed(self) -> bool:
        return self._closed

    def body_stream(self) -> BinaryIO:
        if self._consumed:
            raise StreamConsumedError(f"body of {self.url} was already consumed")
        if self._closed:
            raise StreamConsumedError(f"response for {self.url} is closed")
        self._consumed = True
        return self._stream

    def body_bytes(self) -> bytes:
        return self.body_stream().read() or b""

    def body_as_string(self) -> str:
        return self.body_bytes().decode(charset_of(self.header("Content-Type")), errors="replace")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.close()
        finally:
            if self._release is not None:
                self._release()

    def __enter__(self) -> "ResponseInfo":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass(frozen=True)
class DispatchResult(Generic[T]):
    status_code: int
    headers: HTTPHeaderDict
    url: str
    body: Optional[T] = None
