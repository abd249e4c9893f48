from typing import Any, Mapping, Optional, Union


SNIPPET_LIMIT = 200


def snippet(body: Union[bytes, str, None], limit: int = SNIPPET_LIMIT) -> str:
    if not body:
        return ""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    body = body.strip()
    if len(body) > limit:
        return body[:limit] + "..."
    return body


class RequesterError(Exception):
    """Base class for every error raised by requesterlib."""


class TransportError(RequesterError):
    """The request could not be sent or its response could not be read."""

    def __init__(self, url: str, cause: Optional[BaseException] = None, message: str = ""):
        self.url = url
        self.cause = cause
        super().__init__(message or f"transport failure for {url}: {cause}")


class StreamConsumedError(RequesterError):
    """A response body stream was requested a second time."""


class HttpStatusError(RequesterError):
    def __init__(
        self,
        status_code: int,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Union[bytes, str, None] = None,
    ):
        self.status_code = status_code
        self.url = url
        self.headers = dict(headers or {})
        self.body = snippet(body)
        message = f"HTTP {status_code} for {url}"
        if self.body:
            message += f": {self.body}"
        super().__init__(message)


class NotFoundError(HttpStatusError):
    pass


class EmptyBodyError(RequesterError):
    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"empty response body (HTTP {status_code}) for {url}")


class DeserializationError(RequesterError):
    def __init__(self, message: str, body: Union[bytes, str, None] = None, schema: Any = None):
        self.body = snippet(body)
        self.schema = schema
        if self.body:
            message = f"{message}: {self.body}"
        super().__init__(message)


class IterationExhaustedError(RequesterError, StopIteration):
    """Raised by a paged iterator that has no item left and no next page."""
