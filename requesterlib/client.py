from typing import Optional, TypeVar, Union

from .config import ClientConfig
from .errors import HttpStatusError, NotFoundError, RequesterError
from .handlers import BodyHandler, Discard
from .net import HttpTransport
from .parsing import JsonResponseParser
from .request import Request, RequestBuilder
from .requester import Requester
from .response import DispatchResult, ResponseInfo
from .types import ResponseParserProtocol, TransportProtocol


T = TypeVar("T")


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def status_error(response: ResponseInfo) -> HttpStatusError:
    try:
        body = response.body_bytes()
    except RequesterError:
        body = b""
    error_cls = NotFoundError if response.status_code == 404 else HttpStatusError
    return error_cls(response.status_code, response.url, response.headers, body)


class Client:
    """Sends requests through a transport and runs one body handler per response."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[TransportProtocol] = None,
        parser: Optional[ResponseParserProtocol] = None,
    ):
        self.config = config or ClientConfig()
        self.transport = transport or HttpTransport(self.config)
        self.parser = parser or JsonResponseParser()

    @property
    def api_url(self) -> str:
        return self.config.api_url

    def create_request(self) -> Requester:
        return Requester(self)

    def send_request(
        self, request: Union[Request, RequestBuilder], handler: Optional[BodyHandler[T]]
    ) -> DispatchResult[T]:
        """Send ``request`` and run ``handler`` on the response exactly once.

        The response is closed before this returns or raises. Non-2xx statuses
        raise HttpStatusError without running the handler; with no handler the
        status is returned whatever it is.
        """
        if isinstance(request, RequestBuilder):
            request = request.build()
        response = self.transport.send(request)
        with response:
            if handler is None:
                Discard()(response)
                return DispatchResult(response.status_code, response.headers, response.url)
            if not is_success(response.status_code):
                raise status_error(response)
            body = handler(response)
            return DispatchResult(response.status_code, response.headers, response.url, body)

    def fetch_status_code(self, request: Union[Request, RequestBuilder]) -> int:
        return self.send_request(request, None).status_code

    def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
