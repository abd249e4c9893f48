from typing import TYPE_CHECKING, Any, BinaryIO, Callable, Optional, TypeVar

from .handlers import AsObject, AsString, Discard, IntoObject, StreamTransform
from .paging import ItemInitializer, NextPageFinder, PagedIterable, next_from_link_header
from .request import RequestBuilder
from .streams import copy_to_owned_buffer

if TYPE_CHECKING:
    from .client import Client


T = TypeVar("T")


class Requester(RequestBuilder):
    """A RequestBuilder bound to a Client, with one method per way of reading the response."""

    def __init__(self, client: "Client"):
        super().__init__(api_url=client.api_url)
        self.client = client

    def send(self) -> None:
        """Send the request, check the status and discard the body."""
        self.client.send_request(self, Discard())

    def fetch(self, schema: Any = None) -> Any:
        """Send the request and parse the body as ``schema``.

        Raises EmptyBodyError if the server answers without a body.
        """
        return self.client.send_request(self, AsObject(schema, self.client.parser)).body

    def fetch_into(self, existing: T) -> T:
        """Like fetch() but merges the response into ``existing`` and returns it."""
        return self.client.send_request(self, IntoObject(existing, self.client.parser)).body

    def fetch_string(self) -> str:
        return self.client.send_request(self, AsString()).body

    def fetch_http_status_code(self) -> int:
        """Return the status code without raising for 4xx/5xx responses."""
        return self.client.fetch_status_code(self)

    def fetch_stream(self, handler: Callable[[BinaryIO], T]) -> T:
        """Pass the raw body stream to ``handler``.

        The stream is closed when this returns; copy it with
        copy_input_stream() to keep the bytes.
        """
        return self.client.send_request(self, StreamTransform(handler)).body

    copy_input_stream = staticmethod(copy_to_owned_buffer)

    def to_iterable(
        self,
        item_type: Any = None,
        item_initializer: Optional[ItemInitializer] = None,
        items_key: Optional[str] = None,
        next_page: NextPageFinder = next_from_link_header,
    ) -> PagedIterable:
        """Build a PagedIterable over this request.

        Nothing is fetched until the first has_next() or next() call.
        """
        return PagedIterable(self.client, self.build(), item_type, item_initializer, items_key, next_page)
