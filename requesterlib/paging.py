"""Lazy iteration over multi-page listings.

A PagedIterable does no I/O of its own. Every iterator it hands out starts
again from the first page and fetches the next page only once the current
one has been read to the end and the caller asks for more.
"""
import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterator, List, Optional, Set, TypeVar

from .errors import DeserializationError, IterationExhaustedError
from .handlers import BodyHandler
from .parsing import LinkHeader
from .request import Request
from .response import ResponseInfo
from .types import ResponseParserProtocol

if TYPE_CHECKING:
    from .client import Client


R = TypeVar("R")

NextPageFinder = Callable[[ResponseInfo, Request, Any], Optional[Request]]
ItemInitializer = Callable[[Any], None]


def next_from_link_header(response: ResponseInfo, request: Request, payload: Any) -> Optional[Request]:
    url = LinkHeader.next_url(response.header("Link"), response.url)
    return request.with_url(url) if url else None


def next_from_body_field(key: str) -> NextPageFinder:
    """Follow a URL stored under ``key`` in the page body, e.g. ``"next"``."""

    def finder(response: ResponseInfo, request: Request, payload: Any) -> Optional[Request]:
        if not isinstance(payload, dict):
            return None
        url = payload.get(key)
        return request.with_url(url) if url else None

    return finder


class PageState(enum.Enum):
    NOT_STARTED = "not_started"
    HAS_PAGE = "has_page"
    EXHAUSTED = "exhausted"


@dataclass
class Page(Generic[R]):
    items: List[R] = field(default_factory=list)
    next_request: Optional[Request] = None


class PageContentsHandler(BodyHandler[Page[R]]):
    allow_empty = False

    def __init__(
        self,
        request: Request,
        item_type: Any,
        parser: ResponseParserProtocol,
        items_key: Optional[str] = None,
        next_page: NextPageFinder = next_from_link_header,
    ):
        self.request = request
        self.item_type = item_type
        self.parser = parser
        self.items_key = items_key
        self.next_page = next_page

    def __call__(self, response: ResponseInfo) -> Page[R]:
        data = self.read_body(response)
        payload = self.parser.parse(data, None)
        raw_items = payload
        if self.items_key is not None:
            if not isinstance(payload, dict) or self.items_key not in payload:
                raise DeserializationError(f"page has no {self.items_key!r} field", data)
            raw_items = payload[self.items_key]
        if not isinstance(raw_items, list):
            raise DeserializationError("page content is not a JSON array", data)
        items = [self.parser.parse_value(item, self.item_type, data) for item in raw_items]
        return Page(items=items, next_request=self.next_page(response, self.request, payload))


class PagedIterator(Generic[R]):
    """Single-pass cursor over the pages of one listing.

    Not safe for concurrent use; create one iterator per consumer.
    """

    def __init__(
        self,
        client: "Client",
        request: Request,
        item_type: Any,
        item_initializer: Optional[ItemInitializer] = None,
        items_key: Optional[str] = None,
        next_page: NextPageFinder = next_from_link_header,
    ):
        self._client = client
        self._next_request: Optional[Request] = request
        self._item_type = item_type
        self._item_initializer = item_initializer
        self._items_key = items_key
        self._next_page = next_page
        self._items: List[R] = []
        self._cursor = 0
        self._visited: Set[str] = set()
        self.state = PageState.NOT_STARTED

    def _fetch(self) -> None:
        request = self._next_request
        self._visited.add(request.url)
        handler: PageContentsHandler[R] = PageContentsHandler(
            request, self._item_type, self._client.parser, self._items_key, self._next_page
        )
        page = self._client.send_request(request, handler).body
        if self._item_initializer is not None:
            for item in page.items:
                self._item_initializer(item)
        self._items = page.items
        self._cursor = 0
        next_request = page.next_request
        # a next link pointing back at a page already read ends the listing
        if next_request is not None and next_request.url in self._visited:
            next_request = None
        self._next_request = next_request
        self.state = PageState.HAS_PAGE

    def has_next(self) -> bool:
        while self._cursor >= len(self._items):
            if self._next_request is None:
                self.state = PageState.EXHAUSTED
                return False
            self._fetch()
        return True

    def __iter__(self) -> "PagedIterator[R]":
        return self

    def __next__(self) -> R:
        if not self.has_next():
            raise IterationExhaustedError("no more elements")
        item = self._items[self._cursor]
        self._cursor += 1
        return item

    next = __next__

    def next_page(self) -> List[R]:
        """Return the unread rest of the current page, fetching one if needed."""
        if not self.has_next():
            raise IterationExhaustedError("no more pages")
        rest = self._items[self._cursor:]
        self._cursor = len(self._items)
        return rest


class PagedIterable(Generic[R]):
    def __init__(
        self,
        client: "Client",
        request: Request,
        item_type: Any,
        item_initializer: Optional[ItemInitializer] = None,
        items_key: Optional[str] = None,
        next_page: NextPageFinder = next_from_link_header,
    ):
        self.client = client
        self.request = request
        self.item_type = item_type
        self.item_initializer = item_initializer
        self.items_key = items_key
        self.next_page = next_page
        self.page_size = 0

    def with_page_size(self, page_size: int) -> "PagedIterable[R]":
        self.page_size = max(0, page_size)
        return self

    def iterator(self, page_size: Optional[int] = None) -> PagedIterator[R]:
        size = self.page_size if page_size is None else page_size
        request = self.request
        if size > 0:
            request = request.with_query_param(self.client.config.page_size_param, size)
        return PagedIterator(
            self.client, request, self.item_type, self.item_initializer, self.items_key, self.next_page
        )

    def __iter__(self) -> Iterator[R]:
        return self.iterator()

    def to_list(self) -> List[R]:
        return list(self.iterator())
