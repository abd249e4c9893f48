import json as jsonlib
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from urllib3 import HTTPHeaderDict

from .config import DEFAULT_API_URL


QUERY_METHODS = ("GET", "HEAD", "DELETE")


@dataclass(frozen=True)
class Request:
    """Immutable description of one outbound request."""

    method: str
    url: str
    header_items: Tuple[Tuple[str, str], ...] = ()
    body: Optional[bytes] = None
    json: Any = None

    def __post_init__(self) -> None:
        if self.body is not None and self.json is not None:
            raise ValueError("a request carries either a raw body or a JSON body, not both")

    @property
    def headers(self) -> HTTPHeaderDict:
        headers = HTTPHeaderDict()
        for name, value in self.header_items:
            headers.add(name, value)
        return headers

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.header_items:
            if key.lower() == lowered:
                return value
        return None

    def encoded_body(self) -> Optional[bytes]:
        if self.json is not None:
            return jsonlib.dumps(self.json).encode("utf-8")
        return self.body

    def with_url(self, url: str) -> "Request":
        return replace(self, url=urljoin(self.url, url))

    def with_query_param(self, name: str, value: Any) -> "Request":
        return replace(self, url=set_query_param(self.url, name, value))


def set_query_param(url: str, name: str, value: Any) -> str:
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != name]
    query.append((name, str(value)))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RequestBuilder:
    """Fluent builder; each build() returns a new Request snapshot."""

    def __init__(self, api_url: str = DEFAULT_API_URL):
        self._api_url = api_url.rstrip("/")
        self._method = "GET"
        self._path = "/"
        self._url: Optional[str] = None
        self._headers: List[Tuple[str, str]] = []
        self._params: List[Tuple[str, Any]] = []
        self._body: Optional[bytes] = None
        self._json: Any = None
        self._in_body: Optional[bool] = None

    def with_api_url(self, api_url: str) -> "RequestBuilder":
        self._api_url = api_url.rstrip("/")
        return self

    def method(self, method: str) -> "RequestBuilder":
        self._method = method.upper()
        return self

    def with_url_path(self, *segments: str) -> "RequestBuilder":
        path = "/".join(s.strip("/") for s in segments if s)
        self._path = "/" + path
        self._url = None
        return self

    def with_url(self, url: str) -> "RequestBuilder":
        self._url = url
        return self

    def set_header(self, name: str, value: str) -> "RequestBuilder":
        lowered = name.lower()
        self._headers = [(k, v) for k, v in self._headers if k.lower() != lowered]
        self._headers.append((name, value))
        return self

    def with_header(self, name: str, value: str) -> "RequestBuilder":
        self._headers.append((name, value))
        return self

    def content_type(self, value: str) -> "RequestBuilder":
        return self.set_header("Content-Type", value)

    def with_param(self, key: str, value: Any) -> "RequestBuilder":
        self._params = [(k, v) for k, v in self._params if k != key]
        self._params.append((key, value))
        return self

    def with_params(self, params: Mapping[str, Any]) -> "RequestBuilder":
        for key, value in params.items():
            self.with_param(key, value)
        return self

    def with_body(self, body: bytes, content_type: Optional[str] = None) -> "RequestBuilder":
        self._body = body
        self._json = None
        if content_type:
            self.content_type(content_type)
        return self

    def with_json(self, obj: Any) -> "RequestBuilder":
        self._json = obj
        self._body = None
        return self

    def in_body(self, flag: bool = True) -> "RequestBuilder":
        self._in_body = flag
        return self

    def _params_in_body(self) -> bool:
        if self._in_body is not None:
            return self._in_body
        return self._method not in QUERY_METHODS

    def _target_url(self) -> str:
        if self._url:
            if "://" in self._url:
                return self._url
            return self._api_url + "/" + self._url.lstrip("/")
        return self._api_url + self._path

    def build(self) -> Request:
        url = self._target_url()
        headers: Iterable[Tuple[str, str]] = list(self._headers)
        body = self._body
        json_body = self._json
        if self._params:
            if self._params_in_body():
                if body is not None or json_body is not None:
                    raise ValueError("request parameters cannot be sent in the body alongside an explicit body")
                json_body = {k: v for k, v in self._params}
            else:
                for key, value in self._params:
                    url = set_query_param(url, key, _param_value(value))
        return Request(
            method=self._method,
            url=url,
            header_items=tuple(headers),
            body=body,
            json=json_body,
        )
