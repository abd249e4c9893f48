import io
import logging
import time
from typing import Optional

import urllib3
from urllib3 import exceptions as urllib3_exc
from urllib3.util.retry import Retry

from .config import ClientConfig
from .errors import TransportError
from .metrics import Metrics
from .request import Request
from .response import ResponseInfo


logger = logging.getLogger(__name__)


class BodyStream(io.RawIOBase):
    """Binary stream over a urllib3 response body that reports read failures as TransportError."""

    def __init__(self, response: urllib3.BaseHTTPResponse, url: str):
        super().__init__()
        self._response = response
        self.url = url
        self.bytes_read = 0
        self.failed = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("read from a closed response body")
        try:
            data = self._response.read(len(buffer))
        except (urllib3_exc.HTTPError, OSError) as exc:
            self.failed = True
            raise TransportError(self.url, exc) from exc
        n = len(data)
        buffer[:n] = data
        self.bytes_read += n
        return n


class HttpTransport:
    def __init__(self, config: ClientConfig, metrics: Optional[Metrics] = None):
        self.config = config
        self.metrics = metrics or Metrics()
        self.timeout = urllib3.Timeout(connect=config.connect_timeout, read=config.request_timeout)
        headers = {
            "User-Agent": config.user_agent,
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
        }
        headers.update(config.default_headers)
        self.http = urllib3.PoolManager(
            num_pools=config.num_pools,
            maxsize=config.max_connections,
            headers=headers,
            retries=Retry(
                total=config.retries,
                backoff_factor=config.backoff_factor,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["GET", "HEAD", "PUT", "DELETE", "OPTIONS"],
                raise_on_status=False,
            ),
        )

    def _headers_for(self, request: Request) -> dict:
        headers = dict(self.http.headers)
        for name, value in request.header_items:
            for key in [k for k in headers if k.lower() == name.lower()]:
                del headers[key]
            headers[name] = value
        if request.json is not None and request.header("Content-Type") is None:
            headers["Content-Type"] = "application/json"
        return headers

    def send(self, request: Request) -> ResponseInfo:
        t0 = time.perf_counter()
        try:
            response = self.http.request(
                request.method,
                request.url,
                body=request.encoded_body(),
                headers=self._headers_for(request),
                timeout=self.timeout,
                preload_content=False,
            )
        except urllib3_exc.HTTPError as exc:
            dt_ms = (time.perf_counter() - t0) * 1000.0
            self.metrics.record_request(False, 0, dt_ms)
            logger.warning("%s %s failed: %s", request.method, request.url, exc)
            raise TransportError(request.url, exc) from exc

        url = response.geturl() or request.url
        logger.debug("%s %s -> %d", request.method, url, response.status)
        stream = BodyStream(response, url)

        def release() -> None:
            response.drain_conn()
            response.release_conn()
            dt_ms = (time.perf_counter() - t0) * 1000.0
            self.metrics.record_request(response.status < 400 and not stream.failed, stream.bytes_read, dt_ms)

        return ResponseInfo(request, response.status, response.headers, stream, url=url, release=release)

    def close(self) -> None:
        self.http.clear()
