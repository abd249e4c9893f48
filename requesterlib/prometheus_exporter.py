import logging
import threading
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, start_http_server

from .metrics import Metrics


logger = logging.getLogger(__name__)


class PrometheusExporter:
    def __init__(self, metrics: Metrics, port: int = 8000, registry: Optional[CollectorRegistry] = None) -> None:
        self.metrics = metrics
        self.port = port
        self.registry = registry or REGISTRY
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

        self.requests_total = Counter(
            'requester_requests_total', 'Total number of HTTP requests sent', registry=self.registry
        )
        self.bytes_total = Counter(
            'requester_response_bytes_total', 'Total number of response body bytes read', registry=self.registry
        )
        self.errors_total = Counter(
            'requester_errors_total', 'Total number of failed requests', registry=self.registry
        )
        self.requests_per_second = Gauge(
            'requester_requests_per_second', 'Request rate since start', registry=self.registry
        )
        self.avg_request_duration_seconds = Gauge(
            'requester_avg_request_duration_seconds', 'Average request duration in seconds', registry=self.registry
        )

        self._last_requests = 0
        self._last_bytes = 0
        self._last_errors = 0

    def start(self) -> None:
        start_http_server(self.port, registry=self.registry)
        logger.info("Prometheus metrics server started on port %d", self.port)

        self._thread = threading.Thread(
            target=self._update_metrics_loop,
            name="prometheus-updater",
            daemon=True,
        )
        self._thread.start()

    def _update_metrics_loop(self) -> None:
        while not self._stop_event.is_set():
            self.update()
            self._stop_event.wait(5.0)

    def update(self) -> None:
        totals, elapsed = self.metrics.snapshot()

        requests_delta = totals.requests - self._last_requests
        bytes_delta = totals.bytes - self._last_bytes
        errors_delta = totals.errors - self._last_errors

        if requests_delta > 0:
            self.requests_total.inc(requests_delta)
        if bytes_delta > 0:
            self.bytes_total.inc(bytes_delta)
        if errors_delta > 0:
            self.errors_total.inc(errors_delta)

        self.requests_per_second.set(totals.requests / elapsed)
        if totals.requests > 0:
            self.avg_request_duration_seconds.set(totals.request_ms_sum / totals.requests / 1000.0)

        self._last_requests = totals.requests
        self._last_bytes = totals.bytes
        self._last_errors = totals.errors

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2.0)
