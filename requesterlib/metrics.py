import logging
import threading
import time
from dataclasses import dataclass


logger = logging.getLogger(__name__)


@dataclass
class Totals:
    requests: int = 0
    bytes: int = 0
    errors: int = 0
    request_ms_sum: float = 0.0


class Metrics:
    def __init__(self):
        self._totals = Totals()
        self._lock = threading.Lock()
        self._start = time.time()

    def record_request(self, ok: bool, bytes_read: int, request_ms: float) -> None:
        with self._lock:
            self._totals.requests += 1
            self._totals.bytes += max(0, bytes_read)
            if not ok:
                self._totals.errors += 1
            self._totals.request_ms_sum += request_ms

    def snapshot(self) -> tuple[Totals, float]:
        with self._lock:
            t = Totals(
                requests=self._totals.requests,
                bytes=self._totals.bytes,
                errors=self._totals.errors,
                request_ms_sum=self._totals.request_ms_sum,
            )
        elapsed = max(1e-6, time.time() - self._start)
        return t, elapsed


class StatsLogger(threading.Thread):
    daemon = True

    def __init__(self, metrics: Metrics, interval_s: float, log_fn=logger.info):
        super().__init__(name="stats-logger")
        self._metrics = metrics
        self._interval = max(0.5, interval_s)
        self._log = log_fn
        self._stop_event = threading.Event()

    def log_once(self) -> None:
        totals, elapsed = self._metrics.snapshot()
        rps = totals.requests / elapsed
        mb = totals.bytes / (1024 * 1024)
        avg_ms = totals.request_ms_sum / max(1, totals.requests)
        self._log(
            "Perf: requests=%d, errors=%d, MB=%.2f, avg_request_ms=%.1f, requests/sec=%.2f",
            totals.requests,
            totals.errors,
            mb,
            avg_ms,
            rps,
        )

    def run(self) -> None:
        while not self._stop_event.is_set():
            self._stop_event.wait(self._interval)
            if self._stop_event.is_set():
                break
            self.log_once()

    def stop(self) -> None:
        self._stop_event.set()
