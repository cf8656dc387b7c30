"""
Process-wide request counters published at /debug/vars.
"""
import threading
from collections import Counter


class Metrics:
    """Thread-safe request/response counters."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total_requests_received = 0
        self.total_responses_sent = 0
        self.total_processing_time_us = 0
        self.total_responses_sent_by_status: Counter[str] = Counter()

    def request_received(self) -> None:
        with self._lock:
            self.total_requests_received += 1

    def response_sent(self, status_code: int, duration_us: int) -> None:
        with self._lock:
            self.total_responses_sent += 1
            self.total_processing_time_us += duration_us
            self.total_responses_sent_by_status[str(status_code)] += 1

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "total_requests_received": self.total_requests_received,
                "total_responses_sent": self.total_responses_sent,
                "total_processing_time_μs": self.total_processing_time_us,
                "total_responses_sent_by_status": dict(self.total_responses_sent_by_status),
            }
