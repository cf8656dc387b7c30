"""
Per-client token-bucket rate limiter.

Algorithm: Token Bucket
    Each client starts with *burst* tokens. Tokens refill continuously at
    *rps* per second up to *burst*. An admitted request spends one token;
    a client with less than one token is refused.

The client map is guarded by one lock shared with the idle sweep, so a
sweep never removes an entry while a request is being admitted against it.
"""
import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

IDLE_TTL_SECONDS = 3 * 60
SWEEP_INTERVAL_SECONDS = 60


@dataclass
class _Client:
    tokens: float
    updated: float
    last_seen: float


class RateLimiter:
    def __init__(
        self,
        rps: float,
        burst: int,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.rps = rps
        self.burst = burst
        self.enabled = enabled
        self._clock = clock
        self._lock = threading.Lock()
        self._clients: dict[str, _Client] = {}

    def admit(self, client_key: str) -> bool:
        """Spend one token for *client_key*; False when the bucket is empty."""
        if not self.enabled:
            return True

        now = self._clock()
        with self._lock:
            client = self._clients.get(client_key)
            if client is None:
                client = _Client(tokens=float(self.burst), updated=now, last_seen=now)
                self._clients[client_key] = client

            elapsed = max(0.0, now - client.updated)
            client.tokens = min(float(self.burst), client.tokens + elapsed * self.rps)
            client.updated = now
            client.last_seen = now

            if client.tokens < 1.0:
                return False
            client.tokens -= 1.0
            return True

    def sweep(self, idle_ttl: float = IDLE_TTL_SECONDS) -> int:
        """Forget clients not seen for *idle_ttl* seconds. Returns how many were removed."""
        cutoff = self._clock() - idle_ttl
        with self._lock:
            idle = [key for key, client in self._clients.items() if client.last_seen < cutoff]
            for key in idle:
                del self._clients[key]

        if idle:
            logger.debug("Rate limiter dropped %d idle clients", len(idle))
        return len(idle)

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    async def run_sweeper(self, interval: float = SWEEP_INTERVAL_SECONDS) -> None:
        """Sweep idle clients every *interval* seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            self.sweep()
