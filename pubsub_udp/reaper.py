import asyncio
import logging
from typing import Optional

from .config import MIN_IDLE_TIMEOUT_MS
from .metrics import METRICS, Metrics
from .state import ClientRegistry, TopicIndex, drop_client

log = logging.getLogger(__name__)


class IdleReaper:
    """Periodically evicts clients that have been silent for too long."""

    def __init__(
        self,
        clients: ClientRegistry,
        topics: TopicIndex,
        idle_timeout_ms: int,
        interval_sec: float = 15,
        metrics: Optional[Metrics] = None,
    ):
        self.clients = clients
        self.topics = topics
        self.idle_timeout_ms = max(MIN_IDLE_TIMEOUT_MS, idle_timeout_ms)
        self.interval_sec = interval_sec
        self.metrics = metrics if metrics is not None else METRICS

    def sweep(self, now: Optional[float] = None) -> int:
        if now is None:
            now = self.clients.now()
        last_seen_ok = now - self.idle_timeout_ms / 1000

        log.debug("dropping idle clients timeout=%ss", self.idle_timeout_ms / 1000)

        dropped = 0
        for client in self.clients.all_clients():
            if client.last_seen < last_seen_ok and drop_client(self.clients, self.topics, client.key):
                log.debug("dropped idle client: %s", client.key)
                dropped += 1

        self.metrics.idle_evictions_total += dropped
        return dropped

    async def run(self):
        while True:
            await asyncio.sleep(self.interval_sec)
            self.sweep()
