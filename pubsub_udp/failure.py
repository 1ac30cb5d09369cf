import logging
import sys
from typing import Callable, Optional

from .codec import build_internal_error
from .metrics import METRICS, Metrics
from .state import ClientRegistry, TopicIndex, drop_client
from .transport import SendResult

log = logging.getLogger(__name__)


class FailureBroadcaster:
    """Evicts unreachable clients and handles the fatal shutdown path.

    A failed send means the client is gone: it is unsubscribed from all of its
    topics and forgotten. A failure of the listening socket itself tells every
    known client about it and ends the process.
    """

    def __init__(
        self,
        clients: ClientRegistry,
        topics: TopicIndex,
        sender,
        metrics: Optional[Metrics] = None,
        exit_fn: Callable[[int], None] = sys.exit,
    ):
        self.clients = clients
        self.topics = topics
        self.sender = sender
        self.metrics = metrics if metrics is not None else METRICS
        self._exit = exit_fn

    def on_send_complete(self, result: SendResult):
        if result.ok:
            return
        self.metrics.send_failures_total += 1
        if drop_client(self.clients, self.topics, result.client_key):
            log.warning("dropping client %s after send failure: %s", result.client_key, result.error)
            self.metrics.failure_evictions_total += 1

    def broadcast(self, payload: bytes) -> int:
        n = 0
        for client in self.clients.all_clients():
            try:
                self.sender.send_now(payload, client)
            except OSError as e:
                log.debug("broadcast to %s failed: %s", client.key, e)
                continue
            n += 1
        return n

    def fatal(self, exc: BaseException):
        log.error("server error", exc_info=exc)
        n = self.broadcast(build_internal_error())
        log.error("notified %d clients, exiting", n)
        self._exit(1)
