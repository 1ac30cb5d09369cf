import asyncio
import logging
import sys
import time
from typing import Callable, Optional

from .config import (
    RELAY_HOST, PORT, IDLE_TIMEOUT_MS, REAP_INTERVAL_SEC, TRACKING_LOG_INTERVAL_SEC,
    HTTP_ENABLED, HTTP_HOST, HTTP_PORT,
)
from .failure import FailureBroadcaster
from .http_api import make_app
from .metrics import METRICS, Metrics
from .reaper import IdleReaper
from .router import MessageRouter
from .state import ClientRegistry, TopicIndex
from .transport import UdpServer

log = logging.getLogger(__name__)


class Relay:
    """Owns the registries and wires the components that share them."""

    def __init__(
        self,
        sender,
        idle_timeout_ms: int = IDLE_TIMEOUT_MS,
        reap_interval_sec: float = REAP_INTERVAL_SEC,
        metrics: Optional[Metrics] = None,
        clock: Callable[[], float] = time.monotonic,
        exit_fn: Callable[[int], None] = sys.exit,
    ):
        self.metrics = metrics if metrics is not None else METRICS
        self.clients = ClientRegistry(clock)
        self.topics = TopicIndex()

        self.failures = FailureBroadcaster(self.clients, self.topics, sender, self.metrics, exit_fn)
        self.router = MessageRouter(
            self.clients, self.topics, sender, self.failures.on_send_complete, self.metrics
        )
        self.reaper = IdleReaper(
            self.clients, self.topics, idle_timeout_ms, reap_interval_sec, self.metrics
        )


async def log_tracking(relay: Relay, interval_sec: float = TRACKING_LOG_INTERVAL_SEC):
    while True:
        await asyncio.sleep(interval_sec)
        log.info("tracking %d clients", len(relay.clients))


async def start_udp(server: UdpServer, relay: Relay):
    try:
        await server.serve(relay.router.handle_datagram, relay.failures.fatal)
    finally:
        server.close()


async def start_http(relay: Relay):
    from aiohttp import web
    app = make_app(relay)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, HTTP_HOST, HTTP_PORT)
    await site.start()
    log.info("HTTP stats listening on http://%s:%s/stats and /metrics", HTTP_HOST, HTTP_PORT)


async def run_all():
    server = UdpServer(RELAY_HOST, PORT)
    server.open()
    relay = Relay(server)

    tasks = [start_udp(server, relay), relay.reaper.run(), log_tracking(relay)]
    if HTTP_ENABLED:
        tasks.append(start_http(relay))
    await asyncio.gather(*tasks)
