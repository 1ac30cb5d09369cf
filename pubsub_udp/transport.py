import asyncio
import logging
import socket
from dataclasses import dataclass
from typing import Callable, Optional, Set, Tuple

from .state import Client

log = logging.getLogger(__name__)

MAX_DATAGRAM = 65535

# ICMP feedback from an earlier sendto surfaces on the next recvfrom
_PEER_ERRORS = (ConnectionRefusedError, ConnectionResetError)


@dataclass(frozen=True)
class SendResult:
    client_key: str
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class UdpServer:
    """Non-blocking UDP endpoint driven by the running event loop."""

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self._sock: Optional[socket.socket] = None
        self._pending: Set[asyncio.Task] = set()

    def open(self) -> Tuple[str, int]:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.setblocking(False)
        try:
            sock.bind((self.host, self.port))
        except OSError:
            sock.close()
            raise
        self._sock = sock
        return self.address

    @property
    def address(self) -> Tuple[str, int]:
        return self._sock.getsockname()

    async def serve(
        self,
        on_datagram: Callable[[bytes, Tuple[str, int]], None],
        on_fatal: Callable[[BaseException], None],
    ):
        loop = asyncio.get_running_loop()
        host, port = self.address
        log.info("UDP relay listening on %s:%s", host, port)
        while True:
            try:
                data, addr = await loop.sock_recvfrom(self._sock, MAX_DATAGRAM)
            except _PEER_ERRORS as e:
                log.debug("ignoring peer error on receive: %s", e)
                continue
            except OSError as e:
                on_fatal(e)
                return
            on_datagram(data, addr[:2])

    def send(self, payload: bytes, client: Client, on_complete: Callable[[SendResult], None]) -> None:
        loop = asyncio.get_running_loop()
        key = client.key
        task = loop.create_task(loop.sock_sendto(self._sock, payload, (client.address, client.port)))
        self._pending.add(task)

        def _done(t: asyncio.Task):
            self._pending.discard(t)
            if t.cancelled():
                return
            on_complete(SendResult(key, t.exception()))

        task.add_done_callback(_done)

    def send_now(self, payload: bytes, client: Client) -> None:
        # raises OSError; callers decide whether a failure matters
        self._sock.sendto(payload, (client.address, client.port))

    def close(self):
        for task in list(self._pending):
            task.cancel()
        if self._sock is not None:
            self._sock.close()
            self._sock = None
