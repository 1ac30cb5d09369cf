import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from pubsub_udp.broker import Relay
from pubsub_udp.metrics import Metrics
from pubsub_udp.transport import SendResult


class ManualClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeSender:
    """Records sends; completions are delivered on flush() unless immediate."""

    def __init__(self):
        self.sent = []
        self.sent_now = []
        self.failing = set()
        self.immediate = False
        self._pending = []

    def send(self, payload, client, on_complete):
        self.sent.append((client.key, payload))
        result = SendResult(client.key, OSError("unreachable") if client.key in self.failing else None)
        if self.immediate:
            on_complete(result)
        else:
            self._pending.append((on_complete, result))

    def send_now(self, payload, client):
        if client.key in self.failing:
            raise OSError("unreachable")
        self.sent_now.append((client.key, payload))

    def flush(self):
        pending, self._pending = self._pending, []
        for on_complete, result in pending:
            on_complete(result)

    def sent_to(self, key):
        return [payload for k, payload in self.sent if k == key]


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def sender():
    return FakeSender()


@pytest.fixture
def exit_codes():
    return []


@pytest.fixture
def relay(sender, clock, exit_codes):
    return Relay(
        sender,
        idle_timeout_ms=30000,
        metrics=Metrics(),
        clock=clock,
        exit_fn=exit_codes.append,
    )
