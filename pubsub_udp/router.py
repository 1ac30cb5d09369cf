import logging
import time
from typing import Any, Callable, Optional, Tuple

from .codec import (
    PUBLISH, SUBSCRIBE, TOPIC_TYPES, UNSUBSCRIBE, EnvelopeError, build_publish, decode_envelope,
)
from .config import LOG_PACKET_TIMES
from .metrics import METRICS, Metrics
from .state import Client, ClientRegistry, TopicIndex
from .transport import SendResult

log = logging.getLogger(__name__)

# timing bucket for every type the relay does not act on
OTHER_PACKET = "OTHER"


class MessageRouter:
    """Decodes inbound datagrams and applies sub/unsub/pub to the registries."""

    def __init__(
        self,
        clients: ClientRegistry,
        topics: TopicIndex,
        sender,
        on_send_complete: Callable[[SendResult], None],
        metrics: Optional[Metrics] = None,
    ):
        self.clients = clients
        self.topics = topics
        self.sender = sender
        self.on_send_complete = on_send_complete
        self.metrics = metrics if metrics is not None else METRICS

    def handle_datagram(self, payload: bytes, origin: Tuple[str, int]):
        address, port = origin
        t0 = time.perf_counter()

        self.metrics.datagrams_in_total += 1
        self.metrics.bytes_in_total += len(payload)

        try:
            msg = decode_envelope(payload)
        except EnvelopeError as e:
            # unprocessable packets do not register or refresh the sender
            log.debug(">>> %s:%s: %s", address, port, e)
            self.metrics.decode_errors_total += 1
            return

        client = self.clients.touch(address, port)
        key = client.key
        log.debug(">>> %s: %r", key, msg)

        if msg.type == SUBSCRIBE:
            self.handle_subscribe(client, key, msg.topic)
        elif msg.type == UNSUBSCRIBE:
            self.handle_unsubscribe(client, key, msg.topic)
        elif msg.type == PUBLISH:
            self.handle_publish(client, key, msg.topic, msg.data)

        ms = (time.perf_counter() - t0) * 1000
        packet = msg.type.upper() if msg.type in TOPIC_TYPES else OTHER_PACKET
        self.metrics.observe_packet(packet, ms)
        if LOG_PACKET_TIMES:
            log.debug("[%s] from=%s cycle_ms=%.3f", packet, key, ms)

    def handle_subscribe(self, client: Client, key: str, topic: str):
        log.debug("subscribe: [%s]: %s", topic, key)
        client.topics.add(topic)
        self.topics.subscribe(key, topic)
        self.metrics.subscribes_total += 1

    def handle_unsubscribe(self, client: Client, key: str, topic: str):
        log.debug("unsubscribe: [%s]: %s", topic, key)
        client.topics.discard(topic)
        self.topics.unsubscribe(key, topic)
        self.metrics.unsubscribes_total += 1

    def handle_publish(self, client: Client, key: str, topic: str, data: Any) -> int:
        self.metrics.publishes_total += 1

        subscribers = self.topics.subscribers_of(topic)
        if not subscribers:
            log.debug('topic unknown "%s"', topic)
            return 0

        out_msg = build_publish(topic, data)
        sent = 0

        # a failed send may drop a subscriber before we reach it
        for subscriber_key in list(subscribers):
            if subscriber_key == key:
                continue
            target = self.clients.get(subscriber_key)
            if target is None:
                log.debug("no client found for %s", subscriber_key)
                continue

            log.debug("<<< %s: %s", subscriber_key, out_msg)
            self.sender.send(out_msg, target, self.on_send_complete)
            sent += 1

        self.metrics.deliveries_total += sent
        self.metrics.bytes_out_total += len(out_msg) * sent
        log.debug('publish: %s => "%s": sent to %d clients', key, topic, sent)
        return sent
