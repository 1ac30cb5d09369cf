import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set


def client_key(address: str, port: int) -> str:
    return f"{address}:{port}"


@dataclass
class Client:
    address: str
    port: int
    last_seen: float
    topics: Set[str] = field(default_factory=set)

    @property
    def key(self) -> str:
        return client_key(self.address, self.port)


class ClientRegistry:
    """Known client sessions keyed by network origin."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        # client key -> Client
        self._clients: Dict[str, Client] = {}

    def touch(self, address: str, port: int) -> Client:
        now = self._clock()
        key = client_key(address, port)
        client = self._clients.get(key)
        if client is None:
            client = Client(address=address, port=port, last_seen=now)
            self._clients[key] = client
        else:
            client.last_seen = now
        return client

    def get(self, key: str) -> Optional[Client]:
        return self._clients.get(key)

    def remove(self, key: str) -> None:
        # the caller unsubscribes the client from its topics first
        self._clients.pop(key, None)

    def all_clients(self) -> List[Client]:
        return list(self._clients.values())

    def now(self) -> float:
        return self._clock()

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, key: str) -> bool:
        return key in self._clients


class TopicIndex:
    """Topic name -> subscriber client keys. Empty topics are never kept."""

    def __init__(self):
        self._topics: Dict[str, Set[str]] = {}

    def subscribe(self, key: str, topic: str) -> None:
        self._topics.setdefault(topic, set()).add(key)

    def unsubscribe(self, key: str, topic: str) -> None:
        keys = self._topics.get(topic)
        if keys is None:
            return
        keys.discard(key)
        if not keys:
            del self._topics[topic]

    def subscribers_of(self, topic: str) -> Optional[Set[str]]:
        return self._topics.get(topic)

    def topic_names(self) -> List[str]:
        return list(self._topics)

    def __len__(self) -> int:
        return len(self._topics)


def drop_client(clients: ClientRegistry, topics: TopicIndex, key: str) -> bool:
    """Unsubscribe a client from every topic, then forget it.

    Returns False when the key no longer resolves to a live client, so a
    delayed send failure racing an idle sweep is harmless.
    """
    client = clients.get(key)
    if client is None:
        return False
    for topic in list(client.topics):
        client.topics.discard(topic)
        topics.unsubscribe(key, topic)
    clients.remove(key)
    return True
