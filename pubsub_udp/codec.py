import json
from dataclasses import dataclass
from typing import Any, Optional

SUBSCRIBE = "sub"
UNSUBSCRIBE = "unsub"
PUBLISH = "pub"
INTERNAL_ERROR = "internal error"

TOPIC_TYPES = (SUBSCRIBE, UNSUBSCRIBE, PUBLISH)


class EnvelopeError(ValueError):
    """Datagram payload is not a usable envelope."""


@dataclass(frozen=True)
class Envelope:
    type: str
    topic: Optional[str] = None
    data: Any = None


def _reject_constant(name):
    raise EnvelopeError(f"non-standard json constant: {name}")


def decode_envelope(payload: bytes) -> Envelope:
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise EnvelopeError(f"invalid utf-8: {e}") from e

    try:
        obj = json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise EnvelopeError(f"invalid json: {e}") from e

    if not isinstance(obj, dict):
        raise EnvelopeError("envelope must be a json object")

    kind = obj.get("type")
    if not isinstance(kind, str):
        raise EnvelopeError("missing or non-string 'type'")

    if kind not in TOPIC_TYPES:
        # unknown types are valid envelopes the router ignores
        return Envelope(type=kind)

    topic = obj.get("topic")
    if not isinstance(topic, str):
        raise EnvelopeError(f"'{kind}' requires a string 'topic'")

    if kind == PUBLISH:
        if "data" not in obj:
            raise EnvelopeError("'pub' requires 'data'")
        return Envelope(type=kind, topic=topic, data=obj["data"])

    return Envelope(type=kind, topic=topic)


def _encode(obj) -> bytes:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode("utf-8")


def build_publish(topic: str, data: Any) -> bytes:
    return _encode({"type": PUBLISH, "topic": topic, "data": data})


def build_internal_error() -> bytes:
    return _encode({"type": INTERNAL_ERROR})
