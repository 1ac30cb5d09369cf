import json

import pytest

from pubsub_udp.codec import (
    Envelope, EnvelopeError, build_internal_error, build_publish, decode_envelope,
)


def test_decode_subscribe_and_unsubscribe():
    assert decode_envelope(b'{"type":"sub","topic":"weather"}') == Envelope("sub", "weather")
    assert decode_envelope(b'{"type":"unsub","topic":"weather"}') == Envelope("unsub", "weather")


def test_decode_publish_keeps_arbitrary_data():
    msg = decode_envelope(b'{"type":"pub","topic":"weather","data":{"temp":72}}')
    assert msg.type == "pub"
    assert msg.topic == "weather"
    assert msg.data == {"temp": 72}


def test_decode_publish_with_null_data():
    assert decode_envelope(b'{"type":"pub","topic":"t","data":null}').data is None


def test_unknown_type_decodes_without_topic():
    assert decode_envelope(b'{"type":"ping"}') == Envelope("ping")


@pytest.mark.parametrize(
    "payload",
    [
        b"not json",
        b"\xff\xfe\x00",
        b"[1, 2, 3]",
        b'"sub"',
        b"{}",
        b'{"type": 7}',
        b'{"type":"sub"}',
        b'{"type":"unsub","topic":5}',
        b'{"type":"pub","topic":"t"}',
        b'{"type":"pub","topic":"t","data":NaN}',
        b'{"type":"pub","topic":"t","data":[Infinity]}',
        b'{"type":"pub","topic":"t","data":{"x":-Infinity}}',
    ],
)
def test_malformed_payloads_raise(payload):
    with pytest.raises(EnvelopeError):
        decode_envelope(payload)


def test_build_publish():
    out = build_publish("weather", {"temp": 72})
    assert json.loads(out) == {"type": "pub", "topic": "weather", "data": {"temp": 72}}


def test_build_publish_keeps_unicode():
    out = build_publish("météo", "☀")
    assert "météo".encode("utf-8") in out


def test_build_internal_error():
    assert json.loads(build_internal_error()) == {"type": "internal error"}


def test_build_publish_refuses_nan():
    with pytest.raises(ValueError):
        build_publish("t", float("nan"))
