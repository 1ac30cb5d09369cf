from pubsub_udp.state import ClientRegistry, TopicIndex, client_key, drop_client


def test_touch_creates_then_refreshes(clock):
    reg = ClientRegistry(clock)
    c = reg.touch("10.0.0.1", 5000)
    assert c.key == "10.0.0.1:5000"
    assert c.topics == set()
    assert c.last_seen == 1000.0

    clock.advance(5)
    again = reg.touch("10.0.0.1", 5000)
    assert again is c
    assert c.last_seen == 1005.0
    assert len(reg) == 1


def test_origin_port_is_part_of_identity(clock):
    reg = ClientRegistry(clock)
    a = reg.touch("10.0.0.1", 5000)
    b = reg.touch("10.0.0.1", 5001)
    assert a is not b
    assert len(reg) == 2


def test_get_and_remove_are_idempotent(clock):
    reg = ClientRegistry(clock)
    reg.touch("1.2.3.4", 9)
    key = client_key("1.2.3.4", 9)
    assert reg.get(key) is not None
    reg.remove(key)
    reg.remove(key)
    assert reg.get(key) is None
    assert key not in reg


def test_all_clients_survives_removal_during_iteration(clock):
    reg = ClientRegistry(clock)
    for port in range(5):
        reg.touch("127.0.0.1", port)
    seen = []
    for c in reg.all_clients():
        seen.append(c.key)
        reg.remove(c.key)
    assert len(seen) == 5
    assert len(reg) == 0


def test_topic_index_subscribe_is_idempotent():
    idx = TopicIndex()
    idx.subscribe("a", "news")
    idx.subscribe("a", "news")
    assert idx.subscribers_of("news") == {"a"}


def test_topic_index_drops_empty_topics():
    idx = TopicIndex()
    idx.subscribe("a", "news")
    idx.subscribe("b", "news")
    idx.unsubscribe("a", "news")
    assert idx.subscribers_of("news") == {"b"}
    idx.unsubscribe("b", "news")
    assert idx.subscribers_of("news") is None
    assert idx.topic_names() == []


def test_topic_index_unsubscribe_non_member_is_noop():
    idx = TopicIndex()
    idx.unsubscribe("a", "nothing")
    idx.subscribe("b", "news")
    idx.unsubscribe("a", "news")
    assert idx.subscribers_of("news") == {"b"}


def test_drop_client_cascades_into_topics(clock):
    reg = ClientRegistry(clock)
    idx = TopicIndex()
    c = reg.touch("127.0.0.1", 1)
    other = reg.touch("127.0.0.1", 2)
    for topic in ("a", "b"):
        c.topics.add(topic)
        idx.subscribe(c.key, topic)
    other.topics.add("b")
    idx.subscribe(other.key, "b")

    assert drop_client(reg, idx, c.key) is True
    assert c.key not in reg
    assert idx.subscribers_of("a") is None
    assert idx.subscribers_of("b") == {other.key}

    assert drop_client(reg, idx, c.key) is False
