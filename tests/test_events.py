from app.core.events import ChangeBus, REVALIDATE_TOPIC, INSERT, UPDATE
from app.core.view_cache import ViewCache


def test_publish_assigns_increasing_sequence_numbers(events):
    first = events.publish("competitions", INSERT, {"id": "c1"})
    second = events.publish("competitions", UPDATE, {"id": "c1"})
    assert second.seq > first.seq
    assert events.latest_seq == second.seq


def test_row_filter_limits_delivery(events):
    received = []
    events.subscribe("competition_participants", received.append, row_filter={"competition_id": "c1"})

    events.publish("competition_participants", INSERT, {"competition_id": "c2"})
    events.publish("competition_participants", INSERT, {"competition_id": "c1"})

    assert [e.record["competition_id"] for e in received] == ["c1"]


def test_failing_subscriber_does_not_stop_others(events):
    received = []

    def broken(event):
        raise RuntimeError("boom")

    events.subscribe("competitions", broken)
    events.subscribe("competitions", received.append)

    event = events.publish("competitions", INSERT, {"id": "c1"})
    assert received == [event]


def test_unsubscribe_stops_delivery(events):
    received = []
    subscription = events.subscribe("competitions", received.append)
    subscription.unsubscribe()
    events.publish("competitions", INSERT, {"id": "c1"})
    assert received == []


def test_events_since_is_bounded_and_filterable():
    bus = ChangeBus(log_size=3)
    for i in range(5):
        bus.publish("competitions", INSERT, {"id": str(i)})
    bus.revalidate("/dashboard")

    retained = bus.events_since(0)
    assert len(retained) == 3
    assert [e.topic for e in bus.events_since(0, topic=REVALIDATE_TOPIC)] == [REVALIDATE_TOPIC]
    assert bus.events_since(bus.latest_seq) == []


def test_view_cache_dropped_on_revalidate(events):
    cache = ViewCache(events, ttl_seconds=60)
    cache.set("/dashboard", "u1", {"n": 1})
    cache.set("/dashboard", "u2", {"n": 2})
    cache.set("/competitions", None, {"n": 3})

    events.revalidate("/dashboard")

    assert cache.get("/dashboard", "u1") is None
    assert cache.get("/dashboard", "u2") is None
    assert cache.get("/competitions", None) == {"n": 3}


def test_view_cache_variants_and_expiry(events):
    cache = ViewCache(events, ttl_seconds=60)
    cache.set("/dashboard/athlete", "u1", "tennis", variant=("Tennis", None, False))
    assert cache.get("/dashboard/athlete", "u1", ("Tennis", None, False)) == "tennis"
    assert cache.get("/dashboard/athlete", "u1") is None

    expired = ViewCache(events, ttl_seconds=-1)
    expired.set("/dashboard", "u1", "stale")
    assert expired.get("/dashboard", "u1") is None


def test_closed_view_cache_ignores_revalidation(events):
    cache = ViewCache(events, ttl_seconds=60)
    cache.set("/dashboard", "u1", "kept")
    cache.close()
    events.revalidate("/dashboard")
    assert cache.get("/dashboard", "u1") == "kept"


def test_view_cache_prunes_expired_entries_on_write(events):
    cache = ViewCache(events, ttl_seconds=-1)
    for n in range(50):
        cache.set("/dashboard/athlete", "u1", n, variant=(f"sport-{n}", None, False))
    assert len(cache._entries) == 1


def test_view_cache_evicts_oldest_when_full(events):
    cache = ViewCache(events, ttl_seconds=60, max_entries=3)
    for user_id in ("u1", "u2", "u3", "u4"):
        cache.set("/dashboard", user_id, user_id)

    assert len(cache._entries) == 3
    assert cache.get("/dashboard", "u1") is None
    assert cache.get("/dashboard", "u4") == "u4"

    # Rewriting a cached key does not push anything else out
    cache.set("/dashboard", "u4", "again")
    assert cache.get("/dashboard", "u2") == "u2"
    assert cache.get("/dashboard", "u4") == "again"
