import logging

from castkit.domain.events.api_events import ApiCallSucceeded, CacheHit, dispatch_event

def test_dispatch_forwards_event_to_sink():
    received = []
    event = CacheHit(cache_key="warpcast/profile/1")

    dispatch_event(received.append, event)

    assert received == [event]
    assert event.timestamp > 0

def test_dispatch_without_sink_only_logs(caplog):
    with caplog.at_level(logging.DEBUG, logger="castkit.domain.events.api_events"):
        dispatch_event(None, ApiCallSucceeded(operation_key="get_profile:1", latency_ms=3.0))

    assert "get_profile:1" in caplog.text

def test_failing_sink_does_not_propagate(caplog):
    def broken_sink(event):
        raise RuntimeError("metrics backend down")

    dispatch_event(broken_sink, CacheHit(cache_key="k"))

    assert "Event sink failed for CacheHit" in caplog.text
