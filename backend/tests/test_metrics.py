from __future__ import annotations

import pytest

from app.monitoring.registry import MetricsRegistry


def test_counter_and_gauge_render_prometheus_text():
    registry = MetricsRegistry()
    events = registry.counter("events_total", "Events seen.", label_names=("event", "outcome"))
    online = registry.gauge("online", "Online users.")

    events.labels("join", "ok").inc()
    events.labels("join", "ok").inc()
    events.labels("dm", "unreachable").inc()
    online.labels().set(3)
    online.labels().dec()

    text = registry.render()

    assert "# TYPE events_total counter" in text
    assert 'events_total{event="dm",outcome="unreachable"} 1' in text
    assert 'events_total{event="join",outcome="ok"} 2' in text
    assert "online 2" in text
    assert events.value("join", "ok") == 2


def test_metric_misuse_is_rejected():
    registry = MetricsRegistry()
    counter = registry.counter("failures_total", "Failures.", label_names=("operation",))

    with pytest.raises(ValueError):
        counter.labels()
    with pytest.raises(ValueError):
        counter.labels("x").inc(-1)
    with pytest.raises(AttributeError):
        counter.labels("x").set(1)
    with pytest.raises(ValueError):
        registry.counter("failures_total", "Again.")


def test_unused_metric_renders_zero_sample():
    registry = MetricsRegistry()
    registry.counter("idle_total", "Never incremented.")

    assert registry.render().splitlines()[-1] == "idle_total 0"
