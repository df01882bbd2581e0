"""Unit tests for the metric registry."""

import pytest

from metrics_reporter.application.registry import MetricRegistry
from metrics_reporter.domain.filters import starts_with
from metrics_reporter.domain.metrics import Counter, Gauge, Histogram, Meter, Timer


@pytest.mark.unit
class TestRegistration:
    def test_register_and_remove(self, registry):
        registry.register("requests", Counter())

        assert "requests" in registry
        assert len(registry) == 1
        assert registry.remove("requests") is True
        assert registry.remove("requests") is False

    def test_duplicate_names_rejected(self, registry):
        registry.register("requests", Counter())

        with pytest.raises(ValueError, match="already exists"):
            registry.register("requests", Meter(count=0))

    def test_non_metric_rejected(self, registry):
        with pytest.raises(TypeError):
            registry.register("bogus", object())

    def test_counter_get_or_create(self, registry):
        first = registry.counter("requests")
        first.inc()

        assert registry.counter("requests") is first
        assert registry.counter("requests").count == 1

    def test_counter_name_taken_by_other_family(self, registry):
        registry.gauge("requests", lambda: 1)

        with pytest.raises(ValueError, match="already registered as a gauge"):
            registry.counter("requests")

    def test_name_joins_parts(self):
        assert MetricRegistry.name("http", None, "requests", "") == "http.requests"


@pytest.mark.unit
class TestSnapshot:
    """Test per-family selection and filtering."""

    def test_groups_by_family(self, registry):
        registry.gauge("queue.depth", lambda: 7)
        registry.counter("requests")
        registry.register("latency", Histogram(count=1))
        registry.register("hits", Meter(count=2))
        registry.register("db", Timer(count=3))

        snapshot = registry.snapshot()

        assert list(snapshot.gauges) == ["queue.depth"]
        assert list(snapshot.counters) == ["requests"]
        assert list(snapshot.histograms) == ["latency"]
        assert list(snapshot.meters) == ["hits"]
        assert list(snapshot.timers) == ["db"]

    def test_filter_applies_to_every_family(self, registry):
        registry.counter("http.requests")
        registry.counter("db.queries")
        registry.gauge("http.open", lambda: 3)

        snapshot = registry.snapshot(starts_with("http."))

        assert list(snapshot.counters) == ["http.requests"]
        assert list(snapshot.gauges) == ["http.open"]

    def test_getters_are_name_sorted(self, registry):
        for name in ("b", "c", "a"):
            registry.counter(name)

        assert list(registry.get_counters()) == ["a", "b", "c"]
        assert registry.names() == ["a", "b", "c"]

    def test_gauge_supplier_is_not_called_on_registration(self, registry):
        def explode():
            raise RuntimeError("read too early")

        registry.gauge("lazy", explode)

        assert isinstance(registry.get_gauges()["lazy"], Gauge)
