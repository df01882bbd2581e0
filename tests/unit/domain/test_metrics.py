"""Unit tests for metric types and the per-cycle snapshot."""

import pytest

from metrics_reporter.domain.metrics import (
    Counter,
    Gauge,
    Histogram,
    Meter,
    MetricFamily,
    MetricSnapshot,
    ReportCycle,
    Snapshot,
    Timer,
    classify,
)


@pytest.mark.unit
class TestClassify:
    """Test family detection from metric interfaces."""

    def test_builtin_types(self):
        assert classify(Gauge(lambda: 1)) is MetricFamily.GAUGE
        assert classify(Counter()) is MetricFamily.COUNTER
        assert classify(Histogram(count=1)) is MetricFamily.HISTOGRAM
        assert classify(Meter(count=1)) is MetricFamily.METER
        assert classify(Timer(count=1)) is MetricFamily.TIMER

    def test_structural_timer(self):
        class ExternalTimer:
            count = 3
            snapshot = Snapshot()
            mean_rate = 1.0
            one_minute_rate = 1.0
            five_minute_rate = 1.0
            fifteen_minute_rate = 1.0

        assert classify(ExternalTimer()) is MetricFamily.TIMER

    def test_rejects_non_metrics(self):
        with pytest.raises(TypeError, match="is not a metric"):
            classify(object())


@pytest.mark.unit
class TestCounterAndGauge:
    def test_counter(self):
        counter = Counter()
        counter.inc()
        counter.inc(4)
        counter.dec(2)

        assert counter.count == 3

    def test_gauge_reads_supplier_each_time(self):
        values = iter([1, 2])
        gauge = Gauge(lambda: next(values))

        assert gauge.value == 1
        assert gauge.value == 2


@pytest.mark.unit
class TestMetricSnapshot:
    """Test the read-only report snapshot."""

    def test_empty(self):
        snapshot = MetricSnapshot()

        assert snapshot.is_empty
        assert snapshot.size == 0

    def test_is_detached_from_input(self):
        counters = {"requests": Counter(42)}
        snapshot = MetricSnapshot(counters=counters)

        counters["other"] = Counter()

        assert list(snapshot.counters) == ["requests"]

    def test_mappings_are_read_only(self):
        snapshot = MetricSnapshot(gauges={"queue.depth": Gauge(lambda: 7)})

        with pytest.raises(TypeError):
            snapshot.gauges["new"] = Gauge(lambda: 0)

    def test_family_lookup(self):
        timer = Timer(count=2)
        snapshot = MetricSnapshot(timers={"db": timer})

        assert snapshot.family(MetricFamily.TIMER) == {"db": timer}
        assert snapshot.size == 1


@pytest.mark.unit
class TestReportCycle:
    def test_timestamp_is_whole_seconds(self):
        cycle = ReportCycle.at_millis(1_000_999, MetricSnapshot())

        assert cycle.timestamp == 1000
