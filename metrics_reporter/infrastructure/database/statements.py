"""
Metric Statement Builder

Encodes each metric family as one parameterized batch insert. Families are
described declaratively by ``FamilyEncoder`` entries (target columns and a
row binder), so adding a family or a column does not add control flow.
"""

# Standard library imports
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

# Third-party imports
from psycopg import Cursor, sql

# Local imports
from metrics_reporter.domain.filters import ALL, MetricFilter
from metrics_reporter.domain.metrics import MetricFamily, MetricSnapshot, Snapshot
from metrics_reporter.domain.units import UnitConverter

logger = logging.getLogger(__name__)

KEY_COLUMNS = ("timestamp", "name")
SNAPSHOT_COLUMNS = ("max", "mean", "min", "stddev", "p50", "p75", "p95", "p98", "p99", "p999")
RATE_COLUMNS = ("mean_rate", "m1_rate", "m5_rate", "m15_rate")

Row = tuple[Any, ...]
RowBinder = Callable[[Any, UnitConverter], Row]


def _snapshot_values(snapshot: Snapshot, convert: Callable[[float], float]) -> Row:
    return (
        convert(snapshot.max),
        convert(snapshot.mean),
        convert(snapshot.min),
        convert(snapshot.stddev),
        convert(snapshot.median),
        convert(snapshot.p75),
        convert(snapshot.p95),
        convert(snapshot.p98),
        convert(snapshot.p99),
        convert(snapshot.p999),
    )


def _rate_values(metric: Any, converter: UnitConverter) -> Row:
    return (
        converter.convert_rate(metric.mean_rate),
        converter.convert_rate(metric.one_minute_rate),
        converter.convert_rate(metric.five_minute_rate),
        converter.convert_rate(metric.fifteen_minute_rate),
    )


def _identity(value: float) -> float:
    return value


def bind_gauge(gauge: Any, converter: UnitConverter) -> Row:
    return (gauge.value,)


def bind_counter(counter: Any, converter: UnitConverter) -> Row:
    return (counter.count,)


def bind_histogram(histogram: Any, converter: UnitConverter) -> Row:
    return (histogram.count, *_snapshot_values(histogram.snapshot, _identity))


def bind_meter(meter: Any, converter: UnitConverter) -> Row:
    return (meter.count, *_rate_values(meter, converter), converter.rate_unit_label)


def bind_timer(timer: Any, converter: UnitConverter) -> Row:
    return (
        timer.count,
        *_snapshot_values(timer.snapshot, converter.convert_duration),
        *_rate_values(timer, converter),
        converter.rate_unit_label,
        converter.duration_unit_label,
    )


@dataclass(frozen=True)
class FamilyEncoder:
    """Column layout and row binder for one metric family."""

    family: MetricFamily
    value_columns: tuple[str, ...]
    bind: RowBinder

    @property
    def columns(self) -> tuple[str, ...]:
        return KEY_COLUMNS + self.value_columns

    def statement(self, table: str) -> sql.Composed:
        """Parameterized insert of one row into ``table``."""
        return sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values})").format(
            table=sql.Identifier(*table.split(".")),
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in self.columns),
            values=sql.SQL(", ").join(sql.Placeholder() * len(self.columns)),
        )

    def row(self, timestamp: int, name: str, metric: Any, converter: UnitConverter) -> Row:
        row = (timestamp, name, *self.bind(metric, converter))
        if len(row) != len(self.columns):
            raise ValueError(
                f"{self.family.value} row for {name} has {len(row)} values, "
                f"expected {len(self.columns)}"
            )
        return row


# Written in this order within every cycle.
ENCODERS: tuple[FamilyEncoder, ...] = (
    FamilyEncoder(MetricFamily.GAUGE, ("value",), bind_gauge),
    FamilyEncoder(MetricFamily.COUNTER, ("count",), bind_counter),
    FamilyEncoder(MetricFamily.HISTOGRAM, ("count", *SNAPSHOT_COLUMNS), bind_histogram),
    FamilyEncoder(MetricFamily.METER, ("count", *RATE_COLUMNS, "rate_unit"), bind_meter),
    FamilyEncoder(
        MetricFamily.TIMER,
        ("count", *SNAPSHOT_COLUMNS, *RATE_COLUMNS, "rate_unit", "duration_unit"),
        bind_timer,
    ),
)


@dataclass(frozen=True)
class TableNames:
    """Destination table per metric family."""

    gauge: str = "gauge_metrics"
    counter: str = "counter_metrics"
    histogram: str = "histogram_metrics"
    meter: str = "meter_metrics"
    timer: str = "timer_metrics"

    def for_family(self, family: MetricFamily) -> str:
        return getattr(self, family.value)


@dataclass(frozen=True)
class Batch:
    """One family's insert statement and the rows to execute it with."""

    family: MetricFamily
    table: str
    statement: sql.Composed
    rows: Sequence[Row]

    def execute(self, cursor: Cursor[Any]) -> int:
        """Run the statement once per row; an empty batch executes nothing."""
        if self.rows:
            cursor.executemany(self.statement, self.rows)
        logger.debug(f"Wrote {len(self.rows)} {self.family.value} rows to {self.table}")
        return len(self.rows)


class StatementBuilder:
    """Builds the per-family batches for a report cycle."""

    def __init__(
        self,
        tables: TableNames | None = None,
        converter: UnitConverter | None = None,
        metric_filter: MetricFilter = ALL,
        encoders: Sequence[FamilyEncoder] = ENCODERS,
    ) -> None:
        self.tables = tables or TableNames()
        self.converter = converter or UnitConverter()
        self.metric_filter = metric_filter
        self.encoders = tuple(encoders)

    def build(self, encoder: FamilyEncoder, timestamp: int, metrics: Mapping[str, Any]) -> Batch:
        """
        Bind one row per metric passing the filter, in name order.

        Raises:
            ValueError: If a binder produces the wrong number of values
        """
        table = self.tables.for_family(encoder.family)
        rows = [
            encoder.row(timestamp, name, metric, self.converter)
            for name, metric in sorted(metrics.items())
            if self.metric_filter(name, metric)
        ]
        return Batch(encoder.family, table, encoder.statement(table), rows)

    def build_all(self, timestamp: int, snapshot: MetricSnapshot) -> list[Batch]:
        """Every family's batch for ``snapshot``, in write order."""
        return [
            self.build(encoder, timestamp, snapshot.family(encoder.family))
            for encoder in self.encoders
        ]
