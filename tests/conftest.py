import pytest

from Planner.models import (
    AggregateFunction,
    AggregateFunctionType,
    ContinuousAggregatePolicySpec,
    ContinuousAggregateSpec,
)


class FakeResult:
    def __init__(self, rows):
        self._rows = rows

    def mappings(self):
        return self

    def all(self):
        return [dict(r) for r in self._rows]


class FakeCatalogConnection:
    """Connection stand-in that answers catalog queries by matching a fragment of the SQL text."""

    def __init__(self, responses):
        self.responses = responses
        self.executed = []
        self.closed = False
        self.rollbacks = 0
        self._in_transaction = False

    def in_transaction(self):
        return self._in_transaction

    def rollback(self):
        self.rollbacks += 1
        self._in_transaction = False

    def execute(self, statement, params=None):
        sql = str(statement)
        self.executed.append(sql)
        # autobegin, as a SQLAlchemy 2.x Connection does
        self._in_transaction = True
        for fragment, rows in self.responses.items():
            if fragment in sql:
                return FakeResult(rows)
        return FakeResult([])


@pytest.fixture
def fake_connection():
    def _make(responses=None):
        return FakeCatalogConnection(responses or {})

    return _make


@pytest.fixture
def hourly_aggregate():
    return ContinuousAggregateSpec(
        source_hypertable="metrics",
        time_bucket_width="1 hour",
        time_bucket_source_column="ts",
        aggregate_functions=[
            AggregateFunction("avg_value", AggregateFunctionType.AVG, "value"),
            AggregateFunction("max_value", AggregateFunctionType.MAX, "value"),
        ],
        group_by_columns=["device_id"],
    )


@pytest.fixture
def refresh_policy():
    return ContinuousAggregatePolicySpec(
        start_offset="1 month",
        end_offset="1 hour",
        schedule_interval="1 hour",
    )
