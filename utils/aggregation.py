"""Turns the active filter into the three dataset queries behind the views."""

import logging
from dataclasses import dataclass, field

import pandas as pd

from utils.db import DEFAULT_ROW_LIMIT, DatasetStore
from utils.filters import FilterState

logger = logging.getLogger(__name__)


@dataclass
class AggregateResult:
    """Counts, year series and row set for one filter state."""

    state: FilterState = field(default_factory=FilterState.none)
    awarded: int = 0
    current: int = 0
    years: list[tuple[int, int]] = field(default_factory=list)
    rows: pd.DataFrame = field(default_factory=pd.DataFrame)

    @property
    def total(self) -> int:
        return self.awarded + self.current

    @property
    def year_data(self) -> dict[int, int]:
        return dict(self.years)

    @property
    def is_empty(self) -> bool:
        """True when the filter matched nothing; every view shows its no-data state."""
        return self.total == 0 and not self.years and self.rows.empty

    def same_as(self, other: "AggregateResult") -> bool:
        return (
            self.state == other.state
            and self.awarded == other.awarded
            and self.current == other.current
            and self.years == other.years
            and self.rows.equals(other.rows)
        )


class AggregationDispatcher:
    """Runs the awarded/current, per-year and row queries for a filter state."""

    def __init__(self, store: DatasetStore, row_limit: int = DEFAULT_ROW_LIMIT):
        self.store = store
        self.row_limit = row_limit

    def refresh(self, state: FilterState) -> AggregateResult:
        """
        Query all three aggregates for ``state``, in order.

        Each query runs on its own: a failure in one only empties that part
        of the result.
        """
        result = AggregateResult(state=state)

        counts = self._run("awarded vs current", state, self.store.query_awarded_vs_current)
        if counts is not None:
            result.awarded, result.current = counts

        years = self._run("counts by year", state, self.store.query_counts_by_year)
        if years is not None:
            result.years = list(years)

        rows = self._run("rows", state, lambda s: self.store.query_rows(s, limit=self.row_limit))
        if rows is not None:
            result.rows = rows

        if result.is_empty:
            logger.info("No projects match %s", state.describe())
        else:
            logger.debug(
                "%s: %d awarded, %d current, %d years, %d rows",
                state.describe(), result.awarded, result.current, len(result.years), len(result.rows),
            )
        return result

    @staticmethod
    def _run(label: str, state: FilterState, query):
        try:
            return query(state)
        except Exception:
            logger.exception("Query %s failed for %s", label, state.describe())
            return None
