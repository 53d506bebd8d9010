"""DuckDB-backed dataset store for the highway plan snapshot."""

import logging
import os
import tempfile
import weakref

import duckdb
import pandas as pd

from utils.errors import LoadError, QueryFallbackUsed
from utils.fields import (
    AWARDED,
    AWARDED_COLUMN,
    AWARDED_VALUES,
    COUNT,
    COUNTY_COLUMN,
    CURRENT,
    DISTRICT_COLUMN,
    TYPE_WORK_COLUMN,
    YEAR,
    YEAR_COLUMN,
    canonicalize_frame,
    district_label,
    parse_district_number,
    to_int,
)
from utils.filters import MAX_DISTRICT, MIN_DISTRICT, FilterKind, FilterState

logger = logging.getLogger(__name__)

SQLITE_HEADER = b"SQLite format 3\x00"
DUCKDB_MAGIC = b"DUCK"

BASE_TABLE = "Basic_Project_Info"
DEFAULT_ROW_LIMIT = 1000

_AWARDED_LIST = ", ".join(f"'{v}'" for v in AWARDED_VALUES)
AWARDED_PREDICATE = f"upper(trim(CAST(b.{AWARDED_COLUMN} AS VARCHAR))) IN ({_AWARDED_LIST})"

# Pre-aggregated views, keyed by filter kind: (view, filter column)
AWARDED_VIEWS = {
    FilterKind.NONE: ("ProjectsAwarded", None),
    FilterKind.COUNTY: ("ProjectsAwarded_ByCounty", COUNTY_COLUMN),
    FilterKind.DISTRICT: ("ProjectsAwarded_ByDistrict", DISTRICT_COLUMN),
    FilterKind.PROJECT_TYPE: ("ProjectsAwarded_ByProjectType", "dropdown_category"),
}

YEAR_VIEWS = {
    FilterKind.NONE: ("ProjectCount_Year", None),
    FilterKind.COUNTY: ("ProjectYears_ByCounty", COUNTY_COLUMN),
    FilterKind.DISTRICT: ("ProjectYears_ByDistrict", DISTRICT_COLUMN),
    FilterKind.PROJECT_TYPE: ("ProjectYears_ByProjectType", "dropdown_category"),
}

# Base-table predicates used by the fallback and row queries
BASE_PREDICATES = {
    FilterKind.NONE: None,
    FilterKind.COUNTY: f"b.{COUNTY_COLUMN} = ?",
    FilterKind.DISTRICT: f"b.{DISTRICT_COLUMN} = ?",
    FilterKind.PROJECT_TYPE: (
        f"b.{TYPE_WORK_COLUMN} IN "
        "(SELECT c.raw_project_type FROM crosswalk c WHERE c.dropdown_category = ?)"
    ),
}


def filter_parameter(state: FilterState):
    """The value bound to a query for ``state``, in the snapshot's own format."""
    if state.kind is FilterKind.DISTRICT:
        return district_label(state.value)
    return state.value


class DatasetStore:
    """
    Read-only relational snapshot loaded once per session.

    Every query method follows the same policy: try the pre-aggregated view
    for the filter kind, fall back to an equivalent aggregation over
    ``Basic_Project_Info`` when the view is missing, and degrade to an empty
    result if that fails too. Nothing raised by DuckDB escapes a query.
    """

    def __init__(self, min_plan_year: int | None = None):
        self.min_plan_year = min_plan_year
        self.fallbacks: list[QueryFallbackUsed] = []
        self._conn = None
        self._snapshot_path = None
        self._finalizer = None

    @property
    def ready(self) -> bool:
        return self._conn is not None

    # ── loading ──────────────────────────────────────────────────────────

    def load_snapshot(self, data: bytes) -> None:
        """
        Load a snapshot from raw bytes.

        Args:
            data: Contents of a DuckDB or SQLite database file

        Raises:
            LoadError: Bytes are not a usable snapshot. Any snapshot loaded
                earlier stays queryable.
        """
        if not data:
            raise LoadError("Snapshot is empty")

        if data.startswith(SQLITE_HEADER):
            snapshot_format = "sqlite"
        elif data[8:12] == DUCKDB_MAGIC:
            snapshot_format = "duckdb"
        else:
            raise LoadError("Not a valid snapshot: unrecognized database header")

        fd, path = tempfile.mkstemp(suffix=f".{snapshot_format}")
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)

        conn = None
        try:
            if snapshot_format == "sqlite":
                conn = duckdb.connect()
                conn.execute("""
                    INSTALL sqlite;
                    LOAD sqlite;
                """)
                escaped = path.replace("'", "''")
                conn.execute(f"ATTACH '{escaped}' AS snapshot (TYPE sqlite, READ_ONLY)")
                conn.execute("USE snapshot")
            else:
                conn = duckdb.connect(database=path, read_only=True)

            total = conn.execute(f"SELECT COUNT(*) FROM {BASE_TABLE}").fetchone()[0]
        except duckdb.Error as e:
            if conn is not None:
                conn.close()
            _remove_quietly(path)
            raise LoadError(f"Not a valid snapshot: {e}") from e

        self.close()
        self._conn = conn
        self._snapshot_path = path
        # Releases the connection and temp file when the store is garbage
        # collected without close(), e.g. when a browser session ends
        self._finalizer = weakref.finalize(self, _release, conn, path)
        self.fallbacks = []
        logger.info("Loaded %s snapshot with %d project records", snapshot_format, total)

    def close(self) -> None:
        if self._finalizer is not None:
            self._finalizer()
            self._finalizer = None
        self._conn = None
        self._snapshot_path = None

    # ── low-level query helpers ──────────────────────────────────────────

    def _fetchdf(self, query: str, params=None) -> pd.DataFrame:
        if self._conn is None:
            raise LoadError("Snapshot not loaded")
        return self._conn.execute(query, params or []).fetchdf()

    def _with_fallback(self, label: str, view: str, primary, fallback):
        """Run ``primary``; on failure record the fallback and run ``fallback``."""
        try:
            return primary()
        except duckdb.Error as e:
            event = QueryFallbackUsed(query=label, view=view, reason=str(e).splitlines()[0])
            if event not in self.fallbacks:
                self.fallbacks.append(event)
            logger.info("View %s unavailable for %s, using base table: %s", view, label, event.reason)
        return fallback()

    def _base_where(self, state: FilterState, extra: list[str] | None = None):
        clauses = []
        params = []
        predicate = BASE_PREDICATES[state.kind]
        if predicate:
            clauses.append(predicate)
            params.append(filter_parameter(state))
        clauses.extend(extra or [])
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    # ── aggregate queries ────────────────────────────────────────────────

    def query_awarded_vs_current(self, state: FilterState) -> tuple[int, int]:
        """
        Count awarded and current projects for a filter.

        Returns:
            (awarded, current) non-negative ints; (0, 0) when nothing matches
            or both the view and the fallback fail
        """
        view, column = AWARDED_VIEWS[state.kind]

        def primary():
            query = f"SELECT * FROM {view}"
            params = []
            if column:
                query += f" WHERE {column} = ?"
                params.append(filter_parameter(state))
            rows = canonicalize_frame(self._fetchdf(query, params))
            if not rows:
                return 0, 0
            return to_int(rows[0][AWARDED]), to_int(rows[0][CURRENT])

        def fallback():
            where, params = self._base_where(state)
            query = f"""
            SELECT
                COUNT(*) FILTER (WHERE {AWARDED_PREDICATE}) AS Awarded,
                COUNT(*) AS total
            FROM {BASE_TABLE} b
            {where}
            """
            df = self._fetchdf(query, params)
            awarded = to_int(df["Awarded"].iloc[0])
            return awarded, to_int(df["total"].iloc[0]) - awarded

        try:
            awarded, current = self._with_fallback("awarded vs current", view, primary, fallback)
        except (duckdb.Error, LoadError) as e:
            logger.warning("Awarded/current query failed for %s: %s", state.describe(), e)
            return 0, 0
        return max(awarded, 0), max(current, 0)

    def query_counts_by_year(self, state: FilterState) -> list[tuple[int, int]]:
        """Projects per plan year, ascending by year."""
        view, column = YEAR_VIEWS[state.kind]

        def primary():
            query = f"SELECT * FROM {view}"
            params = []
            if column:
                query += f" WHERE {column} = ?"
                params.append(filter_parameter(state))
            return self._fetchdf(query, params)

        def fallback():
            extra = []
            year_params = []
            if self.min_plan_year is not None:
                extra.append(f"b.{YEAR_COLUMN} >= ?")
                year_params.append(self.min_plan_year)
            where, params = self._base_where(state, extra)
            query = f"""
            SELECT b.{YEAR_COLUMN} AS YEAR, COUNT(*) AS record_count
            FROM {BASE_TABLE} b
            {where}
            GROUP BY b.{YEAR_COLUMN}
            """
            return self._fetchdf(query, params + year_params)

        try:
            df = self._with_fallback("counts by year", view, primary, fallback)
        except (duckdb.Error, LoadError) as e:
            logger.warning("Year count query failed for %s: %s", state.describe(), e)
            return []

        series = {}
        for row in canonicalize_frame(df):
            year = to_int(row[YEAR], default=None)
            count = to_int(row[COUNT], default=None)
            if year is None or count is None:
                continue
            series[year] = series.get(year, 0) + count
        return sorted(series.items())

    def query_rows(self, state: FilterState, limit: int = DEFAULT_ROW_LIMIT) -> pd.DataFrame:
        """Project records for the table, filtered like the aggregates and capped at ``limit``."""
        where, params = self._base_where(state)
        query = f"""
        SELECT b.*
        FROM {BASE_TABLE} b
        {where}
        LIMIT {max(int(limit), 0)}
        """
        try:
            return self._fetchdf(query, params)
        except (duckdb.Error, LoadError) as e:
            logger.warning("Row query failed for %s: %s", state.describe(), e)
            return pd.DataFrame()

    # ── reference lookups ────────────────────────────────────────────────

    def lookup_display_name(self, category: str) -> str:
        """Human-readable label for a crosswalk category; the key itself when unknown."""
        if not category:
            return category
        query = """
        SELECT DISTINCT dropdown_display_name
        FROM crosswalk
        WHERE dropdown_category = ?
        LIMIT 1
        """
        try:
            df = self._fetchdf(query, [category])
        except (duckdb.Error, LoadError) as e:
            logger.warning("Display name lookup failed for %r: %s", category, e)
            return category
        if df.empty or pd.isna(df.iloc[0, 0]) or not str(df.iloc[0, 0]).strip():
            return category
        return str(df.iloc[0, 0])

    def list_counties(self) -> list[str]:
        query = f"""
        SELECT DISTINCT {COUNTY_COLUMN}
        FROM {BASE_TABLE}
        WHERE {COUNTY_COLUMN} IS NOT NULL AND {COUNTY_COLUMN} != ''
        ORDER BY {COUNTY_COLUMN}
        """
        try:
            return [str(v) for v in self._fetchdf(query)[COUNTY_COLUMN]]
        except (duckdb.Error, LoadError, KeyError) as e:
            logger.warning("County list unavailable: %s", e)
            return []

    def list_districts(self) -> list[int]:
        """District numbers from the district reference table, else from project records."""
        values = []
        try:
            columns = [d[0] for d in self._conn.execute("SELECT * FROM KYTC_Districts LIMIT 0").description]
            column = next((c for c in ("Name", "DISTRICT", "district") if c in columns), None)
            if column is None:
                raise LoadError(f"No district column in KYTC_Districts: {columns}")
            values = list(self._fetchdf(
                f'SELECT DISTINCT "{column}" AS value FROM KYTC_Districts WHERE "{column}" IS NOT NULL'
            )["value"])
        except (duckdb.Error, LoadError, AttributeError) as e:
            logger.info("KYTC_Districts unavailable, reading districts from %s: %s", BASE_TABLE, e)
            try:
                values = list(self._fetchdf(
                    f"SELECT DISTINCT {DISTRICT_COLUMN} AS value FROM {BASE_TABLE} "
                    f"WHERE {DISTRICT_COLUMN} IS NOT NULL"
                )["value"])
            except (duckdb.Error, LoadError) as e2:
                logger.warning("District list unavailable: %s", e2)
                return []

        numbers = {parse_district_number(v) for v in values}
        return sorted(n for n in numbers if n is not None and MIN_DISTRICT <= n <= MAX_DISTRICT)

    def list_project_types(self) -> list[tuple[str, str]]:
        query = """
        SELECT DISTINCT dropdown_category, dropdown_display_name
        FROM crosswalk
        WHERE dropdown_category IS NOT NULL
        ORDER BY dropdown_category
        """
        try:
            df = self._fetchdf(query)
        except (duckdb.Error, LoadError) as e:
            logger.warning("Project type list unavailable: %s", e)
            return []
        options = {}
        for category, display in df.itertuples(index=False):
            if category not in options:
                options[category] = display if isinstance(display, str) and display.strip() else category
        return list(options.items())

    def crosswalk_categories(self) -> dict[str, str]:
        """Raw work-type code -> category. Codes are matched case-sensitively."""
        try:
            df = self._fetchdf("SELECT raw_project_type, dropdown_category FROM crosswalk")
        except (duckdb.Error, LoadError) as e:
            logger.warning("Crosswalk unavailable: %s", e)
            return {}
        return {
            raw: category
            for raw, category in df.itertuples(index=False)
            if isinstance(raw, str) and pd.notna(category)
        }

    def total_record_count(self) -> int:
        try:
            return to_int(self._fetchdf(f"SELECT COUNT(*) AS n FROM {BASE_TABLE}")["n"].iloc[0])
        except (duckdb.Error, LoadError) as e:
            logger.warning("Record count unavailable: %s", e)
            return 0


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove temporary snapshot %s: %s", path, e)


def _release(conn, path: str) -> None:
    conn.close()
    _remove_quietly(path)
