"""Session-scoped controller wiring filter transitions to the dashboard views."""

import logging
from typing import Callable

from utils.aggregation import AggregateResult, AggregationDispatcher
from utils.config import DashboardSettings
from utils.db import DatasetStore
from utils.errors import LoadError, SpatialKeyNotFound
from utils.filters import FilterKind, FilterState, FilterStateMachine
from utils.presentation import DashboardView, style_project_features, titles_for
from utils.spatial import BoundingBox, SpatialLayerIndex

logger = logging.getLogger(__name__)


class DashboardSession:
    """
    One user's dashboard: filter state, dataset store, spatial indexes and view.

    Every filter transition runs the same sequence synchronously: titles,
    then pan/zoom, then the aggregate refresh.
    """

    def __init__(
        self,
        store: DatasetStore,
        county_index: SpatialLayerIndex | None = None,
        district_index: SpatialLayerIndex | None = None,
        settings: DashboardSettings | None = None,
        dispatcher: AggregationDispatcher | None = None,
        home_bounds: BoundingBox | None = None,
    ):
        self.settings = settings or DashboardSettings()
        self.store = store
        self.county_index = county_index or SpatialLayerIndex(name="counties")
        self.district_index = district_index or SpatialLayerIndex(name="districts")
        self.dispatcher = dispatcher or AggregationDispatcher(store, row_limit=self.settings.row_limit)
        self.home_bounds = home_bounds
        self.view = DashboardView(viewport=home_bounds)
        self.filters = FilterStateMachine(on_change=self._on_filter_change)
        self.loading = False
        self.load_attempted = False
        self._categories: dict[str, str] | None = None

    @property
    def state(self) -> FilterState:
        return self.filters.state

    # ── transitions ──────────────────────────────────────────────────────

    def select_county(self, name: str) -> FilterState:
        return self.filters.select_county(name)

    def select_district(self, number) -> FilterState:
        return self.filters.select_district(number)

    def select_project_type(self, category: str) -> FilterState:
        return self.filters.select_project_type(category)

    def clear_current(self, kind: FilterKind) -> FilterState:
        return self.filters.clear_current(kind)

    def clear_all(self) -> FilterState:
        return self.filters.clear_all()

    def _on_filter_change(self, state: FilterState, previous: FilterState) -> None:
        self._sync(state, pan=True)

    def _sync(self, state: FilterState, pan: bool) -> None:
        panel_title, table_title = titles_for(state, self.store.lookup_display_name)
        self.view.update_titles(panel_title, table_title)
        if pan:
            self._pan(state)
        self.view.apply(self.refresh(state))

    def _pan(self, state: FilterState) -> None:
        if state.kind is FilterKind.PROJECT_TYPE:
            return
        if state.kind is FilterKind.NONE:
            self.view.pan_to(self.home_bounds)
            return

        index = self._index_for(state)
        try:
            self.view.pan_to(index.bounds_for(state.value))
        except SpatialKeyNotFound as e:
            logger.warning("%s; map view left unchanged", e)

    def _index_for(self, state: FilterState) -> SpatialLayerIndex | None:
        if state.kind is FilterKind.COUNTY:
            return self.county_index
        if state.kind is FilterKind.DISTRICT:
            return self.district_index
        return None

    def selected_boundary(self) -> dict | None:
        """Outline of the selected county or district, or None when nothing is drawn."""
        index = self._index_for(self.state)
        if index is None or self.state.value not in index:
            return None
        return index.find(self.state.value).as_feature_collection()

    def refresh(self, state: FilterState | None = None) -> AggregateResult:
        state = state or self.state
        if not self.store.ready:
            return AggregateResult(state=state)
        return self.dispatcher.refresh(state)

    # ── snapshot loading ─────────────────────────────────────────────────

    def load_snapshot(self, fetch: Callable[[], bytes]) -> bool:
        """
        Fetch and load the snapshot, then redraw for the current filter.

        Args:
            fetch: Returns the snapshot bytes; may raise LoadError

        Returns:
            bool: True if the snapshot is loaded. A load already in flight is
            refused and returns False.
        """
        if self.loading:
            logger.warning("Snapshot load already in progress; ignoring request")
            return False

        self.loading = True
        self.load_attempted = True
        self.view.set_status("Loading project database...")
        try:
            self.store.load_snapshot(fetch())
        except LoadError as e:
            logger.error("Snapshot load failed: %s", e)
            self.view.set_status(f"Error: {e}", error=True)
            return False
        finally:
            self.loading = False

        self._categories = None
        total = self.store.total_record_count()
        self.view.set_status(f"Database loaded: {total:,} project records")
        self._sync(self.state, pan=False)
        return True

    # ── reference data for the controls ──────────────────────────────────

    def project_categories(self) -> dict[str, str]:
        if self._categories is None:
            self._categories = self.store.crosswalk_categories() if self.store.ready else {}
        return self._categories

    def styled_projects(self, feature_collection: dict | None) -> dict:
        return style_project_features(feature_collection, self.state, self.project_categories())
