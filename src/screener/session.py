"""Screener Session.

Interactive state behind a presentation shell: the current Query, the
instrument snapshot it runs against, and the persisted filter mirror and
presets. Every edit is validated before state changes; every criteria
change is mirrored to the durable store.
"""

import asyncio
import logging
from typing import Any, Optional

from src.logging_config.context import LogContext
from src.logging_config.performance import PerformanceTimer
from src.screener.config import FilterField, ScreenerConfig, SortField
from src.screener.client import DataSource, HttpDataSource
from src.screener.engine import ScreenerEngine
from src.screener.exceptions import ValidationError
from src.screener.models import FilterCriteria, FilterPreset, FilterUpdate, Instrument, Query, QueryResult
from src.screener.presets import FilterConfigStore, PresetStore
from src.screener.storage import KeyValueStore, MemoryStore, create_store

logger = logging.getLogger(__name__)

_RSI_FIELDS = (FilterField.RSI_MIN, FilterField.RSI_MAX)
_PRICE_FIELDS = (FilterField.PRICE_MIN, FilterField.PRICE_MAX)


class ScreenerSession:
    """One user's screening session.

    Example:
        session = ScreenerSession(StaticDataSource(instruments))
        await session.reload()
        session.update_filter(FilterField.RSI_MAX, 30)
        session.sort_by(SortField.PRICE_TO_EQUILIBRIUM)
        result = session.view()
    """

    def __init__(
        self,
        source: DataSource,
        store: Optional[KeyValueStore] = None,
        engine: Optional[ScreenerEngine] = None,
    ):
        self.source = source
        self.engine = engine or ScreenerEngine()
        store = store if store is not None else MemoryStore()
        self.config_store = FilterConfigStore(store)
        self.preset_store = PresetStore(store)

        self.query: Query = self.engine.default_query().with_criteria(self.config_store.load_or_default())
        self.instruments: list[Instrument] = []
        self.sectors: list[str] = []

        self._generation = 0
        self._inflight: Optional[asyncio.Task] = None

    @property
    def criteria(self) -> FilterCriteria:
        return self.query.criteria

    def _set_query(self, query: Query) -> None:
        if query.criteria != self.query.criteria:
            self.config_store.save(query.criteria)
        self.query = query

    # =========================================================================
    # Filter / sort / page edits
    # =========================================================================

    def _apply_updates(self, updates: list[FilterUpdate]) -> None:
        """Apply edits together; ranges are checked once, on the combined result."""
        query = self.query
        for update in updates:
            query = query.with_filter(update)
        candidate = query.criteria
        touched = {u.field for u in updates}
        if touched & set(_RSI_FIELDS) and candidate.rsi_range_degenerate:
            raise ValidationError(
                f"rsiMin {candidate.rsi_min} exceeds rsiMax {candidate.rsi_max}", field=FilterField.RSI_MIN.value,
            )
        if touched & set(_PRICE_FIELDS) and candidate.price_range_degenerate:
            raise ValidationError(
                f"priceMin {candidate.price_min} exceeds priceMax {candidate.price_max}",
                field=FilterField.PRICE_MIN.value,
            )
        self._set_query(query)

    def update_filter(self, field_id: FilterField, value: Any) -> Query:
        """Replace one filter field.

        Raises:
            ValidationError: wrong value shape, or a min/max edit that would
                leave min above max. State is unchanged.
        """
        self._apply_updates([FilterUpdate(field_id, value)])
        return self.query

    def update_filters(self, values: dict[FilterField, Any]) -> Query:
        """Replace several filter fields in one step.

        A min/max pair is validated as a whole, so both bounds may move past
        each other's previous value.

        Raises:
            ValidationError: any value is malformed, or the combined ranges
                leave min above max. State is unchanged.
        """
        self._apply_updates([FilterUpdate(f, v) for f, v in values.items()])
        return self.query

    def toggle_filter_value(self, field_id: FilterField, value: Any) -> Query:
        """Add `value` to a multi-select filter, or remove it if present."""
        self._apply_updates([FilterUpdate.toggle(self.query.criteria, field_id, value)])
        return self.query

    def set_search_term(self, term: str) -> Query:
        return self.update_filter(FilterField.SEARCH_TERM, term)

    def reset_filters(self) -> Query:
        self.config_store.clear()
        self.query = self.query.with_criteria(FilterCriteria()).with_page(1)
        return self.query

    def sort_by(self, sort_field: SortField) -> Query:
        try:
            sort_field = SortField(sort_field)
        except ValueError:
            raise ValidationError(f"Unknown sort field: {sort_field!r}", field="sortField") from None
        self.query = self.query.toggle_sort(sort_field)
        return self.query

    def go_to_page(self, page: int) -> Query:
        self.query = self.query.with_page(page)
        return self.query

    def set_page_size(self, page_size: int) -> Query:
        if isinstance(page_size, int) and page_size > self.engine.config.max_page_size:
            raise ValidationError(
                f"pageSize {page_size} exceeds maximum {self.engine.config.max_page_size}", field="pageSize",
            )
        self.query = self.query.with_page_size(page_size)
        return self.query

    def view(self) -> QueryResult:
        """Run the current query against the current snapshot."""
        with LogContext(operation="view", page=self.query.page):
            return self.engine.apply_query(self.instruments, self.query)

    # =========================================================================
    # Data source
    # =========================================================================

    async def _fetch(self) -> tuple[list[Instrument], list[str]]:
        with PerformanceTimer("fetch_snapshot"):
            return await asyncio.gather(self.source.list_instruments(), self.source.list_sectors())

    async def reload(self) -> bool:
        """Fetch a fresh snapshot. The most recently started reload wins.

        Starting a reload cancels any reload still in flight; a superseded
        reload returns False and leaves the snapshot untouched.

        Raises:
            DataSourceError: the current (not superseded) fetch failed.
        """
        self._generation += 1
        generation = self._generation
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()

        task = asyncio.ensure_future(self._fetch())
        self._inflight = task
        try:
            with LogContext(operation="reload", generation=generation):
                instruments, sectors = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.debug("Reload %d superseded before completion", generation)
                return False
            raise
        except Exception:
            if generation != self._generation:
                logger.debug("Discarding failure of superseded reload %d", generation)
                return False
            raise
        finally:
            if self._inflight is task:
                self._inflight = None

        if generation != self._generation:
            logger.debug("Discarding stale snapshot from reload %d", generation)
            return False
        self.instruments = instruments
        self.sectors = sectors
        logger.info("Loaded %d instruments across %d sectors", len(instruments), len(sectors))
        return True

    async def refresh(self) -> bool:
        """Ask the data source to refresh upstream, then reload."""
        await self.source.trigger_refresh()
        return await self.reload()

    async def export(self) -> bytes:
        """CSV of the full filtered set. Failures propagate; the query is untouched."""
        with LogContext(operation="export"):
            return await self.source.export_filtered(self.query.criteria)

    # =========================================================================
    # Presets
    # =========================================================================

    def list_presets(self) -> list[FilterPreset]:
        return self.preset_store.list_presets()

    def save_preset(self, name: str, description: str = "") -> FilterPreset:
        """Save the current criteria under `name`.

        Raises:
            ValidationError: empty name.
        """
        return self.preset_store.save(name, description, self.query.criteria)

    def update_preset(self, preset_id: str, name: str, description: str = "") -> Optional[FilterPreset]:
        """Overwrite a preset with the current criteria."""
        return self.preset_store.update(preset_id, name, description, self.query.criteria)

    def delete_preset(self, preset_id: str) -> bool:
        return self.preset_store.delete(preset_id)

    def load_preset(self, preset_id: str) -> Optional[Query]:
        """Replace the criteria with a preset's. Page returns to 1; sort is kept.

        Returns:
            The new query, or None if the preset does not exist.
        """
        criteria = self.preset_store.load(preset_id)
        if criteria is None:
            logger.warning("Preset %s not found", preset_id)
            return None
        with LogContext(preset_id=preset_id):
            self._set_query(self.query.with_criteria(criteria).with_page(1))
            logger.info("Loaded preset %s", preset_id)
        return self.query


def create_session(settings, source: Optional[DataSource] = None) -> ScreenerSession:
    """Session wired from Settings: configured store and HTTP source."""
    engine = ScreenerEngine(ScreenerConfig(
        default_page_size=settings.default_page_size,
        default_sort_field=SortField(settings.default_sort_field),
    ))
    return ScreenerSession(
        source=source or HttpDataSource.from_settings(settings),
        store=create_store(settings),
        engine=engine,
    )
