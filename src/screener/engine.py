"""Screening Engine.

Runs a Query against an instrument snapshot: filter, stable sort,
paginate, then decorate the visible page.
"""

import math
import time
from typing import Any, Iterable, Optional
import logging

from src.logging_config.performance import log_performance
from src.screener.classification import decorate
from src.screener.config import (
    DEFAULT_SCREENER_CONFIG,
    ScreenerConfig,
    SortDirection,
    SortField,
)
from src.screener.exceptions import ValidationError
from src.screener.filters import FILTER_REGISTRY, FilterRegistry
from src.screener.models import FilterCriteria, Instrument, Query, QueryResult

logger = logging.getLogger(__name__)


_SORT_ATTRS = {
    SortField.SYMBOL: "symbol",
    SortField.NAME: "name",
    SortField.SECTOR: "sector",
    SortField.PRICE: "price",
    SortField.CHANGE: "change",
    SortField.CHANGE_PERCENT: "change_percent",
    SortField.VOLUME: "volume",
    SortField.MARKET_CAP: "market_cap",
    SortField.RSI: "rsi",
    SortField.PRICE_TO_EQUILIBRIUM: "price_to_equilibrium",
    SortField.TREND: "trend",
    SortField.SIGNAL: "signal",
}


def sort_key(instrument: Instrument, sort_field: SortField) -> Any:
    """Comparable value of `sort_field`: numbers as-is, categories by wire value."""
    value = getattr(instrument, _SORT_ATTRS[SortField(sort_field)])
    if hasattr(value, "value"):
        return value.value
    return value


def sort_instruments(
    instruments: Iterable[Instrument],
    sort_field: SortField,
    direction: SortDirection = SortDirection.ASC,
) -> list[Instrument]:
    """Stable sort; ties keep their incoming relative order in both directions."""
    reverse = SortDirection(direction) == SortDirection.DESC
    return sorted(instruments, key=lambda i: sort_key(i, sort_field), reverse=reverse)


def paginate(items: list, page: int, page_size: int) -> list:
    """1-based page slice. A page past the end is empty."""
    if page < 1 or page_size < 1:
        raise ValidationError(f"page and page_size must be >= 1, got {page}/{page_size}")
    start = (page - 1) * page_size
    return items[start:start + page_size]


def total_pages(total_count: int, page_size: int) -> int:
    return math.ceil(total_count / page_size) if total_count else 0


class ScreenerEngine:
    """Stateless filter -> sort -> paginate pipeline.

    Example:
        engine = ScreenerEngine()
        result = engine.apply_query(instruments, Query(page=2, page_size=10))
        print(f"{result.total_count} matches over {result.total_pages} pages")
    """

    def __init__(
        self,
        config: Optional[ScreenerConfig] = None,
        filter_registry: Optional[FilterRegistry] = None,
    ):
        self.config = config or DEFAULT_SCREENER_CONFIG
        self.filter_registry = filter_registry or FILTER_REGISTRY

    def default_query(self) -> Query:
        return Query(
            sort_field=self.config.default_sort_field,
            sort_direction=self.config.default_sort_direction,
            page_size=self.config.default_page_size,
        )

    def filter(self, instruments: Iterable[Instrument], criteria: FilterCriteria) -> list[Instrument]:
        return self.filter_registry.apply(instruments, criteria)

    @log_performance(threshold_ms=250)
    def apply_query(self, instruments: Iterable[Instrument], query: Query) -> QueryResult:
        """Run a query against a snapshot.

        Args:
            instruments: Full instrument collection, in data-source order.
            query: Criteria, sort and page window.

        Returns:
            QueryResult with the visible page, its decorated rows and totals.
        """
        if query.page_size > self.config.max_page_size:
            raise ValidationError(
                f"pageSize {query.page_size} exceeds maximum {self.config.max_page_size}",
                field="pageSize",
            )
        start_time = time.time()
        universe = list(instruments)

        matches = self.filter(universe, query.criteria)
        ordered = sort_instruments(matches, query.sort_field, query.sort_direction)
        page = paginate(ordered, query.page, query.page_size)

        result = QueryResult(
            page=page,
            rows=[decorate(i) for i in page],
            total_count=len(ordered),
            total_pages=total_pages(len(ordered), query.page_size),
            page_number=query.page,
            page_size=query.page_size,
            universe_size=len(universe),
            execution_time_ms=(time.time() - start_time) * 1000,
        )
        logger.debug(
            "Query matched %d/%d instruments, page %d/%d",
            result.total_count, result.universe_size, result.page_number, result.total_pages,
        )
        return result

    def filter_for_export(self, instruments: Iterable[Instrument], criteria: FilterCriteria) -> list[Instrument]:
        """Filtered set in default sort order, capped at the export row limit."""
        matches = sort_instruments(
            self.filter(instruments, criteria),
            self.config.default_sort_field,
            self.config.default_sort_direction,
        )
        if len(matches) > self.config.export_row_limit:
            logger.warning(
                "Export truncated to %d of %d rows", self.config.export_row_limit, len(matches)
            )
        return matches[:self.config.export_row_limit]
