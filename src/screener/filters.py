"""Filter Predicate Set.

One predicate per FilterCriteria dimension. The composite match is the
logical AND of every predicate whose constraint is active.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional
import logging

from src.screener.classification import equilibrium_zone
from src.screener.config import (
    PRICE_CEILING,
    PRICE_FLOOR,
    RSI_CEILING,
    RSI_FLOOR,
    FilterField,
)
from src.screener.models import FilterCriteria, Instrument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterPredicate:
    """A single filter dimension."""
    name: str
    fields: tuple[FilterField, ...]
    is_active: Callable[[FilterCriteria], bool]
    test: Callable[[Instrument, FilterCriteria], bool]

    def matches(self, instrument: Instrument, criteria: FilterCriteria) -> bool:
        """True when the dimension is unconstrained or the instrument passes it."""
        return not self.is_active(criteria) or self.test(instrument, criteria)


# =============================================================================
# Predicates
# =============================================================================

def _search_active(c: FilterCriteria) -> bool:
    return bool(c.search_term)


def _search_test(i: Instrument, c: FilterCriteria) -> bool:
    term = c.search_term.lower()
    return term in i.symbol.lower() or term in i.name.lower()


def _range_active(low: float, high: float, floor: float, ceiling: float) -> bool:
    return low > floor or high < ceiling or low > high


def _range_test(value: float, low: float, high: float, floor: float, ceiling: float) -> bool:
    if low > high:
        return False
    if low > floor and not value >= low:
        return False
    if high < ceiling and not value <= high:
        return False
    return True


def _membership(attr: str, field_id: FilterField) -> FilterPredicate:
    return FilterPredicate(
        name=field_id.value,
        fields=(field_id,),
        is_active=lambda c: bool(c.get(field_id)),
        test=lambda i, c: getattr(i, attr) in c.get(field_id),
    )


SEARCH = FilterPredicate(
    name="search",
    fields=(FilterField.SEARCH_TERM,),
    is_active=_search_active,
    test=_search_test,
)

SECTOR = _membership("sector", FilterField.SECTORS)

RSI_RANGE = FilterPredicate(
    name="rsi",
    fields=(FilterField.RSI_MIN, FilterField.RSI_MAX),
    is_active=lambda c: _range_active(c.rsi_min, c.rsi_max, RSI_FLOOR, RSI_CEILING),
    test=lambda i, c: _range_test(i.rsi, c.rsi_min, c.rsi_max, RSI_FLOOR, RSI_CEILING),
)

PRICE_RANGE = FilterPredicate(
    name="price",
    fields=(FilterField.PRICE_MIN, FilterField.PRICE_MAX),
    is_active=lambda c: _range_active(c.price_min, c.price_max, PRICE_FLOOR, PRICE_CEILING),
    test=lambda i, c: _range_test(i.price, c.price_min, c.price_max, PRICE_FLOOR, PRICE_CEILING),
)

VOLUME_PROFILE = _membership("volume_profile", FilterField.VOLUME_PROFILE)
SIGNAL = _membership("signal", FilterField.SIGNALS)
TREND = _membership("trend", FilterField.TREND)

EQUILIBRIUM = FilterPredicate(
    name="equilibriumZone",
    fields=(FilterField.EQUILIBRIUM_ZONE,),
    is_active=lambda c: bool(c.equilibrium_zone),
    test=lambda i, c: equilibrium_zone(i.price_to_equilibrium) in c.equilibrium_zone,
)


# =============================================================================
# Registry
# =============================================================================

class FilterRegistry:
    """Ordered set of filter predicates.

    Example:
        registry = FilterRegistry()
        matching = registry.apply(instruments, criteria)
    """

    def __init__(self, predicates: Optional[Iterable[FilterPredicate]] = None):
        self._predicates: dict[str, FilterPredicate] = {}
        for predicate in predicates if predicates is not None else BUILTIN_PREDICATES:
            self.register(predicate)

    def register(self, predicate: FilterPredicate) -> None:
        self._predicates[predicate.name] = predicate

    def get_predicate(self, name: str) -> Optional[FilterPredicate]:
        return self._predicates.get(name)

    def get_all_predicates(self) -> list[FilterPredicate]:
        return list(self._predicates.values())

    def active_predicates(self, criteria: FilterCriteria) -> list[FilterPredicate]:
        return [p for p in self._predicates.values() if p.is_active(criteria)]

    def matches(self, instrument: Instrument, criteria: FilterCriteria) -> bool:
        return all(p.test(instrument, criteria) for p in self.active_predicates(criteria))

    def apply(self, instruments: Iterable[Instrument], criteria: FilterCriteria) -> list[Instrument]:
        """Instruments passing every active predicate, in their original order."""
        active = self.active_predicates(criteria)
        if not active:
            return list(instruments)
        return [i for i in instruments if all(p.test(i, criteria) for p in active)]


BUILTIN_PREDICATES = (
    SEARCH,
    SECTOR,
    RSI_RANGE,
    PRICE_RANGE,
    VOLUME_PROFILE,
    SIGNAL,
    TREND,
    EQUILIBRIUM,
)

# Global registry instance
FILTER_REGISTRY = FilterRegistry()
