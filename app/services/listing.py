"""
Listing - Pure filter and sort over a sale collection.

The output is fully determined by ``(sales, filters, today)``.
"""

from collections.abc import Callable, Iterable
from datetime import date
from typing import Any

from app.models.api import ListingSort, SaleWindow
from app.models.domain import ListingFilters, SaleData


def _discount(sale: SaleData) -> float:
    # Missing values rank as zero
    return sale.discount_value or 0.0


# (key, reverse) per sort order; Python's sort is stable so ties keep input order
_SORTS: dict[ListingSort, tuple[Callable[[SaleData], Any], bool]] = {
    ListingSort.DISCOUNT_HIGH: (_discount, True),
    ListingSort.DISCOUNT_LOW: (_discount, False),
    ListingSort.NEWEST: (lambda s: s.start_date, True),
    ListingSort.OLDEST: (lambda s: s.start_date, False),
    ListingSort.ENDING_SOON: (lambda s: s.end_date, False),
    ListingSort.POPULAR: (lambda s: s.view_count, True),
    ListingSort.FAVORITES: (lambda s: s.favorite_count, True),
}


def matches(sale: SaleData, filters: ListingFilters, today: date) -> bool:
    """Conjunction of the configured filters; unset filters match everything."""
    if filters.brand_id is not None and sale.brand_id != filters.brand_id:
        return False
    if filters.sale_type is not None and sale.sale_type != filters.sale_type:
        return False
    if filters.window == SaleWindow.ACTIVE and not sale.is_active(today):
        return False
    if filters.window == SaleWindow.EXPIRED and not sale.is_expired(today):
        return False
    return True


def apply_listing(
    sales: Iterable[SaleData], filters: ListingFilters, today: date
) -> list[SaleData]:
    """Filter then sort ``sales``; the input is not modified."""
    key, reverse = _SORTS[filters.sort]
    selected = [sale for sale in sales if matches(sale, filters, today)]
    return sorted(selected, key=key, reverse=reverse)
