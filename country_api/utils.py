from dataclasses import dataclass
from typing import Optional

from country_api.schemas.country import SortOption


@dataclass
class CountryFilters:
    region: Optional[str] = None
    currency: Optional[str] = None
    sort: Optional[SortOption] = None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_query_params(
    region: Optional[str] = None,
    currency: Optional[str] = None,
    sort: Optional[str] = None,
) -> CountryFilters:
    """
    Normalize list filters: region is trimmed, currency trimmed and upper-cased,
    sort must be one of SortOption (anything else is dropped).
    """
    filters = CountryFilters(region=_clean(region))

    currency = _clean(currency)
    if currency:
        filters.currency = currency.upper()

    sort = _clean(sort)
    if sort:
        try:
            filters.sort = SortOption(sort.lower())
        except ValueError:
            pass

    return filters


def is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""
