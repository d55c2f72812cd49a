"""
Merge a REST Countries record with the exchange-rate table.

``estimated_gdp`` is a synthetic placeholder, not an economic figure:
population times a random multiplier in [1000, 2000), divided by the
exchange rate. The multiplier source can be swapped for tests.
"""
import random
from typing import Callable, Dict, List, Optional

from country_api.schemas.country import CountryData, Currency, RawCountry

GDP_MULTIPLIER_MIN = 1000
GDP_MULTIPLIER_MAX = 2000


def random_multiplier(min_value: float = GDP_MULTIPLIER_MIN, max_value: float = GDP_MULTIPLIER_MAX) -> float:
    """Uniform draw from [min_value, max_value)"""
    return min_value + random.random() * (max_value - min_value)


def extract_currency_code(currencies: Optional[List[Currency]]) -> Optional[str]:
    """Extract first currency code from currencies array"""
    if not currencies:
        return None
    return currencies[0].code or None


def calculate_estimated_gdp(
    population: int,
    exchange_rate: float,
    multiplier: Callable[[], float] = random_multiplier,
) -> float:
    """Calculate estimated GDP"""
    return (population * multiplier()) / exchange_rate


def process_country_data(
    country: RawCountry,
    exchange_rates: Dict[str, float],
    multiplier: Callable[[], float] = random_multiplier,
) -> CountryData:
    """Process and transform country data"""
    currency_code = extract_currency_code(country.currencies)

    exchange_rate = exchange_rates.get(currency_code) if currency_code else None
    if exchange_rate is not None and exchange_rate <= 0:
        exchange_rate = None

    estimated_gdp = None
    if exchange_rate is not None:
        estimated_gdp = calculate_estimated_gdp(country.population, exchange_rate, multiplier)

    return CountryData(
        name=country.name,
        capital=country.capital or None,
        region=country.region or None,
        population=country.population,
        currency_code=currency_code,
        exchange_rate=exchange_rate,
        estimated_gdp=estimated_gdp,
        flag_url=country.flag or None,
    )


def format_gdp(gdp: float) -> str:
    """Human-readable GDP, e.g. ``$1.23B``"""
    if gdp >= 1_000_000_000_000:
        return f"${gdp / 1_000_000_000_000:.2f}T"
    if gdp >= 1_000_000_000:
        return f"${gdp / 1_000_000_000:.2f}B"
    if gdp >= 1_000_000:
        return f"${gdp / 1_000_000:.2f}M"
    return f"${gdp:.2f}"
