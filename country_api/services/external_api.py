import httpx
import logging
from typing import Any, Dict, List, Optional
from pydantic import TypeAdapter, ValidationError

from country_api.config import get_settings
from country_api.exceptions import ExternalAPIError, MalformedResponseError
from country_api.schemas.country import ExchangeRateResponse, RawCountry

logger = logging.getLogger(__name__)
settings = get_settings()

API_TIMEOUT = 10.0
HEALTH_CHECK_TIMEOUT = 5.0

COUNTRIES_SOURCE = "REST Countries API"
EXCHANGE_RATE_SOURCE = "Exchange Rate API"

_countries_adapter = TypeAdapter(List[RawCountry])


async def get_http_client():
    """Dependency to provide an HTTP client shared by the calls of one request."""
    async with httpx.AsyncClient(timeout=API_TIMEOUT) as client:
        yield client


async def _get_json(client: httpx.AsyncClient, url: str, source: str, timeout: float = API_TIMEOUT) -> Any:
    try:
        response = await client.get(url, timeout=timeout)
        response.raise_for_status()
        return response.json()
    except httpx.TimeoutException:
        raise ExternalAPIError(source, "Request timed out")
    except httpx.HTTPStatusError as e:
        raise ExternalAPIError(source, f"HTTP {e.response.status_code}")
    except httpx.HTTPError as e:
        raise ExternalAPIError(source, str(e) or e.__class__.__name__)
    except ValueError:
        raise MalformedResponseError(source, "Response body is not valid JSON")


async def fetch_countries(client: httpx.AsyncClient, url: Optional[str] = None) -> List[RawCountry]:
    """Fetch all countries from REST Countries API"""
    url = url or settings.countries_api_url
    logger.info("📡 Fetching countries from REST Countries API...")
    data = await _get_json(client, url, COUNTRIES_SOURCE)

    try:
        countries = _countries_adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedResponseError(COUNTRIES_SOURCE, f"Unexpected payload shape ({e.error_count()} errors)")

    logger.info(f"✅ Fetched {len(countries)} countries")
    return countries


async def fetch_exchange_rates(client: httpx.AsyncClient, url: Optional[str] = None) -> Dict[str, float]:
    """Fetch exchange rates from Exchange Rate API"""
    url = url or settings.exchange_rate_api_url
    logger.info("💱 Fetching exchange rates...")
    data = await _get_json(client, url, EXCHANGE_RATE_SOURCE)

    try:
        payload = ExchangeRateResponse.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(EXCHANGE_RATE_SOURCE, f"Unexpected payload shape ({e.error_count()} errors)")

    if payload.result != "success":
        raise ExternalAPIError(EXCHANGE_RATE_SOURCE, f"Returned non-success result '{payload.result}'")

    logger.info(f"✅ Fetched exchange rates for {len(payload.rates)} currencies")
    return payload.rates


async def check_apis_health(client: httpx.AsyncClient) -> Dict[str, Dict]:
    """Report whether each external API answers within the health-check timeout"""
    results = {}
    targets = {
        "countries_api": settings.countries_api_url,
        "exchange_api": settings.exchange_rate_api_url,
    }

    for key, url in targets.items():
        try:
            response = await client.get(url, timeout=HEALTH_CHECK_TIMEOUT)
            results[key] = {
                "status": "ok" if response.is_success else "error",
                "status_code": response.status_code,
            }
        except httpx.HTTPError as e:
            logger.error(f"{key} health check failed: {e}")
            results[key] = {
                "status": "error",
                "error": str(e) or e.__class__.__name__,
            }

    return results
