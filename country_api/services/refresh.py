"""
Refresh pipeline: fetch both sources, merge, upsert in batches, update metadata.

Writes are not wrapped in one transaction. If a batch fails, countries
saved by earlier batches stay saved, metadata is left untouched and the
error propagates to the caller. Nothing is retried.
"""
import asyncio
import logging
from typing import Callable, List

import httpx
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from country_api.crud import country as crud
from country_api.models.country import RefreshMetadata
from country_api.schemas.country import CountryData, StatusResponse
from country_api.services.external_api import fetch_countries, fetch_exchange_rates
from country_api.services.transform import process_country_data, random_multiplier

logger = logging.getLogger(__name__)

BATCH_SIZE = 10


def _raise_first_error(results: list) -> list:
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def _upsert(session_factory: sessionmaker, country: CountryData):
    db: Session = session_factory()
    try:
        return crud.upsert_country(db, country)
    finally:
        db.close()


def _update_metadata(session_factory: sessionmaker) -> StatusResponse:
    db: Session = session_factory()
    try:
        metadata: RefreshMetadata = crud.update_metadata(db)
        return StatusResponse.model_validate(metadata)
    finally:
        db.close()


async def save_in_batches(
    session_factory: sessionmaker,
    countries: List[CountryData],
    batch_size: int = BATCH_SIZE,
) -> int:
    """Upsert concurrently within a batch; a batch settles before the next one starts."""
    total = len(countries)
    for start in range(0, total, batch_size):
        batch = countries[start:start + batch_size]
        _raise_first_error(await asyncio.gather(
            *(run_in_threadpool(_upsert, session_factory, country) for country in batch),
            return_exceptions=True,
        ))
        logger.info(f"  ↳ Saved {min(start + batch_size, total)}/{total} countries")
    return total


async def refresh_countries(
    client: httpx.AsyncClient,
    session_factory: sessionmaker,
    multiplier: Callable[[], float] = random_multiplier,
    batch_size: int = BATCH_SIZE,
) -> StatusResponse:
    """Run one refresh cycle and return the updated metadata"""
    logger.info("🔄 Starting countries refresh...")

    # both requests settle before either failure is raised
    countries_data, exchange_rates = _raise_first_error(await asyncio.gather(
        fetch_countries(client),
        fetch_exchange_rates(client),
        return_exceptions=True,
    ))

    logger.info(f"📊 Processing {len(countries_data)} countries...")
    processed = [
        process_country_data(country, exchange_rates, multiplier)
        for country in countries_data
    ]

    logger.info("💾 Saving countries to database...")
    await save_in_batches(session_factory, processed, batch_size)

    status = await run_in_threadpool(_update_metadata, session_factory)
    logger.info(f"✅ Countries refresh completed: {status.total_countries} countries stored")
    return status
