"""Shared test fixtures: throwaway SQLite stores, fake external APIs, API client."""
import asyncio
import os
import tempfile

# Point the application at throwaway locations before it is imported.
_TMP_DIR = tempfile.mkdtemp(prefix="country-api-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'app.db')}"
os.environ["IMAGE_PATH"] = os.path.join(_TMP_DIR, "cache", "summary.png")
os.environ["ENVIRONMENT"] = "test"

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from country_api.config import get_settings
from country_api.crud import country as crud
from country_api.database import Base, create_db_engine, get_db, get_session_factory
from country_api.main import app
from country_api.schemas.country import CountryData
from country_api.services.external_api import get_http_client


# --- External API payloads ---

@pytest.fixture
def countries_payload():
    """REST Countries v2 response: one country with a known currency, one without."""
    return [
        {
            "name": "Nigeria",
            "capital": "Abuja",
            "region": "Africa",
            "population": 206139587,
            "flag": "https://flagcdn.com/ng.svg",
            "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}],
            "independent": False,
        },
        {
            "name": "Antarctica",
            "region": "Polar",
            "population": 1000,
            "flag": "https://flagcdn.com/aq.svg",
        },
    ]


@pytest.fixture
def rates_payload():
    """open.er-api response with USD as the base currency."""
    return {
        "result": "success",
        "base_code": "USD",
        "time_last_update_utc": "Fri, 17 Oct 2025 00:02:31 +0000",
        "rates": {"USD": 1, "NGN": 1600.23, "GHS": 15.34, "EUR": 0.92},
    }


class FakeExternalAPIs:
    """MockTransport handler standing in for both external services.

    Set ``countries_error`` / ``rates_error`` to an exception to raise, or
    ``countries_status`` / ``rates_status`` to a non-2xx code.
    """

    def __init__(self, countries, rates):
        self.countries = countries
        self.rates = rates
        self.countries_status = 200
        self.rates_status = 200
        self.countries_error = None
        self.rates_error = None
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.host)
        if "restcountries" in request.url.host:
            if self.countries_error:
                raise self.countries_error
            return httpx.Response(self.countries_status, json=self.countries)
        if self.rates_error:
            raise self.rates_error
        return httpx.Response(self.rates_status, json=self.rates)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def fake_apis(countries_payload, rates_payload):
    return FakeExternalAPIs(countries_payload, rates_payload)


@pytest.fixture
def run_with_client():
    """Run ``func(client)`` to completion against a mock transport handler."""

    def runner(handler, func):
        async def main():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await func(client)

        return asyncio.run(main())

    return runner


# --- Persistence ---

@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'countries.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = factory()
    try:
        crud.get_or_create_metadata(db)
    finally:
        db.close()
    return factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_country():
    def factory(name, **overrides):
        data = {
            "name": name,
            "capital": f"{name} City",
            "region": "Africa",
            "population": 1000,
            "currency_code": "NGN",
            "exchange_rate": 2.0,
            "estimated_gdp": 500.0,
            "flag_url": f"https://flagcdn.com/{name[:2].lower()}.svg",
        }
        data.update(overrides)
        return CountryData(**data)

    return factory


@pytest.fixture
def seeded_db(db, make_country):
    """Three stored countries across two regions with GDP 10, 5 and 20."""
    crud.upsert_country(db, make_country("Ghana", region="Africa", currency_code="GHS", estimated_gdp=10.0))
    crud.upsert_country(db, make_country("Nigeria", region="Africa", currency_code="NGN", estimated_gdp=5.0))
    crud.upsert_country(db, make_country("France", region="Europe", currency_code="EUR", estimated_gdp=20.0))
    return db


# --- API ---

@pytest.fixture
def image_path(tmp_path, monkeypatch):
    path = tmp_path / "cache" / "summary.png"
    monkeypatch.setattr(get_settings(), "image_path", str(path))
    return path


@pytest.fixture
def client(session_factory, fake_apis, image_path):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    async def override_get_http_client():
        async with fake_apis.client() as http_client:
            yield http_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_http_client] = override_get_http_client

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()
