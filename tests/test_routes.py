"""Tests for the HTTP API."""
import logging

import httpx
import pytest

from country_api.config import get_settings
from country_api.crud import country as crud

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestRefreshEndpoint:

    def test_end_to_end(self, client, image_path):
        """Refresh two countries, then read them back through every endpoint."""
        resp = client.post("/countries/refresh")
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Countries data refreshed successfully"
        assert body["total_countries"] == 2
        assert body["last_refreshed_at"]

        countries = {c["name"]: c for c in client.get("/countries").json()}
        assert set(countries) == {"Nigeria", "Antarctica"}
        assert countries["Nigeria"]["estimated_gdp"] is not None
        assert countries["Nigeria"]["exchange_rate"] == 1600.23
        assert countries["Antarctica"]["estimated_gdp"] is None
        assert countries["Antarctica"]["exchange_rate"] is None

        assert client.get("/status").json()["total_countries"] == 2

        assert image_path.exists()
        image = client.get("/countries/image")
        assert image.status_code == 200
        assert image.headers["content-type"] == "image/png"
        assert image.content.startswith(PNG_SIGNATURE)

    def test_external_failure_is_503(self, client, fake_apis):
        fake_apis.rates_error = httpx.ReadTimeout("slow")
        resp = client.post("/countries/refresh")
        assert resp.status_code == 503
        assert resp.json()["error"] == "External data source unavailable"
        assert "Exchange Rate API" in resp.json()["details"]

    def test_upstream_error_status_is_503(self, client, fake_apis):
        fake_apis.countries_status = 500
        resp = client.post("/countries/refresh")
        assert resp.status_code == 503

    def test_malformed_upstream_is_503(self, client, fake_apis):
        fake_apis.rates = {"unexpected": True}
        assert client.post("/countries/refresh").status_code == 503

    def test_internal_failure_is_500(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("database is on fire")

        monkeypatch.setattr(crud, "upsert_country", broken)
        resp = client.post("/countries/refresh")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}

    def test_image_failure_does_not_fail_refresh(self, client, monkeypatch, image_path):
        def broken(summary, image_path=None):
            raise OSError("disk full")

        monkeypatch.setattr("country_api.api.routes.generate_summary_image", broken)
        resp = client.post("/countries/refresh")
        assert resp.status_code == 200
        assert not image_path.exists()


class TestCountryEndpoints:

    def test_list_filters_and_sort(self, client, seeded_db):
        resp = client.get("/countries", params={"region": " Africa "})
        assert resp.status_code == 200
        assert {c["name"] for c in resp.json()} == {"Ghana", "Nigeria"}

        resp = client.get("/countries", params={"currency": " ngn "})
        assert [c["name"] for c in resp.json()] == ["Nigeria"]

        resp = client.get("/countries", params={"sort": "gdp_desc"})
        assert [c["estimated_gdp"] for c in resp.json()] == [20.0, 10.0, 5.0]

    def test_unknown_sort_ignored(self, client, seeded_db):
        resp = client.get("/countries", params={"sort": "population_desc"})
        assert resp.status_code == 200
        assert len(resp.json()) == 3

    def test_list_internal_error(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(crud, "get_countries", broken)
        resp = client.get("/countries")
        assert resp.status_code == 500
        assert resp.json()["error"] == "Internal server error"
        assert "stack" not in resp.json()

    def test_get_country_case_insensitive(self, client, seeded_db):
        resp = client.get("/countries/nigeria")
        assert resp.status_code == 200
        body = resp.json()
        assert body["name"] == "Nigeria"
        assert set(body) >= {
            "id", "name", "capital", "region", "population", "currency_code",
            "exchange_rate", "estimated_gdp", "flag_url", "last_refreshed_at",
        }

    def test_get_country_not_found(self, client, seeded_db):
        resp = client.get("/countries/Atlantis")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Country not found"}

    def test_blank_name_is_400(self, client):
        assert client.get("/countries/%20").status_code == 400
        resp = client.delete("/countries/%20")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Country name is required"}

    def test_delete_country(self, client, seeded_db):
        resp = client.delete("/countries/GHANA")
        assert resp.status_code == 200
        assert "deleted successfully" in resp.json()["message"]

        assert client.get("/countries/Ghana").status_code == 404
        assert client.delete("/countries/Ghana").status_code == 404


class TestStatusAndMeta:

    def test_status_before_refresh(self, client):
        resp = client.get("/status")
        assert resp.status_code == 200
        assert resp.json()["total_countries"] == 0
        assert resp.json()["last_refreshed_at"]

    def test_image_missing(self, client, image_path):
        resp = client.get("/countries/image")
        assert resp.status_code == 404
        assert resp.json()["error"] == "Summary image not found"

    def test_root_lists_endpoints(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert "POST /countries/refresh" in resp.json()["endpoints"]

    def test_unknown_route(self, client):
        resp = client.get("/planets")
        assert resp.status_code == 404
        body = resp.json()
        assert body["error"] == "Not found"
        assert body["message"] == "Route GET /planets does not exist"
        assert "GET /status" in body["availableRoutes"]

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "database": "connected"}

    def test_external_api_check(self, client):
        resp = client.get("/test-apis")
        assert resp.status_code == 200
        assert resp.json()["countries_api"]["status"] == "ok"
        assert resp.json()["exchange_api"]["status"] == "ok"


class TestDevelopmentMode:

    @pytest.fixture
    def development(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "environment", "development")

    def test_internal_error_includes_details_and_stack(self, client, monkeypatch, development):
        def broken(*args, **kwargs):
            raise ZeroDivisionError("division by zero")

        monkeypatch.setattr(crud, "get_countries", broken)
        resp = client.get("/countries")
        assert resp.status_code == 500
        body = resp.json()
        assert body["error"] == "Internal server error"
        assert body["details"] == "division by zero"
        assert any("ZeroDivisionError" in line for line in body["stack"])

    def test_requests_are_logged(self, client, caplog, development):
        with caplog.at_level(logging.INFO, logger="country_api.main"):
            client.get("/countries", params={"region": "Africa"})
        assert any(
            "GET /countries" in record.getMessage() and "Africa" in record.getMessage()
            for record in caplog.records
        )

    def test_requests_not_logged_outside_development(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="country_api.main"):
            client.get("/countries")
        assert not any("GET /countries" in record.getMessage() for record in caplog.records)
