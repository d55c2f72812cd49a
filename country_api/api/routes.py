from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool
from typing import List, Optional
import httpx
import os
import logging

from country_api.database import get_db, get_session_factory, check_connection
from country_api.exceptions import ExternalAPIError
from country_api.schemas.country import CountryResponse, StatusResponse, RefreshResponse, MessageResponse
from country_api.crud import country as crud
from country_api.services.external_api import get_http_client, check_apis_health
from country_api.services.image_generator import generate_summary_image, get_image_path
from country_api.services.refresh import refresh_countries as run_refresh
from country_api.utils import validate_query_params, is_blank

router = APIRouter()
logger = logging.getLogger(__name__)

NAME_REQUIRED = {"error": "Country name is required"}


def _render_summary(session_factory: sessionmaker):
    db = session_factory()
    try:
        return generate_summary_image(crud.get_summary(db))
    finally:
        db.close()


@router.post("/countries/refresh", response_model=RefreshResponse, status_code=status.HTTP_200_OK)
async def refresh_countries(
    client: httpx.AsyncClient = Depends(get_http_client),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """
    Fetch all countries and exchange rates, then cache them in the database.
    Also regenerates the summary image.
    """
    try:
        metadata = await run_refresh(client, session_factory)
    except ExternalAPIError as e:
        logger.error(f"❌ Refresh failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error": "External data source unavailable", "details": str(e)}
        )

    # The data refresh is already committed; a rendering problem is only logged
    try:
        await run_in_threadpool(_render_summary, session_factory)
    except Exception:
        logger.exception("❌ Error generating summary image")

    return RefreshResponse(
        message="Countries data refreshed successfully",
        total_countries=metadata.total_countries,
        last_refreshed_at=metadata.last_refreshed_at
    )


@router.get("/countries", response_model=List[CountryResponse])
def get_countries(
    region: Optional[str] = Query(None, description="Filter by region (e.g., Africa)"),
    currency: Optional[str] = Query(None, description="Filter by currency code (e.g., NGN)"),
    sort: Optional[str] = Query(None, description="Sort results (gdp_desc, gdp_asc, name_asc, name_desc)"),
    db: Session = Depends(get_db)
):
    """
    Retrieve all countries from the database with optional filters and sorting.
    """
    filters = validate_query_params(region=region, currency=currency, sort=sort)
    return crud.get_countries(db, region=filters.region, currency=filters.currency, sort=filters.sort)


@router.get("/countries/image")
def get_summary_image():
    """
    Serve the generated summary image.
    """
    image_path = get_image_path()

    if not os.path.exists(image_path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "Summary image not found",
                "hint": "Call POST /countries/refresh to generate the image"
            }
        )

    return FileResponse(
        image_path,
        media_type="image/png",
        headers={"Content-Disposition": "inline; filename=summary.png"}
    )


@router.get("/countries/{name}", response_model=CountryResponse)
def get_country(name: str, db: Session = Depends(get_db)):
    """
    Retrieve a single country by name (case-insensitive).
    """
    if is_blank(name):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=NAME_REQUIRED)

    country = crud.get_country_by_name(db, name)
    if not country:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Country not found"}
        )
    return country


@router.delete("/countries/{name}", response_model=MessageResponse)
def delete_country(name: str, db: Session = Depends(get_db)):
    """
    Delete a country record by name (case-insensitive).
    """
    if is_blank(name):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=NAME_REQUIRED)

    if not crud.delete_country(db, name):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Country not found"}
        )
    return MessageResponse(message=f'Country "{name}" deleted successfully')


@router.get("/status", response_model=StatusResponse)
def get_status(db: Session = Depends(get_db)):
    """
    Show total countries and last refresh timestamp.
    """
    return crud.get_metadata(db)


@router.get("/health")
def health_check(session_factory: sessionmaker = Depends(get_session_factory)):
    """Health check endpoint"""
    database_ok = check_connection(session_factory.kw["bind"])
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unreachable",
    }


@router.get("/test-apis")
async def test_external_apis(client: httpx.AsyncClient = Depends(get_http_client)):
    """Test if external APIs are reachable"""
    return await check_apis_health(client)
