from sqlalchemy.orm import Session
from sqlalchemy import func, desc, asc
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from country_api.models.country import Country, RefreshMetadata, METADATA_ROW_ID, normalize_name
from country_api.schemas.country import CountryData, CountryResponse, SortOption, SummaryData
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union
import logging

logger = logging.getLogger(__name__)

# Columns overwritten when an upsert hits an existing name
UPSERT_FIELDS = (
    "name",
    "capital",
    "region",
    "population",
    "currency_code",
    "exchange_rate",
    "estimated_gdp",
    "flag_url",
    "last_refreshed_at",
)

SORT_ORDERS = {
    SortOption.GDP_DESC: desc(Country.estimated_gdp),
    SortOption.GDP_ASC: asc(Country.estimated_gdp),
    SortOption.NAME_ASC: asc(Country.name),
    SortOption.NAME_DESC: desc(Country.name),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_country_by_name(db: Session, name: str) -> Optional[Country]:
    """Get country by name (case-insensitive)"""
    return db.query(Country).filter(Country.name_key == normalize_name(name)).first()


def get_countries(
    db: Session,
    region: Optional[str] = None,
    currency: Optional[str] = None,
    sort: Optional[Union[SortOption, str]] = None
) -> List[Country]:
    """Get all countries with optional filtering and sorting"""
    query = db.query(Country)

    if region:
        query = query.filter(func.lower(Country.region) == region.lower())

    if currency:
        query = query.filter(Country.currency_code == currency.upper())

    if sort:
        try:
            query = query.order_by(SORT_ORDERS[SortOption(sort)])
        except ValueError:
            pass  # unknown sort keys keep the natural order

    return query.all()


def _upsert_statement(dialect: str, values: Dict):
    if dialect == "mysql":
        stmt = mysql_insert(Country).values(**values)
        return stmt.on_duplicate_key_update({key: stmt.inserted[key] for key in UPSERT_FIELDS})

    if dialect in ("sqlite", "postgresql"):
        insert = sqlite_insert if dialect == "sqlite" else postgresql_insert
        stmt = insert(Country).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[Country.name_key],
            set_={key: stmt.excluded[key] for key in UPSERT_FIELDS},
        )

    return None


def upsert_country(db: Session, country_data: Union[CountryData, Dict]) -> Country:
    """Insert a country, or update every mutable field of the row with the same name.

    The write is a single statement keyed on the unique ``name_key`` column,
    so concurrent upserts of the same country cannot create duplicates.
    Dialects without a native upsert fall back to query-then-write.
    """
    if isinstance(country_data, CountryData):
        country_data = country_data.model_dump()

    values = dict(country_data)
    values["name_key"] = normalize_name(values["name"])
    values["last_refreshed_at"] = utcnow()

    stmt = _upsert_statement(db.get_bind().dialect.name, values)
    if stmt is not None:
        db.execute(stmt)
    else:
        existing = get_country_by_name(db, values["name"])
        if existing:
            for key in UPSERT_FIELDS:
                setattr(existing, key, values[key])
        else:
            db.add(Country(**values))
    db.commit()

    return get_country_by_name(db, values["name"])


def delete_country(db: Session, name: str) -> bool:
    """Delete country by name (case-insensitive)"""
    deleted = db.query(Country).filter(Country.name_key == normalize_name(name)).delete(
        synchronize_session=False
    )
    db.commit()
    return deleted > 0


def count_countries(db: Session) -> int:
    return db.query(func.count(Country.id)).scalar() or 0


def get_top_countries_by_gdp(db: Session, limit: int = 5) -> List[Country]:
    """Get top countries by estimated GDP"""
    return db.query(Country).filter(
        Country.estimated_gdp.isnot(None)
    ).order_by(desc(Country.estimated_gdp)).limit(limit).all()


# ------------------------------------------------------------------------------
# REFRESH METADATA
# ------------------------------------------------------------------------------
def get_metadata(db: Session) -> RefreshMetadata:
    """Return the metadata row, or an unsaved zero-valued default if it is missing."""
    metadata = db.get(RefreshMetadata, METADATA_ROW_ID)
    if metadata is None:
        logger.warning("Refresh metadata row missing; reporting defaults")
        return RefreshMetadata(id=METADATA_ROW_ID, total_countries=0, last_refreshed_at=utcnow())
    return metadata


def get_or_create_metadata(db: Session) -> RefreshMetadata:
    """Get or create refresh metadata"""
    metadata = db.get(RefreshMetadata, METADATA_ROW_ID)
    if not metadata:
        metadata = RefreshMetadata(id=METADATA_ROW_ID, total_countries=0, last_refreshed_at=utcnow())
        db.add(metadata)
        db.commit()
        db.refresh(metadata)
    return metadata


def update_metadata(db: Session) -> RefreshMetadata:
    """Recompute the stored country count and stamp the refresh time"""
    metadata = get_or_create_metadata(db)
    metadata.total_countries = count_countries(db)
    metadata.last_refreshed_at = utcnow()
    db.commit()
    db.refresh(metadata)
    return metadata


def get_summary(db: Session, limit: int = 5) -> SummaryData:
    metadata = get_metadata(db)
    return SummaryData(
        total_countries=metadata.total_countries,
        top_countries=[CountryResponse.model_validate(c) for c in get_top_countries_by_gdp(db, limit)],
        last_refreshed_at=metadata.last_refreshed_at,
    )
