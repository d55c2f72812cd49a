from enum import Enum
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime


class SortOption(str, Enum):
    GDP_DESC = "gdp_desc"
    GDP_ASC = "gdp_asc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"


# ------------------------------------------------------------------------------
# EXTERNAL PAYLOADS
# ------------------------------------------------------------------------------
class Currency(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    symbol: Optional[str] = None


class RawCountry(BaseModel):
    """One entry of the REST Countries v2 payload."""
    name: str = Field(..., min_length=1)
    capital: Optional[str] = None
    region: Optional[str] = None
    population: int = Field(..., ge=0)
    flag: Optional[str] = None
    currencies: Optional[List[Currency]] = None


class ExchangeRateResponse(BaseModel):
    result: str
    base_code: Optional[str] = None
    rates: Dict[str, float]
    time_last_update_utc: Optional[str] = None


# ------------------------------------------------------------------------------
# STORED / SERVED RECORDS
# ------------------------------------------------------------------------------
class CountryData(BaseModel):
    """A merged country record, ready to be upserted."""
    name: str
    capital: Optional[str] = None
    region: Optional[str] = None
    population: int = Field(..., ge=0)
    currency_code: Optional[str] = None
    exchange_rate: Optional[float] = Field(None, gt=0)
    estimated_gdp: Optional[float] = Field(None, ge=0)
    flag_url: Optional[str] = None


class CountryResponse(CountryData):
    id: int
    last_refreshed_at: datetime

    class Config:
        from_attributes = True


class StatusResponse(BaseModel):
    total_countries: int
    last_refreshed_at: datetime

    class Config:
        from_attributes = True


class RefreshResponse(StatusResponse):
    message: str


class MessageResponse(BaseModel):
    message: str


class SummaryData(BaseModel):
    """Snapshot handed to the summary image renderer."""
    total_countries: int
    top_countries: List[CountryResponse]
    last_refreshed_at: datetime
