from sqlalchemy import Column, Integer, String, Float, DateTime, BigInteger, Text, CheckConstraint
from sqlalchemy.sql import func
from country_api.database import Base

METADATA_ROW_ID = 1


def normalize_name(name: str) -> str:
    """Key used for every name comparison (upsert, lookup, delete)."""
    return name.strip().lower()


class Country(Base):
    __tablename__ = "countries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    name_key = Column(String(255), nullable=False, unique=True)
    capital = Column(String(255), nullable=True)
    region = Column(String(100), nullable=True, index=True)
    population = Column(BigInteger, nullable=False, default=0)
    currency_code = Column(String(10), nullable=True, index=True)
    exchange_rate = Column(Float, nullable=True)
    estimated_gdp = Column(Float, nullable=True, index=True)
    flag_url = Column(Text, nullable=True)
    last_refreshed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Country {self.name!r}>"


class RefreshMetadata(Base):
    __tablename__ = "refresh_metadata"
    __table_args__ = (CheckConstraint(f"id = {METADATA_ROW_ID}", name="single_metadata_row"),)

    id = Column(Integer, primary_key=True, default=METADATA_ROW_ID, autoincrement=False)
    total_countries = Column(Integer, nullable=False, default=0)
    last_refreshed_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
