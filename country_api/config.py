import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

DEFAULT_COUNTRIES_API_URL = (
    "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies"
)
DEFAULT_EXCHANGE_RATE_API_URL = "https://open.er-api.com/v6/latest/USD"


class Settings:
    """Runtime configuration read from the environment (.env in local dev)."""

    def __init__(self):
        self.environment = os.getenv("ENVIRONMENT", "development").lower()
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.port = int(os.getenv("PORT", 8000))

        self.db_host = os.getenv("DB_HOST", "localhost")
        self.db_user = os.getenv("DB_USER", "root")
        self.db_password = os.getenv("DB_PASSWORD", "")
        self.db_name = os.getenv("DB_NAME", "country_currency_db")
        self.db_port = int(os.getenv("DB_PORT", 3306))
        self.db_pool_size = int(os.getenv("DB_POOL_SIZE", 10))
        self.db_pool_timeout = int(os.getenv("DB_POOL_TIMEOUT", 30))

        self.countries_api_url = os.getenv("COUNTRIES_API_URL", DEFAULT_COUNTRIES_API_URL)
        self.exchange_rate_api_url = os.getenv("EXCHANGE_RATE_API_URL", DEFAULT_EXCHANGE_RATE_API_URL)
        self.image_path = os.getenv("IMAGE_PATH", os.path.join("cache", "summary.png"))

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def database_url(self) -> str:
        url = os.getenv("DATABASE_URL")
        if not url:
            url = (
                f"mysql+pymysql://{self.db_user}:{self.db_password}"
                f"@{self.db_host}:{self.db_port}/{self.db_name}"
            )

        # Hosted providers hand out the bare scheme; SQLAlchemy needs the driver
        if url.startswith("mysql://"):
            url = url.replace("mysql://", "mysql+pymysql://", 1)
        return url


@lru_cache()
def get_settings() -> Settings:
    return Settings()
