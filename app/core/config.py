from typing import List
from pydantic_settings import BaseSettings
from pydantic import validator
from app.schemas.pricing import PricingConfig

class Settings(BaseSettings):
    # API Settings
    PROJECT_NAME: str = "Custom Size Variants"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/apps/a"
    LOG_LEVEL: str = "INFO"

    # CORS Settings
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str] | str:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Shopify Settings
    SHOPIFY_SHOP_DOMAIN: str = ""
    SHOPIFY_ADMIN_ACCESS_TOKEN: str = ""
    SHOPIFY_API_VERSION: str = "2024-10"
    SHOPIFY_API_SECRET: str = ""
    SHOPIFY_REQUEST_TIMEOUT: float = 10.0

    # Redis Settings
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # Temporary variant lifecycle
    TEMP_VARIANT_RETENTION_HOURS: float = 2
    TEMP_VARIANT_MAX_AGE_HOURS: float = 24
    PRODUCT_VARIANT_SCAN_LIMIT: int = 100
    CLEANUP_SCAN_LIMIT: int = 250

    # Creation reservations
    RESERVATION_BACKEND: str = "redis"
    RESERVATION_TTL_SECONDS: int = 30
    RESERVATION_WAIT_SECONDS: float = 5.0
    RESERVATION_POLL_INTERVAL: float = 0.5

    # Event log
    EVENT_LOG_BACKEND: str = "memory"
    EVENT_LOG_CAPACITY: int = 1000
    EVENT_LOG_REDIS_KEY: str = "custom-size:events"
    ERROR_ALARM_THRESHOLD: int = 5
    ERROR_ALARM_WINDOW_MINUTES: int = 10

    # Pricing table, overridable as JSON
    PRICING: PricingConfig = PricingConfig()

    @property
    def REDIS_URL(self) -> str:
        """Get full Redis URL."""
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    @property
    def SHOPIFY_GRAPHQL_URL(self) -> str:
        """Get the Admin GraphQL endpoint for the configured shop."""
        return f"https://{self.SHOPIFY_SHOP_DOMAIN}/admin/api/{self.SHOPIFY_API_VERSION}/graphql.json"

    class Config:
        case_sensitive = True
        env_file = ".env"

settings = Settings()
