from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    # Semantic version reported by /health and the OpenAPI schema
    APP_VERSION: str = "1.0.0"
    # "development" exposes internal error messages in 500 responses
    ENVIRONMENT: str = "production"
    # Upper bound for request bodies (bulk imports can be large)
    MAX_BODY_BYTES: int = 50 * 1024 * 1024
    # Requests allowed per client IP per window; 0 disables rate limiting
    RATE_LIMIT_REQUESTS: int = 0
    RATE_LIMIT_WINDOW_SEC: int = 60
    # Optional JSON file with {"sampleTransactions": [...]} loaded at startup
    SAMPLE_TRANSACTIONS_PATH: Optional[str] = None
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
