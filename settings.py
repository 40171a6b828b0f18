from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # `.env.prod` takes priority over `.env`
        env_file=(".env", ".env.prod"),
        extra="ignore",
    )

    # Database (falls back to DB_* variables, then local SQLite, see database.py)
    database_url: Optional[str] = None

    # Bearer token settings
    jwt_secret: str = "dev-secret-key"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Password hashing cost
    bcrypt_rounds: int = 12

    # HTTP surface
    api_prefix: str = "/api"
    cors_origins: List[str] = ["*"]
    max_page_size: int = 100

    # Logging
    log_format: str = "json"
    log_level: str = "INFO"
    # Echo SQL statements through the sqlalchemy.engine logger
    log_sql: bool = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
