from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_TITLE: str = "Campus Carpool API"
    DATABASE_URL: str = "sqlite:///./carpool.db"
    CORS_ORIGINS: List[str] = ["*"]

    # Accepted window for a manually entered license expiration date.
    LICENSE_MAX_YEARS_AHEAD: int = 10
    LICENSE_MAX_DAYS_EXPIRED: int = 365

    # License details become editable this many days before expiration.
    REUPLOAD_WINDOW_DAYS: int = 7

    # Default number of cars for a ride request is ceil(party size / seats).
    SEATS_PER_CAR: int = 4


settings = Settings()
