from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

from megainvest.consent import constants

load_dotenv()


class ConsentClientSettings(BaseSettings):
    """Settings of the consent client, read from ``COOKIE_CONSENT_*`` variables."""

    # Consent policy
    version: str = constants.CONSENT_VERSION
    expiry_days: int = Field(default=constants.EXPIRY_DAYS, gt=0)

    # Local persistence
    storage_key: str = constants.STORAGE_KEY
    preferences_key: str = constants.PREFERENCES_KEY
    session_key: str = constants.SESSION_KEY
    storage_path: str | None = None  # JSON file; in-memory storage when unset

    # Remote sync
    api_base_url: str | None = "http://localhost:8000/api"
    request_timeout: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="COOKIE_CONSENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )
