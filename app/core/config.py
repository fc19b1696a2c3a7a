from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "ambugo"
    APP_TIMEZONE: str = "Europe/Athens"

    CORS_ORIGINS: str = "http://localhost:3000"

    DATABASE_URL: str
    REDIS_URL: str = "redis://localhost:6379/0"

    PUBLIC_BASE_URL: str = "http://localhost:3000"
    REQUEST_SOURCE_TAG: str = "ambugo-web"
    PUBLIC_TOKEN_LENGTH: int = 32
    REQUIRE_AMBULANCE_TYPE: bool = True
    REQUIRE_EMAIL: bool = True

    GOOGLE_MAPS_API_KEY: str = ""
    GEOCODING_LANGUAGE: str = "el"
    GEOCODING_COUNTRIES: str = "gr,cy"
    GEOCODING_TIMEOUT_SECONDS: float = 5.0

    EMAIL_PROVIDER: str = "dummy"  # dummy | resend | smtp
    RESEND_API_KEY: str = ""
    RESEND_API_URL: str = "https://api.resend.com/emails"
    REQUESTS_FROM_EMAIL: str = "Ambugo <no-reply@ambugo.app>"
    AMBULANCE_RECIPIENTS: str = ""
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    NOTIFICATIONS_VIA_CELERY: bool = False

    PUBLIC_CREATE_RATE_LIMIT: int = 10
    PLACES_RATE_LIMIT: int = 120
    RATE_LIMIT_WINDOW_SECONDS: int = 300

    FEED_HEARTBEAT_SECONDS: float = 15.0

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def ambulance_recipients_list(self) -> List[str]:
        return [o.strip() for o in self.AMBULANCE_RECIPIENTS.split(",") if o.strip()]

    @property
    def geocoding_countries_list(self) -> List[str]:
        return [o.strip().lower() for o in self.GEOCODING_COUNTRIES.split(",") if o.strip()]

settings = Settings()
