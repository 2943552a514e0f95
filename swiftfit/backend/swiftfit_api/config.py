from functools import lru_cache
import os
from pathlib import Path
from dotenv import load_dotenv
from pydantic import BaseModel, Field

ENV_FILE_PATH = Path(".env")


class Settings(BaseModel):
    env: str = Field(default="dev", alias="ENV")
    timezone: str = Field(default="UTC", alias="TIMEZONE")

    database_url: str = Field(default="", alias="DATABASE_URL")
    postgres_db: str = Field(default="swiftfit", alias="POSTGRES_DB")
    postgres_user: str = Field(default="swiftfit", alias="POSTGRES_USER")
    postgres_password: str = Field(default="swiftfit", alias="POSTGRES_PASSWORD")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")

    jwt_secret: str = Field(default="secret", alias="JWT_SECRET")
    jwt_expire_min: int = Field(default=43200, alias="JWT_EXPIRE_MIN")

    auth_secret: str = Field(default="", alias="BETTER_AUTH_SECRET")
    auth_url: str = Field(default="http://localhost:3000", alias="BETTER_AUTH_URL")

    admin_email: str = Field(default="admin@swiftfit.local", alias="ADMIN_EMAIL")
    default_admin_password: str = Field(default="admin123", alias="DEFAULT_ADMIN_PASSWORD")

    cron_secret: str = Field(default="", alias="CRON_SECRET")
    scheduler_enabled: bool = Field(default=False, alias="SCHEDULER_ENABLED")

    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    resend_api_key: str = Field(default="", alias="RESEND_API_KEY")
    email_from: str = Field(default="Swift Fit Pilates <noreply@swiftfit.local>", alias="EMAIL_FROM")

    payment_provider: str = Field(default="stub", alias="PAYMENT_PROVIDER")
    payment_currency: str = Field(default="USD", alias="PAYMENT_CURRENCY")
    square_access_token: str = Field(default="", alias="SQUARE_ACCESS_TOKEN")
    square_location_id: str = Field(default="", alias="SQUARE_LOCATION_ID")
    square_environment: str = Field(default="sandbox", alias="SQUARE_ENVIRONMENT")

    media_base_url: str = Field(default="/media", alias="MEDIA_BASE_URL")
    cancellation_window_hours: int = Field(default=24, alias="CANCELLATION_WINDOW_HOURS")

    class Config:
        populate_by_name = True

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv(dotenv_path=ENV_FILE_PATH, override=False)
    return Settings(**os.environ)
