from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "SubscriptionTracker"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ALLOW_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_USERS_TABLE: str = Field(default="subscription-tracker-users")
    DYNAMO_SUBSCRIPTIONS_TABLE: str = Field(default="subscription-tracker-subscriptions")

    # AWS S3 (exported reports)
    S3_BUCKET_NAME: str = Field(default="subscription-tracker-reports")
    S3_REGION: str = Field(default="eu-west-1")

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # Analytics
    HOME_CURRENCY: str = Field(default="CLP")
    REMINDER_LOOKAHEAD_DAYS: int = Field(default=3, ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
