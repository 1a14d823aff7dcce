from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "MoneyManager"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: List[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_ENDPOINT_URL: Optional[str] = Field(default=None)  # e.g. http://localhost:8001 for DynamoDB Local
    DYNAMO_CREATE_TABLES: bool = Field(default=False)
    DYNAMO_TABLE_USERS: str = Field(default="money-manager-users")
    DYNAMO_TABLE_TRANSACTIONS: str = Field(default="money-manager-transactions")
    DYNAMO_TABLE_BUDGETS: str = Field(default="money-manager-budgets")
    DYNAMO_TABLE_GOALS: str = Field(default="money-manager-goals")

    # JWT Authentication
    JWT_SECRET: str = Field(default="change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30  # 30 days

    # Business rules
    EDIT_WINDOW_HOURS: int = 12

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


settings = Settings()
