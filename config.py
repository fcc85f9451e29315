import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "plantNet"
    secret_key: str = "dev-secret-key-change-me"
    environment: str = "development"
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:5174"]
    port: int = 8000
    log_level: str = "INFO"

    @property
    def production(self) -> bool:
        return self.environment == "production"


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings() -> Settings:
    values = {}
    if os.getenv("DATABASE_URL"):
        values["database_url"] = os.getenv("DATABASE_URL")
    if os.getenv("DATABASE_NAME"):
        values["database_name"] = os.getenv("DATABASE_NAME")
    secret = os.getenv("ACCESS_TOKEN_SECRET") or os.getenv("SECRET_KEY")
    if secret:
        values["secret_key"] = secret
    if os.getenv("NODE_ENV"):
        values["environment"] = os.getenv("NODE_ENV")
    if os.getenv("CORS_ORIGINS"):
        values["cors_origins"] = _split(os.getenv("CORS_ORIGINS"))
    if os.getenv("PORT"):
        values["port"] = int(os.getenv("PORT"))
    if os.getenv("LOG_LEVEL"):
        values["log_level"] = os.getenv("LOG_LEVEL").upper()
    return Settings(**values)


@lru_cache
def get_settings() -> Settings:
    return load_settings()
