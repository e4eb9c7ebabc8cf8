# app/config.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from pathlib import Path
from functools import lru_cache
from typing import List, Optional

class Settings(BaseSettings):
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # "file" keeps documents in CSV / XLSX files under DATA_DIR, "mongo" uses MONGO_URI
    STORE_BACKEND: str = "file"
    DATA_DIR: Path = Path("data")
    USERS_FILE: str = "users.csv"  # can be users.xlsx if you prefer Excel

    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "quickcart"
    MONGO_TIMEOUT_MS: int = 5000

    # identity tokens are issued by the external provider and only verified here
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    JWT_ISSUER: Optional[str] = None
    SESSION_COOKIE: str = "__session"

    CORS_ORIGINS: str = "http://localhost:3000"

    # Example .env:
    # STORE_BACKEND=mongo
    # MONGO_URI=mongodb://mongo:27017
    # JWT_SECRET=...

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()

settings = Settings()
