from typing import List, Optional, Union
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import json
import secrets

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./app.db"
    BACKEND_CORS_ORIGINS: Union[str, List[str]] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Auth
    SECRET_KEY: str = "your-secret-key-here-change-this-in-production"
    REFRESH_SECRET_KEY: str = "your-refresh-secret-key-here-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    FIRST_ADMIN_EMAIL: Optional[str] = None
    FIRST_ADMIN_PASSWORD: Optional[str] = None

    # Legacy SQL Server (customer master data)
    SQLSERVER_HOST: Optional[str] = None
    SQLSERVER_PORT: int = 1433
    SQLSERVER_USER: Optional[str] = None
    SQLSERVER_PASSWORD: Optional[str] = None
    SQLSERVER_DATABASE: Optional[str] = None
    SQLSERVER_POOL_SIZE: int = 10
    SQLSERVER_TIMEOUT: int = 30
    SQLSERVER_MAX_RETRIES: int = 3

    # Google Maps
    GOOGLE_MAPS_API_KEY: str = ""
    GOOGLE_MAPS_TIMEOUT: int = 10
    COMPANY_LAT: float = 13.537051
    COMPANY_LNG: float = 100.2173051

    # Uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE: int = 15 * 1024 * 1024

    SETTINGS_CACHE_SECONDS: int = 300

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",")]
        return v

    @property
    def sqlserver_configured(self) -> bool:
        return bool(self.SQLSERVER_HOST and self.SQLSERVER_USER and self.SQLSERVER_DATABASE)

settings = Settings()

# Tokens issued by a previous process are rejected after a restart
SERVER_INSTANCE_ID: str = secrets.token_urlsafe(32)
