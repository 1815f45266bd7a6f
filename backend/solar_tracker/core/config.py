from pydantic_settings import BaseSettings
from typing import List, Optional
import re
from datetime import timedelta
from pathlib import Path


DURATION_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*([smhd]?)\s*$', re.IGNORECASE)

DURATION_UNITS = {
    "": 1,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}


def parse_duration(v: str) -> timedelta:
    """Parse a lifetime like '12h', '30m', '7d' or a bare number of seconds"""
    match = DURATION_PATTERN.match(str(v))
    if not match:
        raise ValueError(f"Invalid duration: {v!r}")
    amount, unit = match.groups()
    return timedelta(seconds=float(amount) * DURATION_UNITS[unit.lower()])


def parse_cors_origins(v: Optional[str]) -> List[str]:
    """Parse CORS origins from comma-separated string"""
    if not v:
        return []
    return [origin.strip() for origin in v.split(',') if origin.strip()]


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "Solar Installation Tracker"
    NODE_ENV: str = "development"
    PORT: int = 3000
    HOST: str = "0.0.0.0"

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET: Optional[str] = None
    JWT_EXPIRES_IN: str = "12h"
    JWT_ALGORITHM: str = "HS256"
    BCRYPT_ROUNDS: int = 10
    ADMIN_API_KEY: Optional[str] = None

    # ==========================================
    # Storage
    # ==========================================
    DATA_DIR: str = str(Path(__file__).resolve().parent.parent.parent / "data")
    INSTALLATIONS_PER_USER: bool = True
    INSTALLATIONS_DATA_FILE: Optional[str] = None  # Defaults to installations.<env>.json
    INSTALLATIONS_DATA_DIR: Optional[str] = None  # Defaults to <DATA_DIR>/installations
    USERS_DATA_FILE: Optional[str] = None  # Defaults to users.<env>.json

    # ==========================================
    # CORS
    # ==========================================
    CLIENT_URL: Optional[str] = None
    DEV_CLIENT_URL: str = "http://localhost:3001"

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # AUTH_USER_<n>_* keys are read by the static user provider

    @property
    def is_production(self) -> bool:
        return self.NODE_ENV == "production"

    @property
    def ENVIRONMENT_NAME(self) -> str:
        return "production" if self.is_production else "development"

    @property
    def JWT_EXPIRES_DELTA(self) -> timedelta:
        return parse_duration(self.JWT_EXPIRES_IN)

    @property
    def SHARED_DATA_PATH(self) -> Path:
        filename = self.INSTALLATIONS_DATA_FILE or f"installations.{self.ENVIRONMENT_NAME}.json"
        return Path(self.DATA_DIR) / filename

    @property
    def PER_USER_DATA_DIR(self) -> Path:
        if self.INSTALLATIONS_DATA_DIR:
            return Path(self.INSTALLATIONS_DATA_DIR).resolve()
        return Path(self.DATA_DIR) / "installations"

    @property
    def USERS_DATA_PATH(self) -> Path:
        filename = self.USERS_DATA_FILE or f"users.{self.ENVIRONMENT_NAME}.json"
        return Path(self.DATA_DIR) / filename

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Production only trusts CLIENT_URL; development trusts the local client"""
        if self.is_production:
            return parse_cors_origins(self.CLIENT_URL)
        return [self.DEV_CLIENT_URL]


# Create settings instance
settings = Settings()
