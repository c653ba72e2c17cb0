"""
Application configuration management
"""
import json
from typing import Any, List
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Ensure repository .env values win over stale exported shell variables.
load_dotenv(override=True)

DEFAULT_ADMIN_KEY = "change-me-admin-key"
DEFAULT_SECRET_KEY = "dev-secret-change-me"


class Settings(BaseSettings):
    """Application settings"""
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Storage
    CONFIG_BACKEND: str = "sql"  # sql | json
    DATABASE_URL: str = "sqlite:///./data/qrew.db"
    CONFIG_PATH: str = "data/config.json"
    LEGACY_CONFIG_PATH: str = "data/config.json"
    DEFAULT_ACCESS_PASSWORD: str = ""
    RECORD_ORDERS: bool = True

    # Security
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ADMIN_KEY: str = DEFAULT_ADMIN_KEY
    CORS_ORIGINS: str = "*"

    # Stripe Checkout
    STRIPE_SECRET_KEY: str = ""
    STRIPE_PUBLISHABLE_KEY: str = ""
    STRIPE_API_BASE: str = "https://api.stripe.com"
    STRIPE_TIMEOUT_SECONDS: float = 10.0
    CHECKOUT_CURRENCY: str = "usd"
    SUCCESS_URL: str = "http://localhost:8000/success.html"
    CANCEL_URL: str = ""
    EXPOSE_PROVIDER_ERRORS: bool = False

    # Frontend
    STATIC_DIR: str = "static"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/portal.log"

    @field_validator('CONFIG_BACKEND')
    @classmethod
    def validate_config_backend(cls, v):
        backend = str(v or "").strip().lower()
        if backend not in {"sql", "json"}:
            raise ValueError('CONFIG_BACKEND must be "sql" or "json"')
        return backend

    @field_validator('ACCESS_TOKEN_EXPIRE_MINUTES')
    @classmethod
    def validate_token_expiry(cls, v):
        if int(v) <= 0:
            raise ValueError('ACCESS_TOKEN_EXPIRE_MINUTES must be positive')
        return int(v)

    @field_validator('STRIPE_TIMEOUT_SECONDS')
    @classmethod
    def validate_stripe_timeout(cls, v):
        if float(v) <= 0:
            raise ValueError('STRIPE_TIMEOUT_SECONDS must be positive')
        return float(v)

    @field_validator('CHECKOUT_CURRENCY')
    @classmethod
    def validate_currency(cls, v):
        currency = str(v or "").strip().lower()
        if len(currency) != 3 or not currency.isalpha():
            raise ValueError('CHECKOUT_CURRENCY must be a three-letter ISO code')
        return currency

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        level = str(v or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError('LOG_LEVEL must be a standard logging level name')
        return level

    @staticmethod
    def _parse_str_list(value: Any) -> List[str]:
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        if value is None:
            return []
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return []
            if stripped.startswith('[') and stripped.endswith(']'):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in stripped.split(',') if item.strip()]
        return [str(value).strip()] if str(value).strip() else []

    def get_cors_origins(self) -> List[str]:
        return self._parse_str_list(self.CORS_ORIGINS) or ["*"]

    def get_cancel_url(self) -> str:
        return self.CANCEL_URL or f"{self.SUCCESS_URL}?canceled=true"

    def provider_configured(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY.strip())


# Global settings instance
settings = Settings()
