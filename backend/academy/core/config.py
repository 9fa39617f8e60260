from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field
from typing import List, Any
from decimal import Decimal
from pathlib import Path
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings, loaded once from the environment and .env"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "Tushti Academy"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    API_PREFIX: str = "/api"
    VERSION: str = "1.0.0"

    # Server
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_ECHO: bool = False

    # ==========================================
    # Security / JWT
    # ==========================================
    JWT_SECRET_KEY: str = Field(validation_alias=AliasChoices("JWT_SECRET_KEY", "JWT_SECRET"))
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days
    BCRYPT_ROUNDS: int = 12  # 4 for tests, 12 for prod

    # ==========================================
    # Razorpay
    # ==========================================
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = Field(
        default="", validation_alias=AliasChoices("RAZORPAY_KEY_SECRET", "RAZORPAY_SECRET")
    )
    PAYMENT_CURRENCY: str = "INR"

    # Gateway fee charged by Razorpay and GST levied on that fee
    GATEWAY_FEE_PERCENT: Decimal = Decimal("0.02")
    GST_PERCENT: Decimal = Decimal("0.18")

    # ==========================================
    # Manual UPI
    # ==========================================
    UPI_VPA: str = ""
    UPI_PAYEE_NAME: str = "Tushti IAS"

    # ==========================================
    # Cloudinary (videos)
    # ==========================================
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_VIDEO_FOLDER: str = "courses/videos"

    # ==========================================
    # Cloudflare R2 (documents, S3-compatible)
    # ==========================================
    CLOUDFLARE_R2_ENDPOINT: str = ""
    CLOUDFLARE_R2_ACCESS_KEY_ID: str = ""
    CLOUDFLARE_R2_SECRET_ACCESS_KEY: str = ""
    CLOUDFLARE_R2_BUCKET_NAME: str = ""
    R2_URL_EXPIRY: int = 3600  # 1 hour

    # ==========================================
    # Outbound HTTP
    # ==========================================
    OUTBOUND_HTTP_TIMEOUT: float = 15.0  # seconds per request
    DOCUMENT_PROBE_DEADLINE: float = 30.0  # seconds across all candidate URLs

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    REDIS_URL: str = ""  # empty = in-memory limiter storage

    # ==========================================
    # File Upload
    # ==========================================
    MAX_DOCUMENT_SIZE: int = 52428800  # 50MB
    MAX_VIDEO_SIZE: int = 524288000  # 500MB

    # ==========================================
    # OTP
    # ==========================================
    OTP_TTL_SECONDS: int = 300

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        Path(self.LOG_FILE).parent.mkdir(exist_ok=True, parents=True)

    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG

    def razorpay_configured(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)

    def r2_configured(self) -> bool:
        return bool(self.CLOUDFLARE_R2_ENDPOINT and self.CLOUDFLARE_R2_BUCKET_NAME)

    def cloudinary_configured(self) -> bool:
        return bool(self.CLOUDINARY_CLOUD_NAME and self.CLOUDINARY_API_KEY and self.CLOUDINARY_API_SECRET)


# Create settings instance
settings = Settings()
