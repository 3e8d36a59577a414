from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # === PUBLIC DATA (not secrets) ===
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Generator Marketplace"
    SERVICE_VERSION: str = "1.0.0"

    # === APPLICATION SETTINGS ===
    ENVIRONMENT: str = Field(default="development", description="development, staging or production")
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    CORS_ORIGINS: str = Field(default="", description="Allowed CORS origins (comma-separated). Empty = allow all.")

    # === DATABASE SETTINGS (from .env) ===
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017/generators", description="MongoDB connection string"
    )
    REDIS_URL: str = Field(default="redis://localhost:6379/0", description="Redis connection string")

    # === QUEUE SETTINGS ===
    MESSAGE_QUEUE_NAME: str = Field(default="whatsapp_messages", description="Redis list holding inbound payloads")
    DEAD_LETTER_QUEUE_NAME: str = Field(
        default="whatsapp_messages:failed", description="Redis list holding payloads that failed processing"
    )
    DEAD_LETTER_MAX_LENGTH: int = Field(default=1000)
    QUEUE_POP_TIMEOUT_SECONDS: int = Field(default=5, description="Blocking pop timeout for the parser worker")
    WORKER_ERROR_COOLDOWN_SECONDS: float = Field(default=5.0, description="Pause after a dequeue-level error")
    RUN_PARSER_WORKER: bool = Field(default=True, description="Run the parser worker inside the API process")

    # === REDIS RECONNECTION POLICY ===
    REDIS_MAX_RETRY_ATTEMPTS: int = Field(default=10)
    REDIS_RETRY_BASE_SECONDS: float = Field(default=0.1)
    REDIS_RETRY_CAP_SECONDS: float = Field(default=3.0)
    REDIS_MAX_RETRY_TIME_SECONDS: float = Field(default=3600.0)

    # === WHATSAPP (from .env) ===
    WHATSAPP_WEBHOOK_VERIFY_TOKEN: Optional[str] = Field(
        default=None, description="Token the platform echoes back during webhook verification"
    )

    # === MEDIA SETTINGS ===
    MEDIA_DOWNLOAD_TIMEOUT_SECONDS: float = Field(default=30.0)
    AWS_ACCESS_KEY_ID: Optional[str] = Field(default=None)
    AWS_SECRET_ACCESS_KEY: Optional[str] = Field(default=None)
    AWS_REGION: str = Field(default="us-east-1")
    AWS_S3_BUCKET: str = Field(default="generator-marketplace-media")

    # === SECRETS (from .env) ===
    SECRET_KEY: str = Field(default="change-me", description="Secret key for admin JWT tokens")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def storage_enabled(self) -> bool:
        """Real uploads need credentials and a non-development environment"""
        return bool(self.AWS_ACCESS_KEY_ID) and self.ENVIRONMENT.lower() != "development"

    @property
    def cors_origins_list(self) -> List[str]:
        """Get allowed CORS origins as a list"""
        if not self.CORS_ORIGINS:
            return ["*"]

        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
