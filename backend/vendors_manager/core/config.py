from typing import List, Optional, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "Vendors Manager"
    API_V1_STR: str = "/api"
    # Must be overridden through .env or the environment in production
    SECRET_KEY: str = Field(
        default="dev-only-secret-key-please-change-in-production",
        description="JWT signing key"
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 1 day
    TOKEN_ENCRYPTION_KEY: str = Field(
        default="dev-only-token-encryption-key",
        description="Secret used to derive the AES key for invitation/reset links"
    )

    # CORS
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Database
    SQLITE_DATABASE_URI: str = "sqlite:///./vendors_manager.db"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True
    SQL_DEBUG: bool = False  # log every SQL statement

    # Links sent by e-mail point at the web front-end
    APP_BASE_URL: str = "http://localhost:3000"

    # Passwords and tokens
    BCRYPT_ROUNDS: int = 12
    INVITATION_TOKEN_EXPIRY_HOURS: int = 48
    RESET_TOKEN_EXPIRY_HOURS: int = 2

    # Invoice validation
    DEFAULT_TOLERANCE_THRESHOLD: float = 5.0

    # E-mail: "smtp" delivers, "console" only logs
    EMAIL_BACKEND: str = "console"
    EMAIL_FROM: str = "no-reply@vendors-manager.local"
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    EMAIL_RATE_LIMIT_MAX: int = 100  # per identifier per window
    EMAIL_RATE_LIMIT_WINDOW_MINUTES: int = 60

    # Scheduled jobs
    SCHEDULER_ENABLED: bool = True
    CONTRACT_EXPIRY_HOUR: int = 1  # 0-23
    CONTRACT_EXPIRY_MINUTE: int = 0  # 0-59
    TOKEN_CLEANUP_HOUR: int = 2
    TOKEN_CLEANUP_MINUTE: int = 30

    # Bootstrap super-user, created once when the users table is empty
    FIRST_SUPERUSER_EMAIL: Optional[str] = None
    FIRST_SUPERUSER_PASSWORD: Optional[str] = None
    FIRST_SUPERUSER_NAME: str = "Administrator"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"Loaded settings: API_V1_STR={settings.API_V1_STR}, CORS={settings.BACKEND_CORS_ORIGINS}")
