"""
Centralized Configuration Management
====================================
All configuration values are read from environment variables (a local .env
file is loaded first when present). Secrets should be injected by the
deployment environment.
"""
import logging
import os
from enum import Enum
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

WEAK_SECRETS = {"secret", "dev-secret", "test", "jwt-secret", "changeme", "password"}


class Environment(str, Enum):
    """Deployment environment types"""
    DEVELOPMENT = "development"
    LOCAL = "local"
    TEST = "test"
    PRODUCTION = "production"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Config:
    """Base configuration with environment-aware settings"""

    # ==================== ENVIRONMENT DETECTION ====================
    @staticmethod
    def get_environment() -> Environment:
        """Detect current deployment environment from ENV / NODE_ENV"""
        env = (os.getenv("ENV") or os.getenv("NODE_ENV") or "development").lower()
        if env in ("prod", "production"):
            return Environment.PRODUCTION
        if env == "local":
            return Environment.LOCAL
        if env in ("test", "testing"):
            return Environment.TEST
        return Environment.DEVELOPMENT

    ENVIRONMENT = get_environment()

    # ==================== DATABASE CONFIGURATION ====================
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./codejudge.db")
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "300"))

    # ==================== AUTHENTICATION & SECURITY ====================
    ACCESS_TOKEN_SECRET: Optional[str] = os.getenv("ACCESS_TOKEN_SECRET", "").strip() or None
    REFRESH_TOKEN_SECRET: Optional[str] = os.getenv("REFRESH_TOKEN_SECRET", "").strip() or None
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRY_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRY_MINUTES", "1440"))
    REFRESH_TOKEN_EXPIRY_DAYS: int = int(os.getenv("REFRESH_TOKEN_EXPIRY_DAYS", "7"))

    # ==================== JUDGE0 CONFIGURATION ====================
    JUDGE0_API_URL: str = os.getenv("JUDGE0_API_URL", "http://localhost:2358").rstrip("/")
    JUDGE0_API_KEY: Optional[str] = os.getenv("JUDGE0_API_KEY") or None
    JUDGE0_HOST: Optional[str] = os.getenv("JUDGE0_HOST") or None
    JUDGE0_REQUEST_TIMEOUT: float = float(os.getenv("JUDGE0_REQUEST_TIMEOUT", "30"))
    JUDGE0_POLL_INTERVAL_SECONDS: float = float(os.getenv("JUDGE0_POLL_INTERVAL_SECONDS", "2"))
    JUDGE0_POLL_TIMEOUT_SECONDS: float = float(os.getenv("JUDGE0_POLL_TIMEOUT_SECONDS", "60"))
    JUDGE0_POLL_BACKOFF: float = float(os.getenv("JUDGE0_POLL_BACKOFF", "1.0"))
    JUDGE0_MAX_POLL_INTERVAL_SECONDS: float = float(os.getenv("JUDGE0_MAX_POLL_INTERVAL_SECONDS", "10"))

    # ==================== FRONTEND & CORS CONFIGURATION ====================
    FRONTEND_URL: Optional[str] = os.getenv("FRONTEND_URL", "").strip() or None

    @staticmethod
    def get_cors_origins() -> List[str]:
        """Get environment-specific CORS origins"""
        origins = []
        if Config.FRONTEND_URL:
            origins.append(Config.FRONTEND_URL)

        if Config.ENVIRONMENT in (Environment.DEVELOPMENT, Environment.LOCAL):
            origins.extend([
                "http://localhost:5173",
                "http://localhost:3000",
                "http://127.0.0.1:5173",
                "http://127.0.0.1:3000",
            ])

        return list(dict.fromkeys(origins))

    # ==================== SERVER CONFIGURATION ====================
    PORT: int = int(os.getenv("PORT", "8080"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    API_PREFIX: str = os.getenv("API_PREFIX", "/api/v1").rstrip("/")

    # ==================== RATE LIMITING ====================
    RATE_LIMIT_ENABLED: bool = _env_bool("RATE_LIMIT_ENABLED", "true")
    RATE_LIMIT_SUBMISSIONS_PER_MINUTE: int = int(os.getenv("RATE_LIMIT_SUBMISSIONS_PER_MINUTE", "10"))

    # ==================== LOGGING & MONITORING ====================
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    ENABLE_SQL_LOGGING: bool = _env_bool("ENABLE_SQL_LOGGING", "false")

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT in (Environment.DEVELOPMENT, Environment.LOCAL, Environment.TEST)

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION

    # ==================== VALIDATION ====================
    @classmethod
    def validate_config(cls) -> None:
        """Validate critical configuration settings"""
        errors = []

        if not cls.DATABASE_URL:
            errors.append("DATABASE_URL is required")
        if not cls.ACCESS_TOKEN_SECRET:
            errors.append("ACCESS_TOKEN_SECRET is required")
        elif cls.ACCESS_TOKEN_SECRET.lower() in WEAK_SECRETS:
            errors.append("ACCESS_TOKEN_SECRET cannot use a weak/default value")
        if not cls.REFRESH_TOKEN_SECRET:
            errors.append("REFRESH_TOKEN_SECRET is required")
        elif cls.REFRESH_TOKEN_SECRET.lower() in WEAK_SECRETS:
            errors.append("REFRESH_TOKEN_SECRET cannot use a weak/default value")
        if not cls.JUDGE0_API_URL:
            errors.append("JUDGE0_API_URL is required")
        if cls.JUDGE0_POLL_INTERVAL_SECONDS <= 0 or cls.JUDGE0_POLL_TIMEOUT_SECONDS <= 0:
            errors.append("JUDGE0 poll interval and timeout must be positive")

        if not cls.FRONTEND_URL:
            logger.warning("FRONTEND_URL not set - only development origins are allowed by CORS")

        if errors:
            raise ValueError("Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

        logger.info("Configuration validated successfully for %s environment", cls.ENVIRONMENT.value)

    @classmethod
    def log_config_summary(cls) -> None:
        """Log configuration summary (without secrets)"""
        logger.info("=" * 60)
        logger.info("CodeJudge Configuration Summary - %s Environment", cls.ENVIRONMENT.value.upper())
        logger.info("=" * 60)
        logger.info("Database: %s", cls.DATABASE_URL.split("://", 1)[0])
        logger.info("Judge0: %s", cls.JUDGE0_API_URL)
        logger.info("Judge0 poll: every %ss, timeout %ss", cls.JUDGE0_POLL_INTERVAL_SECONDS, cls.JUDGE0_POLL_TIMEOUT_SECONDS)
        logger.info("CORS Origins: %d allowed", len(cls.get_cors_origins()))
        logger.info("Port: %d", cls.PORT)
        logger.info("Rate Limiting: %s", "enabled" if cls.RATE_LIMIT_ENABLED else "disabled")
        logger.info("=" * 60)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for the service"""
    logging.basicConfig(
        level=(level or Config.LOG_LEVEL).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if Config.ENABLE_SQL_LOGGING:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
