import logging
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Fallbacks keep a fresh checkout reachable. Production must override them.
DEFAULT_JWT_SECRET_KEY = "change-this-in-production"
DEFAULT_SYS_ADMIN_USERNAME = "sysadmin"
DEFAULT_SYS_ADMIN_PASSWORD = "changeme123"


class Settings(BaseSettings):
    environment: str = "development"

    database_url: str = "sqlite:///./reachmai.db"

    jwt_secret_key: str = DEFAULT_JWT_SECRET_KEY
    jwt_algorithm: str = "HS256"
    session_token_expire_hours: int = 24
    setup_token_expire_days: int = 7
    password_reset_expire_minutes: int = 60

    staff_invitation_expire_days: int = 7

    # Static credentials for the system-admin console
    sys_admin_username: str = DEFAULT_SYS_ADMIN_USERNAME
    sys_admin_password: str = DEFAULT_SYS_ADMIN_PASSWORD

    # CORS configuration - comma-separated list of allowed origins
    # Example: "https://portal.reachmai.org,https://admin.reachmai.org"
    cors_allowed_origins: Optional[str] = None

    # SPA base URL for invitation, setup and reset links
    # Default: http://localhost:5173 (vite dev server)
    frontend_base_url: str = "http://localhost:5173"

    # Email (SendGrid)
    sendgrid_api_key: str = ""
    email_from_address: str = "noreply@reachmai.org"
    email_from_name: str = "Musical Arts Institute"

    login_rate_limit_requests: int = 10
    login_rate_limit_window_seconds: int = 300

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    def insecure_defaults(self) -> list[str]:
        """Names of security settings still holding their fallback value."""
        found = []
        if self.jwt_secret_key == DEFAULT_JWT_SECRET_KEY:
            found.append("JWT_SECRET_KEY")
        if self.sys_admin_username == DEFAULT_SYS_ADMIN_USERNAME:
            found.append("SYS_ADMIN_USERNAME")
        if self.sys_admin_password == DEFAULT_SYS_ADMIN_PASSWORD:
            found.append("SYS_ADMIN_PASSWORD")
        return found

    def validate_for_environment(self) -> None:
        """Refuse to start a production deployment on fallback secrets.

        Outside production the fallbacks are allowed and only logged.
        """
        insecure = self.insecure_defaults()
        if not insecure:
            return
        if self.is_production:
            raise ConfigurationError(
                "Production deployment is using fallback values for: " + ", ".join(insecure),
                details={"settings": insecure},
            )
        logger.warning(
            "Using fallback security settings",
            extra={"environment": self.environment, "settings": insecure},
        )

    def get_cors_origins(self) -> list[str]:
        """Get list of CORS allowed origins, combining defaults with env var.

        - Strips whitespace
        - Removes trailing slashes
        - Deduplicates
        """
        default_origins = [
            "http://localhost:5173",
            "http://localhost:3000",
        ]

        all_origins = list(default_origins)

        if self.cors_allowed_origins:
            for origin in self.cors_allowed_origins.split(","):
                cleaned = origin.strip().rstrip("/")
                if cleaned and cleaned not in all_origins:
                    all_origins.append(cleaned)

        return all_origins


@lru_cache()
def get_settings() -> Settings:
    return Settings()
