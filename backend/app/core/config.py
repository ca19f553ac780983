import json
import os
import secrets

from pydantic_settings import BaseSettings


_insecure_keys = {"CHANGE_ME", "your-secret-key-here-change-in-production", "secret", "jwt_secret", "changeme", ""}


class Settings(BaseSettings):
    app_name: str = "Christmas Wishlist API"
    frontend_url: str = "http://localhost:3000"
    environment: str = "local"
    backend_cors_origins_raw: str = ""  # Comma-separated or JSON array

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "allow",
    }

    @property
    def backend_cors_origins(self) -> list[str]:
        """Parse CORS origins from raw string."""
        raw = os.getenv("BACKEND_CORS_ORIGINS", self.backend_cors_origins_raw).strip()
        if not raw:
            return ["http://localhost:3000", "http://127.0.0.1:3000"]
        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    return [str(item).strip() for item in parsed if str(item).strip()]
            except ValueError:
                pass
        return [item.strip() for item in raw.split(",") if item.strip()]

    # Database: sqlite+aiosqlite:///./wishlist.db (dev) | postgresql+asyncpg://... (prod)
    database_dsn: str = "sqlite+aiosqlite:///./wishlist.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10

    access_token_expire_minutes: int = 60 * 24 * 7
    # SECURITY: override via JWT_SECRET_KEY env var; only local mode tolerates the default
    jwt_secret_key: str = "CHANGE_ME"
    jwt_algorithm: str = "HS256"

    rate_limit_enabled: bool = True
    rate_limit_requests: int = 10
    rate_limit_window_seconds: int = 60
    rate_limit_login_requests: int = 5
    rate_limit_claim_requests: int = 20

    # Wishlists close at the end of this day when no end date is given
    default_end_month: int = 12
    default_end_day: int = 25
    share_token_max_attempts: int = 1000
    # IANA zone name for deadline checks; empty means the host's local time
    server_timezone: str = ""

    log_level: str = "INFO"
    log_file: str = ""

    def validate_secrets(self) -> bool:
        """Refuse to start with insecure defaults outside local mode.

        Returns True when an ephemeral local-only secret was generated.
        """
        if self.jwt_secret_key in _insecure_keys or len(self.jwt_secret_key) < 32:
            if (self.environment or "local").lower() == "local":
                self.jwt_secret_key = secrets.token_urlsafe(64)
                return True
            raise RuntimeError(
                "JWT_SECRET_KEY must be set to a secure value (32+ chars) in production"
            )
        return False


def get_settings() -> Settings:
    return Settings()
