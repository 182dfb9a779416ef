import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/app.db")).resolve()
        self.site_url = os.getenv("SITE_URL", "http://localhost:3000").rstrip("/")

        self.jwt_secret = os.getenv("JWT_SECRET", "change-me")
        self.jwt_expiration_hours = self._get_int("JWT_EXPIRATION_HOURS", default=24 * 30)
        self.session_cookie_name = os.getenv("SESSION_COOKIE_NAME", "session_token")

        self.stripe_secret_key = os.getenv("STRIPE_SECRET_KEY")
        self.stripe_webhook_secret = os.getenv("STRIPE_WEBHOOK_SECRET")
        self.stripe_webhook_tolerance = self._get_int("STRIPE_WEBHOOK_TOLERANCE_SECONDS", default=300)
        self.stripe_price_id_monthly = os.getenv("STRIPE_PRICE_ID_MONTHLY", "")
        self.stripe_price_id_yearly = os.getenv("STRIPE_PRICE_ID_YEARLY", "")

        self.sanity_project_id = os.getenv("SANITY_PROJECT_ID")
        self.sanity_dataset = os.getenv("SANITY_DATASET", "production")
        self.sanity_api_version = os.getenv("SANITY_API_VERSION", "2024-01-01")
        self.sanity_token = os.getenv("SANITY_TOKEN")

        self.protected_route_pattern = os.getenv("PROTECTED_ROUTE_PATTERN", r"^/content/[^/]+$")
        self.login_path = os.getenv("LOGIN_PATH", "/login")

        self.login_ip_limit = self._get_int("LOGIN_IP_LIMIT", default=5)
        self.login_account_limit = self._get_int("LOGIN_ACCOUNT_LIMIT", default=3)
        self.login_lockout_minutes = self._get_int("LOGIN_LOCKOUT_MINUTES", default=15)

        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

    @property
    def sanity_configured(self) -> bool:
        return bool(self.sanity_project_id)

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
