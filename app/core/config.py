

import json
import os
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings model.

    All configuration variables are loaded from environment variables
    with fallback defaults for development.
    """

    environment: str = os.getenv("ENVIRONMENT", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./fluxai.db")

    # JWT settings
    jwt_secret: Optional[str] = os.getenv("JWT_SECRET")
    algorithm: str = os.getenv("ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    # Session cookie
    cookie_name: str = os.getenv("COOKIE_NAME", "token")
    cookie_samesite: str = os.getenv("COOKIE_SAMESITE", "lax")

    # Comma-separated user ids with admin access
    admin_user_ids: str = os.getenv("ADMIN_USER_IDS", "")

    # Points
    signup_bonus_points: int = int(os.getenv("SIGNUP_BONUS_POINTS", "50"))

    # Google OAuth settings
    google_client_id: Optional[str] = os.getenv("GOOGLE_CLIENT_ID")
    google_client_secret: Optional[str] = os.getenv("GOOGLE_CLIENT_SECRET")
    google_redirect_uri: str = os.getenv(
        "GOOGLE_REDIRECT_URI", "http://localhost:8000/api/auth/google/callback"
    )

    # Stripe settings
    stripe_secret_key: Optional[str] = os.getenv("STRIPE_SECRET_KEY")
    stripe_webhook_secret: Optional[str] = os.getenv("STRIPE_WEBHOOK_SECRET")
    stripe_price_points: str = os.getenv("STRIPE_PRICE_POINTS", '{"price_basic": 200}')

    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def admin_ids(self) -> List[str]:
        """Admin allow-list parsed from ADMIN_USER_IDS."""
        return [uid.strip() for uid in self.admin_user_ids.split(",") if uid.strip()]

    @property
    def price_points(self) -> Dict[str, int]:
        """Stripe price id -> points granted on purchase."""
        if not self.stripe_price_points:
            return {}
        mapping = json.loads(self.stripe_price_points)
        return {str(price_id): int(points) for price_id, points in mapping.items()}


# Global settings instance
settings = Settings()
