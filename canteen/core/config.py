"""Application configuration."""

from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Campus Canteen API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    database_url: str = getenv("DATABASE_URL", "sqlite+aiosqlite:///./campus_canteen.db")
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", str(60 * 24 * 7)))
    marketplace_code: str = getenv("MARKETPLACE_CODE", "CC")
    default_university_code: str = getenv("DEFAULT_UNIVERSITY_CODE", "CC")
    timer_sync_interval_seconds: float = float(getenv("TIMER_SYNC_INTERVAL_SECONDS", "30"))
    currency: str = getenv("CURRENCY", "INR")
    razorpay_key_id: str = getenv("RAZORPAY_KEY_ID", "")
    razorpay_key_secret: str = getenv("RAZORPAY_KEY_SECRET", "")
    razorpay_api_url: str = getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")

    @property
    def payments_demo_mode(self) -> bool:
        return not (self.razorpay_key_id and self.razorpay_key_secret)


settings: Settings = Settings()
