from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for /admin endpoints and auth admin calls

    # Email (Resend)
    resend_api_key: Optional[str] = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_from: str = "PileTrackerPro <noreply@piletrackerpro.com>"

    # Weather / geocoding
    open_meteo_forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    open_meteo_archive_url: str = "https://archive-api.open-meteo.com/v1/archive"
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    http_timeout_seconds: float = 10.0

    # Pile tracking defaults
    default_embedment_tolerance: float = 1.0
    slow_drive_threshold_minutes: float = 10.0
    invitation_ttl_days: int = 7

    # App
    app_name: str = "piletrackerpro-backend"
    app_base_url: str = "http://localhost:3000"  # frontend origin used in emailed/QR links
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    field_entry_rate_limit: str = "30/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def build_app_url(self, path: str) -> str:
        return f"{self.app_base_url.rstrip('/')}/{path.lstrip('/')}"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
