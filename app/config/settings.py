from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None

    # Backend selection: "supabase" talks to the hosted project, "memory" keeps everything in-process
    store_backend: str = "supabase"

    # Session cookies (same names the browser client writes)
    access_cookie_name: str = "sb-access-token"
    refresh_cookie_name: str = "sb-refresh-token"
    cookie_secure: bool = False
    cookie_max_age: int = 60 * 60 * 24 * 7
    session_ttl_seconds: int = 3600  # memory backend only
    bcrypt_rounds: int = 12  # memory backend only

    # Links sent in auth emails
    site_url: str = "http://localhost:3000"

    # Page views and change feed
    view_cache_ttl_seconds: float = 30.0
    view_cache_max_entries: int = 1024
    change_log_size: int = 500

    # App
    app_name: str = "competehub-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    auth_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_memory_backend(self) -> bool:
        return self.store_backend.lower() == "memory"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
