from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List, Literal


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required by the promote_superadmin script
    store_timeout_seconds: int = 5

    # Account store tables
    accounts_table: str = "users"
    bootstrap_table: str = "account_bootstrap"

    # Authorization
    unknown_resource_policy: Literal["allow", "deny"] = "allow"
    login_path: str = "/admin/login"
    waiting_path: str = "/admin/waiting-approval"
    dashboard_path: str = "/admin"
    forbidden_redirect_path: Optional[str] = None  # None sends missing-permission redirects to waiting_path
    identity_cache_ttl_seconds: int = 60

    # App
    app_name: str = "tixmgmt-portal"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
