"""
Helpdesk Ticket Service - Configuration Management
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


def sharepoint_api_url(site_url: str) -> str:
    """SharePoint REST root (``/_api/web``) for a site URL"""
    return f"{site_url.rstrip('/')}/_api/web"


class Settings(BaseSettings):
    """Application settings"""

    # FastAPI
    fastapi_env: str = "development"
    fastapi_host: str = "0.0.0.0"
    fastapi_port: int = 8000

    # List store backend: "supabase" or "sharepoint"
    list_store_backend: str = "supabase"

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""
    supabase_max_rows: int = 1000  # server-side "max rows" per response

    # SharePoint
    sharepoint_site_url: str = ""
    sharepoint_access_token: str = ""
    sharepoint_timeout: float = 30.0

    # Lists
    tickets_list: str = "Tickets"
    categories_list: str = "Categories"

    # Query engine
    search_count_ceiling: int = 5000
    category_options_limit: int = 200
    text_debounce_ms: int = 400

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False
    )

    @property
    def SHAREPOINT_API_URL(self) -> str:
        """SharePoint REST root for the configured site"""
        return sharepoint_api_url(self.sharepoint_site_url)

    @property
    def TEXT_DEBOUNCE_SECONDS(self) -> float:
        """Quiet period before a free-text edit is committed"""
        return self.text_debounce_ms / 1000.0


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
