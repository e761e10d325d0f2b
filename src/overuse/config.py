"""Shared configuration for the overuse reconciliation service."""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class OveruseSettings(BaseSettings):
    """Service-wide settings."""

    # Billing dashboard (remote target)
    DASHBOARD_BASE_URL: str = "https://app.polaroo.com"
    DASHBOARD_LOGIN_PATH: str = "/login"
    DASHBOARD_ACCOUNTING_PATH: str = "/dashboard/accounting"
    DASHBOARD_EMAIL: Optional[str] = None
    DASHBOARD_PASSWORD: Optional[str] = None

    # Browser: remote CDP endpoint (e.g. Browserless) or local Chromium
    BROWSER_WS_URL: Optional[str] = None
    FORCE_LOCAL_CHROMIUM: bool = False
    BROWSER_HEADLESS: bool = True
    PROXY_URL: Optional[str] = None
    PAGE_TIMEOUT_MS: int = 15_000
    NAVIGATION_TIMEOUT_MS: int = 30_000

    # Session pool
    SESSION_CEILING: int = 1
    SLOT_WAIT_TIMEOUT_SECONDS: float = 300.0

    # Batch pacing
    BATCH_SIZE: int = 15
    INTER_ITEM_DELAY_SECONDS: float = 25.0
    BATCH_COOLDOWN_SECONDS: float = 60.0
    EXTRACTION_ATTEMPTS: int = 2
    EXTRACTION_BACKOFF_SECONDS: float = 0.8
    # Cap on properties per run (0 = no cap)
    TEMP_LIMIT: int = 0
    # Re-run a property once when bills were found but the cost came out as zero
    RETRY_ON_ZERO_COST: bool = True
    # Finished runs kept in memory by the API for status and event replay
    RUN_HISTORY_LIMIT: int = 50

    # Reconciliation rules
    BILLING_CUTOFF_DAY: int = 9
    COVERAGE_MIN_DAYS: int = 15

    # LLM fallback selector: openai (default)
    ENABLE_LLM_FALLBACK: bool = True
    LLM_PROVIDER: str = "openai"
    OPENAI_API_KEY: Optional[str] = None
    LLM_MODEL: str = "gpt-4o-mini"
    TEMPERATURE: float = 0.0

    # Observability: LLM tracing (log prompt/response/latency)
    ENABLE_LLM_TRACING: bool = False
    TRACING_LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING
    LOG_LEVEL: str = "INFO"

    DEBUG: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def login_url(self) -> str:
        return self.DASHBOARD_BASE_URL.rstrip("/") + self.DASHBOARD_LOGIN_PATH

    @property
    def accounting_url(self) -> str:
        return self.DASHBOARD_BASE_URL.rstrip("/") + self.DASHBOARD_ACCOUNTING_PATH

    def has_dashboard_credentials(self) -> bool:
        return bool(self.DASHBOARD_EMAIL and self.DASHBOARD_PASSWORD)

    def has_browser_endpoint(self) -> bool:
        return bool(self.BROWSER_WS_URL) or self.FORCE_LOCAL_CHROMIUM

    def require_dashboard_access(self) -> None:
        """Raise ConfigurationError when the dashboard cannot be reached with these settings."""
        if not self.has_dashboard_credentials():
            raise ConfigurationError(
                "DASHBOARD_EMAIL",
                "DASHBOARD_EMAIL and DASHBOARD_PASSWORD must be set to log into the billing dashboard",
            )
        if not self.has_browser_endpoint():
            raise ConfigurationError(
                "BROWSER_WS_URL",
                "BROWSER_WS_URL is not configured (or set FORCE_LOCAL_CHROMIUM=true)",
            )


@lru_cache
def get_settings() -> OveruseSettings:
    return OveruseSettings()


def get_settings_dep() -> OveruseSettings:
    """FastAPI dependency that returns settings."""
    return get_settings()
