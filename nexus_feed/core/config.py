"""
config.py — Runtime settings for the feed engine and API.

Every field maps to an upper-case env var (POLL_INTERVAL_SECONDS, ...) and
can also come from a local .env file; .env.example lists them. Provider
URLs are settings so tests and staging can point adapters elsewhere.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the display surface.
    cors_origins_str: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── AI search fallback ────────────────────────────────────────
    # Google AI Studio key; only read when ai_mock_mode is False.
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # Canned search headlines instead of Gemini calls. conftest.py forces it on.
    ai_mock_mode: bool = True

    # ─── Upstream providers ────────────────────────────────────────
    cryptocompare_news_url: str = "https://min-api.cryptocompare.com/data/v2/news/?lang=EN"
    hackernews_url: str = "https://api.hnpwa.com/v0/news/1.json"
    coingecko_price_url: str = "https://api.coingecko.com/api/v3/simple/price"

    # Transport-level bound on a single upstream call (seconds).
    http_timeout_seconds: float = 10.0

    # Fixed-batch providers are truncated to this many records.
    provider_batch_size: int = 15
    # How many headlines the search prompt asks for.
    search_headline_count: int = 10

    # ─── Feed engine ───────────────────────────────────────────────
    poll_interval_seconds: float = 60.0
    market_refresh_interval_seconds: float = 60.0

    # False: an empty refresh clears the feed (historic behaviour).
    # True: an empty refresh leaves the prior snapshot in place.
    feed_keep_prior_on_empty: bool = False

    start_live: bool = True
    default_category: str = "ALL"

    # Start pollers in the app lifespan. Tests turn this off.
    engine_autostart: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Read once at import; tests patch attributes on this instance.
settings = Settings()
