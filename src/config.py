from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Place Reviews Extractor"
    app_env: str = "dev"
    log_level: str = "INFO"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    sentiment_batch_size: int = 20

    scraper_headless: bool = True
    scraper_browser_channel: str = ""
    scraper_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/133.0.0.0 Safari/537.36"
    )
    scraper_viewport_width: int = 1366
    scraper_viewport_height: int = 900
    scraper_locale: str = "en-US"
    scraper_accept_language: str = "en-US,en;q=0.9"
    scraper_language: str = "en"
    scraper_navigation_timeout_ms: int = 60000
    scraper_container_timeout_ms: int = 5000
    scraper_max_reviews: int = 500
    scraper_scroll_step_px: int = 1000
    scraper_scroll_settle_ms: int = 2000
    scraper_panel_settle_ms: int = 3000
    scraper_interstitial_settle_ms: int = 1500
    scraper_extra_chromium_args: Annotated[list[str], NoDecode] = Field(default_factory=list)
    scraper_debug_screenshots_dir: str = ""

    @field_validator("scraper_extra_chromium_args", mode="before")
    @classmethod
    def parse_scraper_extra_chromium_args(cls, value: object) -> object:
        if isinstance(value, str):
            return [arg.strip() for arg in value.split(",") if arg.strip()]
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
