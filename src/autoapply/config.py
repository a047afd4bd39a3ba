from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "AutoApply"
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8788
    log_level: str = "INFO"

    database_url: str = "sqlite:///./data/autoapply.db"
    data_dir: Path = Path("./data")
    temp_dir: Path = Path("./data/tmp")

    browser_headless: bool = True
    browser_nav_timeout_ms: int = 30000
    browser_selector_timeout_ms: int = 5000
    browser_apply_timeout_ms: int = 10000
    browser_form_timeout_ms: int = 10000
    browser_settle_timeout_ms: int = 10000
    browser_viewport_width: int = 1920
    browser_viewport_height: int = 1080
    browser_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    attempt_timeout_sec: int = 60
    pacing_min_sec: float = 2.0
    pacing_max_sec: float = 5.0
    max_applications_per_user: int = 10

    search_base_url: str = "https://jobs.workable.com/search"
    default_search_terms: str = "software engineer developer programmer"
    default_search_location: str = "Remote"
    discovery_max_postings: int = 10
    discovery_fetch_descriptions: bool = False

    phone_country: str = "United States"
    phone_placeholder: str = "5555555555"
    phone_use_profile: bool = False

    llm_enabled: bool = True
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"
    openai_timeout_sec: int = 20

    local_llm_enabled: bool = False
    local_llm_base_url: str = "http://localhost:11434/v1"
    local_llm_api_key: str = "local"
    local_llm_model: str = "qwen2.5:14b-instruct"
    local_llm_timeout_sec: int = 30

    run_interval_min: int = 15
    run_on_start: bool = True

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator("attempt_timeout_sec", "run_interval_min", "discovery_max_postings")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be positive")
        return value

    @model_validator(mode="after")
    def validate_pacing(self) -> "Settings":
        if self.pacing_min_sec < 0 or self.pacing_max_sec < self.pacing_min_sec:
            raise ValueError("pacing window must satisfy 0 <= pacing_min_sec <= pacing_max_sec")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
