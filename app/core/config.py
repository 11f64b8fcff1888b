import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Gemini
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT: float = 60.0

    # Storage
    DATABASE_URL: str = "sqlite+aiosqlite:///./scribe.db"
    DATABASE_ECHO: bool = False

    # Transient audio files (uploads and decoded WAV)
    SCRIBE_TMP: str = "./.tmp"

    # Canonical PCM handed to the transcriber: 16 kHz mono s16le
    PCM_SAMPLE_RATE: int = 16000
    PCM_CHANNELS: int = 1
    PCM_SAMPLE_WIDTH: int = 2

    # HTTP
    CORS_ORIGINS: List[str] = ["*"]

    # General
    LOG_LEVEL: str = "INFO"
    ENV: str = os.getenv("ENV", "development")
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Ensure .env is loaded once
    load_dotenv(override=False)
    return Settings()
