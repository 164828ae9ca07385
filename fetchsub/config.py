"""
Configuration module for the FetchSub subtitle API.

This module centralizes all environment variables, constants, and runtime configuration
using pydantic-settings for type-safe configuration management.
"""

import os
import subprocess
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # CORS Configuration
    allowed_origin: str = Field(
        default="https://example.com",
        validation_alias="ALLOWED_ORIGIN",
        description="Allowed CORS origin for API requests"
    )

    # API Authentication
    api_key: str = Field(
        default="",
        validation_alias="API_KEY",
        description="API key for admin and cache endpoints"
    )

    cron_api_key: Optional[str] = Field(
        default=None,
        validation_alias="CRON_API_KEY",
        description="Bearer token expected by the monthly subscription credit endpoint"
    )

    allow_anonymous: bool = Field(
        default=True,
        validation_alias="ALLOW_ANONYMOUS",
        description="Accept X-Anonymous-User requests (never charged)"
    )

    # Directory Configuration
    cache_dir: str = Field(
        default="./cache",
        validation_alias="CACHE_DIR",
        description="Directory for temporary subtitle downloads"
    )

    cache_ttl_hours: int = Field(
        default=3,
        validation_alias="CACHE_TTL_HOURS",
        description="Time-to-live for leftover temporary files in hours"
    )

    # yt-dlp Configuration
    ytdlp_binary: str = Field(
        default="./bin/yt-dlp",
        validation_alias="YTDLP_BINARY",
        description="Path to standalone yt-dlp binary"
    )

    ytdlp_cookies_file: Optional[str] = Field(
        default=None,
        validation_alias="YTDLP_COOKIES_FILE",
        description="Path to cookies.txt for authenticated requests"
    )

    ytdlp_subtitle_timeout: int = Field(
        default=15,
        validation_alias="YTDLP_SUBTITLE_TIMEOUT",
        description="Seconds allowed for a single subtitle download"
    )

    ytdlp_title_timeout: int = Field(
        default=10,
        validation_alias="YTDLP_TITLE_TIMEOUT",
        description="Seconds allowed for a title lookup through yt-dlp"
    )

    ytdlp_playlist_timeout: int = Field(
        default=90,
        validation_alias="YTDLP_PLAYLIST_TIMEOUT",
        description="Seconds allowed for listing playlist video IDs"
    )

    # Concurrency Control
    max_concurrent_extractions: int = Field(
        default=5,
        validation_alias="MAX_CONCURRENT_EXTRACTIONS",
        description="Maximum videos processed at once in a batch"
    )

    max_playlist_videos: int = Field(
        default=50,
        validation_alias="MAX_PLAYLIST_VIDEOS",
        description="Maximum videos taken from a playlist"
    )

    max_channel_videos: int = Field(
        default=20,
        validation_alias="MAX_CHANNEL_VIDEOS",
        description="Maximum recent uploads taken from a channel"
    )

    request_timeout: int = Field(
        default=45,
        validation_alias="REQUEST_TIMEOUT",
        description="Overall seconds allowed for one video in a batch"
    )

    # In-memory transcript caches
    transcript_cache_ttl: int = Field(
        default=900,
        validation_alias="TRANSCRIPT_CACHE_TTL",
        description="Seconds a fetched transcript stays cached"
    )

    negative_cache_ttl: int = Field(
        default=180,
        validation_alias="NEGATIVE_CACHE_TTL",
        description="Seconds a known-failed video is remembered"
    )

    # Coins
    welcome_bonus_coins: int = Field(
        default=50,
        validation_alias="WELCOME_BONUS_COINS",
        description="Coins granted when a user's coin record is created"
    )

    monthly_credit_enabled: bool = Field(
        default=False,
        validation_alias="MONTHLY_CREDIT_ENABLED",
        description="Run the monthly subscription credit on an in-process schedule"
    )

    # Supabase Configuration
    supabase_url: Optional[str] = Field(
        default=None,
        validation_alias="SUPABASE_URL",
        description="Supabase project URL"
    )

    supabase_service_key: Optional[str] = Field(
        default=None,
        validation_alias="SUPABASE_SERVICE_KEY",
        description="Supabase service role key"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Initialize settings
settings = get_settings()

CACHE_DIR = settings.cache_dir
CACHE_TTL_HOURS = settings.cache_ttl_hours

os.makedirs(os.path.join(CACHE_DIR, "subtitles"), exist_ok=True)
SUBTITLES_DIR = os.path.join(CACHE_DIR, "subtitles")

# yt-dlp Configuration
YTDLP_BINARY = settings.ytdlp_binary
YTDLP_COOKIES_FILE = settings.ytdlp_cookies_file
YTDLP_SUBTITLE_TIMEOUT = settings.ytdlp_subtitle_timeout
YTDLP_TITLE_TIMEOUT = settings.ytdlp_title_timeout
YTDLP_PLAYLIST_TIMEOUT = settings.ytdlp_playlist_timeout

# Concurrency control
MAX_CONCURRENT_EXTRACTIONS = settings.max_concurrent_extractions
MAX_PLAYLIST_VIDEOS = settings.max_playlist_videos
MAX_CHANNEL_VIDEOS = settings.max_channel_videos
REQUEST_TIMEOUT = settings.request_timeout

TRANSCRIPT_CACHE_TTL = settings.transcript_cache_ttl
NEGATIVE_CACHE_TTL = settings.negative_cache_ttl

WELCOME_BONUS_COINS = settings.welcome_bonus_coins

# Supabase Configuration
SUPABASE_URL = settings.supabase_url
SUPABASE_SERVICE_KEY = settings.supabase_service_key


# Log yt-dlp binary status on module import
def _log_ytdlp_status():
    """Log yt-dlp binary version on startup."""
    if os.path.exists(YTDLP_BINARY):
        try:
            result = subprocess.run(
                [YTDLP_BINARY, '--version'],
                capture_output=True,
                text=True,
                timeout=5
            )
            if result.returncode == 0:
                print(f"INFO: yt-dlp standalone binary version: {result.stdout.strip()}")
        except Exception as e:
            print(f"WARNING: Could not get yt-dlp version: {e}")
    else:
        print(f"WARNING: yt-dlp binary not found at {YTDLP_BINARY}")
        print("WARNING: Subtitle extraction will fail. Download from: https://github.com/yt-dlp/yt-dlp/releases")


_log_ytdlp_status()

print(f"INFO: Max concurrent extractions set to: {MAX_CONCURRENT_EXTRACTIONS}")

if SUPABASE_URL and SUPABASE_SERVICE_KEY:
    print("INFO: Supabase configuration detected")
else:
    print("INFO: Supabase not configured (SUPABASE_URL/SUPABASE_SERVICE_KEY missing) - coin ledger disabled")
