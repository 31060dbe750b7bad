"""
Radio Configuration Management
Centralized settings using Pydantic with environment variable support
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RadioSettings(BaseSettings):
    """Radio application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ============================================================================
    # APPLICATION SETTINGS
    # ============================================================================
    APP_NAME: str = "Radio"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # ============================================================================
    # BACKEND (BaaS) SETTINGS
    # ============================================================================
    BAAS_URL: str = Field(default="http://127.0.0.1:8090")
    BAAS_ADMIN_TOKEN: Optional[str] = Field(default=None)
    BAAS_TIMEOUT_SECONDS: float = Field(default=10.0)

    USERS_COLLECTION: str = "users"
    ROOMS_COLLECTION: str = "radio_rooms"
    TRACKS_COLLECTION: str = "radio_music_tracks"
    REQUESTS_COLLECTION: str = "radio_generate_requests"
    CALLBACKS_COLLECTION: str = "radio_generate_callbacks"
    REACTIONS_COLLECTION: str = "radio_user_track_reaction"
    PLAYLISTS_COLLECTION: str = "radio_playlists"
    PLAYLIST_TRACKS_COLLECTION: str = "radio_playlist_track"

    # ============================================================================
    # ROOM SETTINGS
    # ============================================================================
    ROOM_ID: Optional[str] = Field(default=None)
    ROOM_NEXT_TRACK_TAG: str = Field(default="lofi")
    HOME_FEED_KEYWORDS: List[str] = Field(default_factory=lambda: ["lofi", "christmas"])

    # ============================================================================
    # MUSIC GENERATION API SETTINGS
    # ============================================================================
    MUSIC_API_URL: str = Field(default="https://api.sunoapi.org/api/v1/generate")
    MUSIC_API_KEY: Optional[str] = Field(default=None)
    MUSIC_API_TIMEOUT_SECONDS: float = Field(default=30.0)
    DEFAULT_MODEL: str = Field(default="V5")
    PUBLIC_BASE_URL: str = Field(default="http://localhost:8000")

    # Webhook must be acknowledged within the provider's 15 second window
    CALLBACK_PROCESSING_BUDGET_SECONDS: float = Field(default=12.0)

    STORE_MEDIA_FILES: bool = Field(default=False)
    # Per download; stays under the callback budget
    MEDIA_FETCH_TIMEOUT_SECONDS: float = Field(default=5.0)

    # ============================================================================
    # AI GATEWAY SETTINGS
    # ============================================================================
    AI_GATEWAY_URL: str = Field(default="https://ai-gateway.vercel.sh/v1/chat/completions")
    AI_GATEWAY_API_KEY: Optional[str] = Field(default=None)
    AI_GATEWAY_MODEL: str = Field(default="openai/gpt-5.1-thinking")
    AI_GATEWAY_TIMEOUT_SECONDS: float = Field(default=60.0)

    # ============================================================================
    # SESSION SETTINGS
    # ============================================================================
    SESSION_COOKIE_NAME: str = Field(default="token")
    SESSION_MAX_AGE_SECONDS: int = Field(default=60 * 60 * 24 * 7)  # 7 days
    COOKIE_SECURE: bool = Field(default=False)
    REQUIRE_VERIFIED_USERS: bool = Field(default=True)
    OAUTH_PROVIDER: str = Field(default="google")

    # CORS settings
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Optional reverse proxy target
    PROXY_BASE_URL: Optional[str] = Field(default=None)
    PROXY_TIMEOUT_SECONDS: float = Field(default=30.0)

    # ============================================================================
    # LOGGING SETTINGS
    # ============================================================================
    LOG_FILE_PATH: str = Field(default="./logs/radio.log")
    LOG_MAX_SIZE: int = Field(default=50 * 1024 * 1024)  # 50MB
    LOG_BACKUP_COUNT: int = Field(default=5)

    def __init__(self, **kwargs):
        """Initialize settings and create the log directory"""
        super().__init__(**kwargs)
        Path(self.LOG_FILE_PATH).parent.mkdir(parents=True, exist_ok=True)

    @property
    def callback_url(self) -> str:
        """Webhook URL handed to the generation API"""
        return self.PUBLIC_BASE_URL.rstrip("/") + "/api/music/callback"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.DEBUG

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return not self.DEBUG

    @property
    def music_api_configured(self) -> bool:
        return bool(self.MUSIC_API_KEY)

    @property
    def enhance_configured(self) -> bool:
        return bool(self.AI_GATEWAY_API_KEY)

    def get_collections(self) -> dict:
        """Get BaaS collection names keyed by entity"""
        return {
            "users": self.USERS_COLLECTION,
            "rooms": self.ROOMS_COLLECTION,
            "tracks": self.TRACKS_COLLECTION,
            "requests": self.REQUESTS_COLLECTION,
            "callbacks": self.CALLBACKS_COLLECTION,
            "reactions": self.REACTIONS_COLLECTION,
            "playlists": self.PLAYLISTS_COLLECTION,
            "playlist_tracks": self.PLAYLIST_TRACKS_COLLECTION,
        }


@lru_cache()
def get_settings() -> RadioSettings:
    """Get application settings (cached)"""
    return RadioSettings()
