"""
backend/app/config.py

Purpose:
    Central settings loading for the prediction backend, the sync providers
    and the admin bootstrap account.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str
    MONGO_DB: str = "tawaqo"
    JWT_SECRET: str
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"
    COOKIE_SECURE: bool = False  # Set True in production (HTTPS)

    # JWT settings
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Active sync provider: "api_football" or "football_data"
    SYNC_PROVIDER: str = "api_football"

    # API-Football v3 via RapidAPI
    API_FOOTBALL_KEY: str = ""
    API_FOOTBALL_BASE_URL: str = "https://api-football-v1.p.rapidapi.com/v3"
    API_FOOTBALL_HOST: str = "api-football-v1.p.rapidapi.com"
    API_FOOTBALL_RATE_LIMIT_RPM: int = 30
    API_FOOTBALL_RECENT_FIXTURES: int = 50

    # football-data.org
    FOOTBALL_DATA_ORG_API_KEY: str = ""
    FOOTBALL_DATA_ORG_BASE_URL: str = "https://api.football-data.org/v4"
    FOOTBALL_DATA_RATE_LIMIT_RPM: int = 10

    # Provider HTTP behaviour. Sync failures are reported, not retried.
    PROVIDER_TIMEOUT_SECONDS: float = 20.0
    PROVIDER_MAX_RETRIES: int = 0
    PROVIDER_RETRY_BASE_DELAY: float = 2.0

    # Default competition (Egyptian Premier League on API-Football)
    DEFAULT_LEAGUE_ID: str = "233"
    DEFAULT_SEASON: int = 2024

    # Sync freshness
    SYNC_STALENESS_HOURS: int = 6
    SYNC_MIN_MATCH_COUNT: int = 5
    SYNC_AUTOMATION_ENABLED: bool = False

    # Squad sync budget
    PLAYER_SYNC_MAX_TEAMS: int = 5
    PLAYER_SYNC_DELAY_SECONDS: float = 1.0
    STARTERS_PER_SQUAD: int = 11

    # Admin provisioning (leave empty to skip bootstrap at startup)
    ADMIN_EMAIL: str = ""
    ADMIN_PASSWORD: str = ""
    ADMIN_DISPLAY_NAME: str = "مدير النظام"

    # WebSocket notification feed
    WS_HEARTBEAT_SECONDS: int = 30
    WS_MAX_CONNECTIONS: int = 500

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()
