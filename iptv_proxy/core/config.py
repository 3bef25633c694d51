from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "IPTV Stream Relay"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    BACKEND_CORS_ORIGINS: List[str] = ["*"]
    RATE_LIMIT_PER_MINUTE: int = 100
    TOKEN_RATE_LIMIT_PER_MINUTE: int = 30

    # Public base of the relay route, used to compose proxy URLs handed to players
    PROXY_PUBLIC_URL: str = "http://localhost:3001/api/proxy/streamlink"

    # Tokens
    RELAY_TOKEN_TTL_HOURS: int = 4
    PLAYLIST_TOKEN_TTL_HOURS: int = 24
    TOKEN_SWEEP_INTERVAL_SECONDS: float = 300.0

    # Extraction tool
    STREAMLINK_BINARY: str = "streamlink"
    PORT_DISCOVERY_TIMEOUT_SECONDS: float = 10.0
    PROCESS_KILL_GRACE_SECONDS: float = 2.0

    # Relay
    RELAY_CONTENT_TYPE: str = "video/mp4"
    UPSTREAM_CONNECT_TIMEOUT_SECONDS: float = 5.0

    # Catalog
    CATALOG_BACKEND: str = "memory" # "memory" or "sql"
    CATALOG_FILE: Optional[str] = None # JSON seed for the memory backend
    DATABASE_URL: str = "sqlite+aiosqlite:///./streams.db"

    @property
    def proxy_base_url(self) -> str:
        return self.PROXY_PUBLIC_URL.rstrip("/")

settings = Settings()
