from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

DEFAULT_API_URL = "http://localhost:8000/api"
DEFAULT_NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
DEFAULT_IP_LOCATOR_URL = "https://ipapi.co/json/"


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    jwt_secret: Optional[str] = None
    jwt_expires_minutes: int = 60
    frontend_origin: str = "http://localhost:5173"
    api_url: str = DEFAULT_API_URL
    search_debounce_ms: int = 300
    banner_timeout_s: float = 5.0
    nominatim_url: str = DEFAULT_NOMINATIM_URL
    geocoder_timeout_s: float = 5.0
    ip_locator_url: Optional[str] = DEFAULT_IP_LOCATOR_URL
    session_path: str = ".mapboard_session.json"
    use_static_data: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            jwt_secret=os.getenv("JWT_SECRET"),
            jwt_expires_minutes=int(os.getenv("JWT_EXPIRES_MINUTES", "60")),
            frontend_origin=os.getenv("FRONTEND_ORIGIN", "http://localhost:5173"),
            api_url=os.getenv("MAPBOARD_API_URL", DEFAULT_API_URL),
            search_debounce_ms=int(os.getenv("SEARCH_DEBOUNCE_MS", "300")),
            banner_timeout_s=float(os.getenv("BANNER_TIMEOUT_S", "5")),
            nominatim_url=os.getenv("NOMINATIM_URL", DEFAULT_NOMINATIM_URL),
            geocoder_timeout_s=float(os.getenv("GEOCODER_TIMEOUT_S", "5")),
            ip_locator_url=os.getenv("IP_LOCATOR_URL", DEFAULT_IP_LOCATOR_URL) or None,
            session_path=os.getenv("MAPBOARD_SESSION_PATH", ".mapboard_session.json"),
            use_static_data=os.getenv("USE_STATIC_DATA", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def require_jwt_secret(self) -> str:
        if not self.jwt_secret:
            raise RuntimeError("JWT_SECRET environment variable is not set")
        return self.jwt_secret


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
