"""
Runtime settings loaded from the environment (and a local .env file).
"""
from __future__ import annotations

import os
from datetime import tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


class Settings(BaseModel):
    database_url: Optional[str] = None
    database_name: Optional[str] = None
    firebase_credentials: Optional[str] = Field(default=None, description="Path to a service account JSON file")
    timezone: str = Field("UTC", description="Zone used to decide which day 'today' is")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    log_json: bool = False
    port: int = 8000

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (KeyError, ValueError) as e:
            msg = f"Unknown timezone '{v}'"
            raise ValueError(msg) from e
        return v

    @property
    def tzinfo(self) -> tzinfo:
        return ZoneInfo(self.timezone)

    @property
    def use_mongo(self) -> bool:
        return bool(self.database_url) and bool(self.database_name)

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL") or None,
            database_name=os.getenv("DATABASE_NAME") or None,
            firebase_credentials=os.getenv("FIREBASE_CREDENTIALS") or None,
            timezone=os.getenv("TIMEZONE", "UTC"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=os.getenv("LOG_JSON", "").lower() in ("1", "true", "yes"),
            port=int(os.getenv("PORT", 8000)),
        )
