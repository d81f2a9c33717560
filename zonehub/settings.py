"""
zonehub configuration.

Read from the environment (and a .env file in the working directory);
the command line can override a few of the fields.
"""

from __future__ import annotations

import json
import uuid
from typing import Annotated, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_ZONES = ["zone1", "zone2", "zone3"]
TRANSPORTS = ("mqtt", "memory")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    mqtt_broker_url: str = "mqtt://localhost:1883"
    mqtt_username: Optional[str] = None
    mqtt_password: Optional[str] = None
    mqtt_client_id: str = Field(default_factory=lambda: f"zonehub_{uuid.uuid4().hex[:8]}")

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)

    zones: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_ZONES))
    transport: str = "mqtt"

    reconnect_min_delay: float = Field(default=1.0, gt=0)
    reconnect_max_delay: float = Field(default=30.0, gt=0)
    shutdown_timeout: float = Field(default=10.0, gt=0)
    send_timeout: float = Field(default=5.0, gt=0)

    log_level: str = "INFO"
    log_file: Optional[str] = None

    cors_origins: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["*"])

    @field_validator("zones", "cors_origins", mode="before")
    @classmethod
    def split_list(cls, value):
        """Accept 'a,b,c' or a JSON list from the environment."""
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                return json.loads(value)
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("zones")
    @classmethod
    def check_zones(cls, zones: list[str]) -> list[str]:
        if not zones:
            raise ValueError("At least one zone must be configured")
        if len(set(zones)) != len(zones):
            raise ValueError(f"Duplicate zone ids: {zones}")
        for zone in zones:
            if any(char in zone for char in "/+#") or not zone:
                raise ValueError(f"Invalid zone id '{zone}'")
        return zones

    @field_validator("transport")
    @classmethod
    def check_transport(cls, value: str) -> str:
        value = value.lower()
        if value not in TRANSPORTS:
            raise ValueError(f"Transport must be one of {TRANSPORTS}")
        return value

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of {LOG_LEVELS}")
        return value

    @model_validator(mode="after")
    def check_delays(self):
        if self.reconnect_min_delay > self.reconnect_max_delay:
            raise ValueError("reconnect_min_delay must not exceed reconnect_max_delay")
        return self
