"""
Room options and server configuration.
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import (
    DEFAULT_TURN_TIME_LIMIT, STALE_ROOM_SECONDS, SWEEP_INTERVAL_SECONDS,
    clamp_turn_time_limit
)


class RoomOptions(BaseModel):
    """Per-room settings a host can choose."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    turn_time_limit: Optional[int] = Field(
        default=None,
        description="Seconds per turn, clamped to 5..60"
    )

    @field_validator('turn_time_limit')
    @classmethod
    def clamp_limit(cls, v):
        if v is None:
            return v
        return clamp_turn_time_limit(v)


class ServerSettings(BaseModel):
    """Process-wide configuration, normally read from the environment."""

    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    log_level: str = "info"
    room_stale_seconds: int = Field(
        default=STALE_ROOM_SECONDS,
        ge=1,
        description="Age after which an abandoned room may be swept"
    )
    room_sweep_interval: float = Field(
        default=SWEEP_INTERVAL_SECONDS,
        gt=0,
        description="Seconds between sweeps of the room registry"
    )
    default_turn_time_limit: int = Field(
        default=DEFAULT_TURN_TIME_LIMIT,
        ge=1,
        description="Turn limit for rooms created without options"
    )

    @field_validator('default_turn_time_limit')
    @classmethod
    def clamp_default_limit(cls, v):
        return clamp_turn_time_limit(v)

    @classmethod
    def from_env(cls) -> 'ServerSettings':
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", 8000)),
            reload=os.getenv("RELOAD", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "info").lower(),
            room_stale_seconds=int(os.getenv("ROOM_STALE_SECONDS", STALE_ROOM_SECONDS)),
            room_sweep_interval=float(os.getenv("ROOM_SWEEP_INTERVAL", SWEEP_INTERVAL_SECONDS)),
            default_turn_time_limit=int(os.getenv("DEFAULT_TURN_TIME_LIMIT", DEFAULT_TURN_TIME_LIMIT)),
        )
