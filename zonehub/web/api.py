"""
zonehub REST API

Health, zone presence state, and music control / playlist submission.
Control requests go through the same CommandRouter as automation and
WebSocket clients.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, TYPE_CHECKING

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from zonehub.obs import logger

if TYPE_CHECKING:
    from zonehub.core.router import CommandRouter
    from zonehub.core.state import ZoneStateStore
    from zonehub.transport.base import BaseTransport


# --- Request/Response Models ---

class MusicControlRequest(BaseModel):
    """Music control for a zone. Field checks happen in the CommandRouter."""
    model_config = ConfigDict(extra="ignore")

    zone: Optional[Any] = None
    action: Optional[Any] = None
    track: Optional[Any] = None
    volume: Optional[Any] = None


class PlaylistUpdateRequest(BaseModel):
    """Playlist replacement for a zone; playlist is opaque."""
    model_config = ConfigDict(extra="ignore")

    zone: Optional[Any] = None
    playlist: Optional[Any] = None


class AckResponse(BaseModel):
    success: bool
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    transport: str


def create_api_router(
    state_store: ZoneStateStore,
    command_router: CommandRouter,
    transport: BaseTransport,
) -> APIRouter:
    """
    Create the API router.

    Args:
        state_store: Zone State Store to read presence from
        command_router: Router that validates and publishes control requests
        transport: Transport, for health reporting

    Returns:
        Configured APIRouter
    """
    router = APIRouter(prefix="/api", tags=["api"])

    @router.get("/health")
    async def health() -> HealthResponse:
        """Liveness check."""
        return HealthResponse(
            status="OK",
            timestamp=datetime.now(timezone.utc).isoformat(),
            transport="connected" if transport.connected else "disconnected",
        )

    # --- Presence ---

    @router.get("/presence")
    async def list_presence() -> dict:
        """Current state of every configured zone."""
        return state_store.to_dict()

    @router.get("/presence/{zone_id}")
    async def get_presence(zone_id: str):
        """Current state of one zone."""
        state = state_store.get(zone_id)
        if state is None:
            return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Zone not found"})
        return state.to_dict()

    # --- Control ---

    @router.post("/music/control")
    async def music_control(request: MusicControlRequest) -> AckResponse:
        """Publish a music control command for a zone."""
        await command_router.send_music_control(
            request.zone,
            request.action,
            track=request.track,
            volume=request.volume,
        )
        return AckResponse(success=True, message="Music control sent")

    @router.post("/playlist/update")
    async def playlist_update(request: PlaylistUpdateRequest) -> AckResponse:
        """Publish a playlist update for a zone."""
        await command_router.send_playlist_update(request.zone, request.playlist)
        logger.debug(f"Playlist update accepted for zone {request.zone}")
        return AckResponse(success=True, message="Playlist update sent")

    return router
