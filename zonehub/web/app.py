"""
zonehub Application Factory

Creates and configures the FastAPI application with:
- REST API (health, presence, music control, playlists)
- WebSocket realtime channel at /ws
- Lifespan that starts and stops the PresenceHub
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zonehub.errors import UnknownZoneError, ValidationError
from zonehub.hub import PresenceHub
from zonehub.obs import logger
from zonehub.version import __version__
from zonehub.web.api import create_api_router
from zonehub.web.gateway import WebSocketSubscriber


class HubApp:
    """
    zonehub FastAPI application.

    Owns no state of its own: everything is read from or routed into the
    PresenceHub it wraps.
    """

    def __init__(self, hub: PresenceHub):
        self.hub = hub
        self.app = FastAPI(
            title=f"zonehub {__version__}",
            version=__version__,
            docs_url="/docs",
            lifespan=self._lifespan,
        )
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=hub.settings.cors_origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

        self._setup_error_handlers()
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        await self.hub.start()
        try:
            yield
        finally:
            await self.hub.stop()

    def _setup_error_handlers(self):
        """Map hub errors onto HTTP responses."""

        @self.app.exception_handler(ValidationError)
        async def validation_error(request: Request, exc: ValidationError):
            logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
            return JSONResponse(status_code=400, content={"error": str(exc)})

        @self.app.exception_handler(UnknownZoneError)
        async def unknown_zone(request: Request, exc: UnknownZoneError):
            logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
            return JSONResponse(status_code=404, content={"error": "Zone not found"})

        @self.app.exception_handler(RequestValidationError)
        async def malformed_request(request: Request, exc: RequestValidationError):
            logger.warning(f"Malformed request body for {request.url.path}")
            return JSONResponse(status_code=400, content={"error": "Malformed request body"})

        @self.app.middleware("http")
        async def internal_errors(request: Request, call_next):
            try:
                return await call_next(request)
            except Exception:
                logger.exception(f"Server error on {request.method} {request.url.path}")
                return JSONResponse(status_code=500, content={"error": "Internal server error"})

    def _setup_routes(self):
        """Configure all routes."""
        self.app.include_router(create_api_router(
            state_store=self.hub.state,
            command_router=self.hub.router,
            transport=self.hub.transport,
        ))

        gateway = self.hub.gateway

        @self.app.websocket("/ws")
        async def realtime(websocket: WebSocket):
            """Realtime channel: JSON frames {event, data} both ways."""
            await websocket.accept()
            subscriber = gateway.connect(WebSocketSubscriber(websocket))
            await subscriber.send("connected", {"id": subscriber.id})

            try:
                while True:
                    message = await websocket.receive()
                    if message["type"] == "websocket.disconnect":
                        break

                    text = message.get("text")
                    if text is None:
                        await subscriber.send("error", {"event": None, "error": "Binary frames are not supported"})
                        continue

                    try:
                        frame = json.loads(text)
                    except json.JSONDecodeError:
                        await subscriber.send("error", {"event": None, "error": "Frame is not valid JSON"})
                        continue

                    if not isinstance(frame, dict) or "event" not in frame:
                        await subscriber.send("error", {"event": None, "error": "Frame must be an object with an 'event'"})
                        continue

                    await gateway.handle_client_event(subscriber.id, frame["event"], frame.get("data"))
            except (WebSocketDisconnect, RuntimeError):
                pass
            finally:
                await gateway.disconnect(subscriber.id)


def create_app(hub: PresenceHub = None) -> FastAPI:
    """Build the FastAPI app around a hub (a default hub from Settings if omitted)."""
    return HubApp(hub or PresenceHub()).app
