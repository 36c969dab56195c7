"""FastAPI main application for the Sleeping Queens backend"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .rules import ServerSettings
from .serialization import get_public_room_info
from .websocket_server import GameWebSocketManager

logger = logging.getLogger(__name__)


def create_app(settings: Optional[ServerSettings] = None,
               manager: Optional[GameWebSocketManager] = None) -> FastAPI:
    settings = settings or ServerSettings.from_env()
    game_manager = manager or GameWebSocketManager(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await game_manager.start()
        yield
        await game_manager.stop()

    app = FastAPI(title="Sleeping Queens API", version="1.0.0", lifespan=lifespan)
    app.state.game_manager = game_manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {"message": "Sleeping Queens API", "version": "1.0.0"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "rooms": len(game_manager.registry.rooms)}

    @app.get("/rooms")
    async def list_rooms():
        return {"rooms": [get_public_room_info(r) for r in game_manager.registry.list_joinable()]}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await game_manager.handle_websocket(websocket)

    return app


def configure_logging(level: str = "info"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


configure_logging(ServerSettings.from_env().log_level)
app = create_app()
