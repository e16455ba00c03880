from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from hitster.handlers.registry import default_handlers
from hitster.messaging.router import MessageRouter
from hitster.server.settings import GameServerSettings
from hitster.server.websocket import websocket_endpoint
from hitster.session.cleanup import SessionCleanup
from hitster.session.connections import ConnectionRegistry
from hitster.session.game_state_manager import GameStateManager
from hitster.session.heartbeat import HeartbeatMonitor
from hitster.session.manager import SessionManager
from hitster.session.room_manager import RoomManager
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.db import Database, SqlitePlayerRepository, SqliteRoomRepository
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def status(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "connections": session_manager.registry.count,
            "active_rooms": session_manager.rooms.room_count,
            "loaded_games": session_manager.states.game_count,
        },
    )


def build_session_manager(db: Database, settings: GameServerSettings) -> SessionManager:
    """Construct the session services over a connected database."""
    room_repository = SqliteRoomRepository(db)
    registry = ConnectionRegistry()
    return SessionManager(
        registry=registry,
        rooms=RoomManager(registry),
        states=GameStateManager(room_repository),
        room_repository=room_repository,
        player_repository=SqlitePlayerRepository(db),
        heartbeat=HeartbeatMonitor(
            registry,
            timeout=settings.heartbeat_timeout_seconds,
            check_interval=settings.heartbeat_check_interval_seconds,
        ),
    )


def create_app(
    settings: GameServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = GameServerSettings()

    # When the app creates its own SessionManager, it owns the DB lifecycle.
    owned_db: Database | None = None

    if session_manager is None:
        db = Database(settings.database_path)
        db.connect()
        owned_db = db
        session_manager = build_session_manager(db, settings)

    if message_router is None:
        message_router = MessageRouter(session_manager, default_handlers())

    cleanup = SessionCleanup(
        session_manager,
        disconnect_grace_seconds=settings.disconnect_grace_seconds,
        room_timeout_seconds=settings.room_cleanup_timeout_seconds,
        interval_seconds=settings.cleanup_interval_seconds,
    )

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router, settings)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        await session_manager.states.load_all_game_states()
        if session_manager.heartbeat is not None:
            session_manager.heartbeat.start()
        cleanup.start()
        try:
            yield
        finally:
            await cleanup.stop()
            if session_manager.heartbeat is not None:
                await session_manager.heartbeat.stop()
            if owned_db is not None:
                owned_db.close()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager

    logger.info("game server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = GameServerSettings()
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)


def run() -> None:  # pragma: no cover
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run("hitster.server.app:get_app", factory=True, host="0.0.0.0", port=8000)  # noqa: S104
