"""
Mega Fire Roulette application entry point.
FastAPI service exposing one roulette table over HTTP and WebSocket.
"""

import asyncio
from typing import Optional

import orjson as json
import uvicorn
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from megafire.config import settings
from megafire.core.database import Database, get_db
from megafire.core.economy import drain_background
from megafire.core.logger import get_logger, init_logging
from megafire.core.scheduler import AsyncRoundTimer
from megafire.core.table import RouletteTable
from megafire.core.websocket import ConnectionManager, MessageRateLimiter, normalize_ws_close_code
from megafire.routers import api

# Initialize logging first
init_logging(
    level=settings.logging.level,
    log_to_file=settings.logging.log_to_file,
    formatter=settings.logging.formatter,
    log_file_path=settings.paths.get_log_path(),
)
logger = get_logger("main")
ws_logger = get_logger("websocket")

# WebSocket Rate Limiting
WS_MAX_MESSAGES = 10  # Max messages per connection
WS_RATE_LIMIT_SECONDS = 2  # In this time window


# ==================== Security Headers Middleware ====================


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; connect-src 'self' ws: wss:; frame-ancestors 'none'"
        )

        return response


# ==================== Application Setup ====================


def build_table(db: Database) -> RouletteTable:
    """Table wired to the sqlite profile and round log."""
    return RouletteTable(
        settings,
        timer=AsyncRoundTimer(),
        recorder=db,
        credits_sync=db.push_credits,
        credits=db.load_credits(settings.table.starting_credits),
    )


def create_app(table: Optional[RouletteTable] = None, db: Optional[Database] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.server.name,
        docs_url="/docs" if settings.server.debug else None,
        redoc_url=None,
    )

    if table is None:
        db = db or get_db()
        table = build_table(db)
    app.state.table = table
    app.state.db = db

    manager = ConnectionManager()
    app.state.ws_manager = manager

    def push_state(event: str, changed: RouletteTable):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        if manager.get_connection_count():
            loop.create_task(manager.broadcast_state(event, changed.state()))

    table.subscribe(push_state)

    # Add slowapi rate limiter
    app.state.limiter = api.limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(SecurityHeadersMiddleware)

    # CORS middleware (for development)
    if settings.server.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api.router, prefix="/api")

    @app.on_event("startup")
    async def startup_event():
        table.timer.start()
        logger.info(f"Application '{settings.server.name}' started")

    @app.on_event("shutdown")
    async def shutdown_event():
        table.shutdown()
        # The final credits push and round records must land before the loop closes
        await drain_background()

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unhandled exceptions gracefully."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.server.debug else None,
            },
        )

    rate_limiter = MessageRateLimiter(WS_MAX_MESSAGES, WS_RATE_LIMIT_SECONDS)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """
        Table state stream. Clients receive a `table_state` message on connect
        and after every change; `ping` is answered with `pong`.
        """
        client_ip = websocket.client.host if websocket.client else None
        key = id(websocket)
        await manager.connect(websocket, table.state())

        try:
            while True:
                data = await websocket.receive_text()

                if not rate_limiter.allow(key):
                    ws_logger.warning(
                        "WebSocket rate limit exceeded", extra={"client_ip": client_ip}
                    )
                    continue

                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    continue
                if not isinstance(message, dict):
                    continue

                msg_type = message.get("type")
                if msg_type == "ping":
                    await manager.send(websocket, {"type": "pong"})
                elif msg_type == "state":
                    await manager.send(
                        websocket, {"type": "table_state", "event": "request", "state": table.state()}
                    )

        except WebSocketDisconnect as e:
            ws_logger.info(
                "WebSocket disconnected",
                extra={
                    "client_ip": client_ip,
                    "ws_disconnect_code": e.code,
                    "ws_disconnect_reason": normalize_ws_close_code(e.code),
                },
            )
        except Exception as e:
            ws_logger.error("WebSocket error", extra={"client_ip": client_ip, "error": str(e)})
        finally:
            manager.disconnect(websocket)
            rate_limiter.forget(key)

    logger.info(f"Debug mode: {settings.server.debug}")
    return app


# ==================== Main Entry Point ====================

if __name__ == "__main__":
    logger.info(f"Starting server on {settings.server.host}:{settings.server.port}")
    uvicorn.run(
        "megafire.main:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.debug,
    )
