from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tortoise.contrib.fastapi import register_tortoise

from .config import Settings, get_settings
from .dispatcher import ProtocolDispatcher
from .logger import configure_logging
from .routers import rooms as rooms_router
from .routers import websockets as ws_router
from .state import RelayState
from .stores import TortoiseChatStore, TortoiseRoomStore


def create_app(settings: Optional[Settings] = None, dispatcher: Optional[ProtocolDispatcher] = None) -> FastAPI:
    """Build the application.

    When *dispatcher* is omitted one is built on top of the Tortoise ORM
    stores and the database is registered with the app. Passing a dispatcher
    skips the database entirely.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Chat Relay")

    # Allow all origins during development – adjust for production.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router.router)
    app.include_router(ws_router.router)

    if dispatcher is None:
        dispatcher = ProtocolDispatcher(
            RelayState(),
            TortoiseRoomStore(),
            TortoiseChatStore(),
            store_timeout=settings.store_timeout_seconds,
            send_timeout=settings.send_timeout_seconds,
            reject_unknown_types=settings.reject_unknown_types,
        )
        register_tortoise(
            app,
            db_url=settings.db_url,
            modules={"models": ["chat_relay.models"]},
            generate_schemas=settings.generate_schemas,
            add_exception_handlers=True,
        )

    app.state.dispatcher = dispatcher
    return app


app = create_app()

__all__ = ["app", "create_app"]
