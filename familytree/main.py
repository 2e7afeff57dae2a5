from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request

from .auth import admin_key_configured
from .errors import StoreFailure
from .middleware import AdminMiddleware
from .routes import auth as auth_routes
from .routes import data as data_routes
from .routes import people as people_routes
from .routes import relationship as relationship_routes
from .service import TreeService
from .store import store_from_env

log = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    if getattr(app.state, "tree", None) is None:
        tree = TreeService(store_from_env())
        try:
            tree.load()
        except StoreFailure:
            # Serve an empty, read-only tree until a reload or an import.
            log.exception("Could not load the family graph")
        app.state.tree = tree
    yield


def create_app(tree: TreeService | None = None) -> FastAPI:
    """Build the API. Pass ``tree`` to skip loading from the configured store."""

    app = FastAPI(title="Family Tree API", version="0.1.0", lifespan=_lifespan)
    app.state.tree = tree
    app.add_middleware(AdminMiddleware)

    app.include_router(auth_routes.router)
    app.include_router(people_routes.router)
    app.include_router(relationship_routes.router)
    app.include_router(data_routes.router)

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"ok": True}

    @app.get("/config/status")
    def config_status(request: Request) -> dict[str, Any]:
        tree: TreeService = request.app.state.tree
        return {
            "ok": True,
            "adminKeyPresent": admin_key_configured(),
            "jwtSecretPresent": bool(os.environ.get("JWT_SECRET")),
            "storeBackend": tree.store.name,
            "people": len(tree.graph),
            "unsavedChanges": tree.unsaved_changes,
            "loadFailed": tree.load_failed,
        }

    return app


app = create_app()
