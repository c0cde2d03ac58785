"""
FastAPI application factory for Rapid Rescue.

Routes:
- /api/* -> REST API (contacts, incidents, monitoring sessions)
- /assets/* -> Vite-built client assets
- everything else -> client SPA (index.html)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from runtime.context import RuntimeContext
from .routes import api


def create_app(ctx: RuntimeContext, dist_dir: str = "frontend/dist") -> FastAPI:
    """Create the FastAPI app around a runtime context and wire routes/static assets."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Let in-flight escalations finish before the process exits
        await ctx.sessions.close_all()
        logging.info("All monitoring sessions closed")

    app = FastAPI(
        title="Rapid Rescue",
        version="0.1.0",
        description="Jerk detection, safety-check countdown and emergency escalation",
        lifespan=lifespan,
    )
    app.state.ctx = ctx

    # CORS for development (Vite dev server)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ctx.config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api.router, prefix="/api")

    dist_path = Path(dist_dir)
    assets_path = dist_path / "assets"
    if assets_path.exists():
        app.mount("/assets", StaticFiles(directory=str(assets_path)), name="assets")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa_catch_all(request: Request, full_path: str):
        """Serve index.html for any route not matched by the API or static files."""
        if full_path.startswith(("api/", "assets/")):
            return JSONResponse({"detail": "Not found"}, status_code=404)

        index_file = dist_path / "index.html"
        if index_file.exists():
            return FileResponse(index_file)

        return JSONResponse(
            {"detail": "Client not built. Run 'npm run build' in frontend/"},
            status_code=503,
        )

    return app
