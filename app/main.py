from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.core.config import get_settings
from app.services.container import Services, build_services
from app.api import routes_chunks, routes_sessions, routes_health, routes_websocket


def create_app(services: Optional[Services] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        svc = services or build_services()
        await svc.start()
        app.state.services = svc
        try:
            yield
        finally:
            # Shutdown
            await svc.aclose()

    app = FastAPI(
        title="Scribe API",
        description="Live audio chunk transcription and session summaries",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(routes_chunks.router, tags=["Chunks"])
    app.include_router(routes_sessions.router, tags=["Sessions"])
    app.include_router(routes_health.router, prefix="/health", tags=["Health"])
    app.include_router(routes_websocket.router, tags=["WebSocket"])

    @app.get("/")
    def root():
        return {"status": "Scribe backend running"}

    return app


app = create_app()
