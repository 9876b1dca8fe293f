"""
Radar BOE - FastAPI Backend

Audit history dashboard core: reconciled history, filters, pagination,
concept graph, and the audit pipeline.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import audits, gazette, graph, history
from config import get_settings
from services.container import AuditServices, build_services

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(services: Optional[AuditServices] = None) -> FastAPI:
    """
    Build the application.

    With `services` given (tests), they are used as-is and never closed;
    otherwise they are built from Settings at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        owned = services is None
        app.state.services = await build_services(get_settings()) if owned else services
        try:
            history_size = len(await app.state.services.reconciler.reconcile())
            logger.info(f"✅ Radar ready with {history_size} audits")
        except Exception as e:
            logger.warning(f"⚠️  Initial reconcile failed: {e}")
        yield
        # Shutdown
        if owned:
            await app.state.services.close()

    app = FastAPI(
        title="Radar BOE",
        description="Citizen transparency audits of the official gazette",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(history.router)
    app.include_router(graph.router)
    app.include_router(audits.router)
    app.include_router(gazette.router)

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        current = app.state.services
        return {
            "status": "healthy",
            "service": "radar-boe",
            "tiers": {
                "remote": current.store.remote is not None,
                "local-cache": current.store.local is not None,
                "bundled-snapshot": current.store.snapshot is not None,
            },
            "audits": len(current.reconciler.view),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
