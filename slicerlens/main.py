from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from slicerlens.core.config import Settings, settings as default_settings
from slicerlens.core.dependencies import build_http_client, build_llm_client
from slicerlens.routers import analysis, system

# Configure logging
logging.basicConfig(level=default_settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: process-wide outbound clients, handed to requests via dependencies
        app.state.settings = app_settings
        app.state.http_client = build_http_client(app_settings)
        app.state.llm_client = build_llm_client(app_settings)

        if app.state.llm_client is None:
            logger.warning("OPENAI_API_KEY is not set. Analysis endpoints will return 503.")
        else:
            logger.info(f"LLM client ready (model {app_settings.OPENAI_MODEL}, key {app_settings.OPENAI_KEY_PREVIEW})")
        logger.info(f"Preset catalog: {app_settings.PRESET_CATALOG_URL}")

        yield

        # Shutdown: close outbound clients
        logger.info("Shutting down application...")
        await app.state.http_client.aclose()
        if app.state.llm_client is not None:
            await app.state.llm_client.close()

    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Unified API Prefix: /api
    app.include_router(analysis.router, prefix="/api")
    app.include_router(system.router, prefix="/api")

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "project": app_settings.PROJECT_NAME}

    @app.get("/")
    async def root():
        return {"message": f"{app_settings.PROJECT_NAME} API is running", "docs": "/docs"}

    return app


app = create_app()
