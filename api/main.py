"""
API HTTP principal para scene-ai-core.

Esta aplicación FastAPI expone endpoints REST que usan el core interno
(scene_ai_core.engine / quota / project_store) para generar escenas,
variantes y modelos 3D con cuotas por usuario.

Uso:
    uvicorn api.main:app --reload --port 8000
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import urlparse

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from scene_ai_core.config import Settings, get_settings
from scene_ai_core.errors import SceneCoreError
from scene_ai_core.services import PlatformServices, build_services

from .dependencies import SupabaseTokenVerifier
from .routes import analysis, generation, metadata, projects, quota

# Cargar variables de entorno
load_dotenv()

# Determinar ambiente
ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Configurar logging según ambiente
log_level = getattr(logging, LOG_LEVEL, logging.INFO)
logging.basicConfig(
    level=log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _configured(value: str) -> str:
    return "configured" if value else "missing"


def create_app(
    services: Optional[PlatformServices] = None,
    token_verifier: Optional[SupabaseTokenVerifier] = None,
) -> FastAPI:
    """
    Construye la app.

    Si no se pasan `services`, se construyen al arrancar (lifespan) a partir
    de `get_settings()`. Los tests pasan un contexto armado a mano.
    """
    settings: Settings = services.settings if services is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.services is None:
            app.state.services = build_services(settings)
        yield

    app = FastAPI(
        title="Scene AI Core API",
        description="API para generación de escenas, variantes y modelos 3D con cuotas",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services
    app.state.token_verifier = token_verifier or SupabaseTokenVerifier(settings.supabase_jwt_secret)

    logger.info(f"🚀 Iniciando API en ambiente: {ENVIRONMENT}")
    logger.info(f"🌐 CORS origins configurados: {list(settings.cors_origins)}")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SceneCoreError)
    async def scene_core_error_handler(request: Request, exc: SceneCoreError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} → {exc.status_code}: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} → {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Error inesperado en {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    # Registrar rutas
    app.include_router(quota.router)
    app.include_router(generation.router)
    app.include_router(analysis.router)
    app.include_router(projects.router)
    app.include_router(metadata.router)

    # Storage local: los blobs se sirven como archivos estáticos
    if settings.storage_backend == "local":
        mount_path = urlparse(settings.public_base_url).path or "/blobs"
        app.mount(
            mount_path,
            StaticFiles(directory=settings.local_storage_dir, check_dir=False),
            name="blobs",
        )

    @app.get("/health")
    def health():
        """Health check con el estado de configuración de cada proveedor."""
        return {
            "status": "ok",
            "service": "scene-ai-core-api",
            "version": "0.1.0",
            "storage": settings.storage_backend,
            "briaApiKey": _configured(settings.bria_api_key),
            "geminiApiKey": _configured(settings.gemini_api_key),
            "openaiApiKey": _configured(settings.openai_api_key),
            "falKey": _configured(settings.fal_key),
        }

    return app


app = create_app()
