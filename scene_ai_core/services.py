"""
Contexto de servicios de la plataforma.

`PlatformServices` se construye UNA vez al arrancar (API, tools) y se pasa
explícitamente a `QuotaLedger`, `GenerationEngine` y `ProjectStore`. No hay
handles globales mutables: tests y procesos distintos pueden tener contextos
distintos conviviendo.

Los adapters de proveedores se construyen de forma perezosa en el primer uso,
así la app levanta aunque falte alguna API key; el `RuntimeError` por key
faltante aparece recién cuando un pipeline necesita ese proveedor.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings
from .db.database import create_db_engine, init_db, make_session_factory
from .ingest import AssetIngestor
from .providers import ImageGenerator, Reconstructor, VisionAnalyzer
from .storage import BlobStorage, LocalBlobStorage

logger = logging.getLogger(__name__)


class PlatformServices:
    def __init__(
        self,
        settings: Settings,
        session_factory: sessionmaker[Session],
        storage: BlobStorage,
        http: Optional[requests.Session] = None,
        *,
        image_generator: Optional[ImageGenerator] = None,
        vision: Optional[VisionAnalyzer] = None,
        reconstructor: Optional[Reconstructor] = None,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.storage = storage
        self.http = http or requests.Session()
        self._image_generator = image_generator
        self._vision = vision
        self._reconstructor = reconstructor
        self._ingestor: Optional[AssetIngestor] = None

    @property
    def ingestor(self) -> AssetIngestor:
        if self._ingestor is None:
            self._ingestor = AssetIngestor(self.storage, self.http, timeout=self.settings.http_timeout_s)
        return self._ingestor

    @property
    def image_generator(self) -> ImageGenerator:
        if self._image_generator is None:
            from .providers.bria import BriaImageGenerator

            self._image_generator = BriaImageGenerator(
                self.settings.bria_api_key,
                self.http,
                base_url=self.settings.bria_base_url,
                timeout=self.settings.http_timeout_s,
            )
        return self._image_generator

    @property
    def vision(self) -> VisionAnalyzer:
        if self._vision is None:
            self._vision = _build_vision(self.settings, self.http)
        return self._vision

    @property
    def reconstructor(self) -> Reconstructor:
        if self._reconstructor is None:
            from .providers.fal import FalTrellisReconstructor

            self._reconstructor = FalTrellisReconstructor(
                self.settings.fal_key,
                self.http,
                url=self.settings.fal_trellis_url,
                timeout=self.settings.http_timeout_s,
            )
        return self._reconstructor


def _build_vision(settings: Settings, http: requests.Session) -> VisionAnalyzer:
    if settings.vision_provider == "openai":
        from .providers.openai_vision import OpenAIVisionAnalyzer, get_client

        return OpenAIVisionAnalyzer(
            get_client(settings.openai_api_key),
            default_model=settings.openai_model_vision,
            timeout=settings.http_timeout_s,
        )
    if settings.vision_provider == "gemini":
        from .providers.gemini import GeminiVisionAnalyzer

        return GeminiVisionAnalyzer(
            settings.gemini_api_key,
            http,
            default_model=settings.gemini_model_text,
            timeout=settings.http_timeout_s,
        )
    raise RuntimeError(f"VISION_PROVIDER desconocido: {settings.vision_provider!r}")


def build_storage(settings: Settings) -> BlobStorage:
    if settings.storage_backend == "local":
        return LocalBlobStorage(
            settings.local_storage_dir,
            settings.storage_bucket,
            settings.public_base_url,
        )
    if settings.storage_backend == "supabase":
        from .storage.supabase_storage import SupabaseBlobStorage

        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY no están configuradas en el .env")
        return SupabaseBlobStorage.from_credentials(
            settings.supabase_url,
            settings.supabase_service_role_key,
            settings.storage_bucket,
        )
    raise RuntimeError(f"STORAGE_BACKEND desconocido: {settings.storage_backend!r}")


def build_services(settings: Settings, create_schema: bool = True) -> PlatformServices:
    """
    Construye el contexto completo a partir de `Settings`.

    Args:
        settings: Configuración resuelta (normalmente `get_settings()`).
        create_schema: Si True, crea las tablas faltantes (idempotente).
    """
    engine = create_db_engine(settings.database_url)
    if create_schema:
        init_db(engine)

    storage = build_storage(settings)
    logger.info(
        f"🚀 Servicios inicializados (storage={settings.storage_backend}, "
        f"vision={settings.vision_provider}, bucket={settings.storage_bucket})"
    )
    return PlatformServices(settings, make_session_factory(engine), storage)
