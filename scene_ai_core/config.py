# scene_ai_core/config.py
from dataclasses import dataclass, field
from functools import lru_cache
import os

from dotenv import load_dotenv

"""
scene_ai_core.config
====================

Gestión centralizada de configuración del core de generación.

Este módulo define:
- La estructura de configuración (`Settings`)
- El mecanismo para cargar variables desde entorno (.env)
- Un acceso único y cacheado a la configuración (`get_settings`)

Objetivos de diseño
-------------------
1. **Fuente única de verdad**
   Toda la app obtiene configuración solo a través de `get_settings()`.
   Los componentes del core NO leen el entorno: reciben `Settings` dentro del
   contexto de servicios (`scene_ai_core.services.PlatformServices`).

2. **Inmutabilidad práctica**
   `Settings` se crea una sola vez y luego se reutiliza (cache LRU).

3. **Facilidad de testing**
   En tests se construye `Settings(...)` directamente, sin tocar el entorno.

Notas importantes
-----------------
- `load_dotenv()` se ejecuta al importar el módulo.
- Si una API key no está presente, NO se falla acá: el error se lanza
  cuando se construye el cliente del proveedor que la necesita.
"""

# Cargar variables de entorno desde .env (si existe)
load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """
    Contenedor tipado de configuración global.

    Esta clase no contiene lógica: solo define qué valores existen
    y qué significan.

    Attributes
    ----------
    database_url:
        URL SQLAlchemy del document store (cuentas y metadata de proyectos).
    storage_backend:
        "supabase" (Supabase Storage) o "local" (filesystem, para desarrollo).
    supabase_url / supabase_service_role_key:
        Credenciales del proyecto Supabase (storage).
    supabase_jwt_secret:
        Secreto HS256 con el que Supabase firma los access tokens.
    storage_bucket:
        Bucket donde viven renders y estados de proyecto.
    local_storage_dir / public_base_url:
        Raíz en disco y URL pública base para el backend "local".
    bria_api_key / bria_base_url:
        Proveedor de generación de imágenes (FIBO).
    gemini_api_key / gemini_model_text / gemini_model_detect:
        Proveedor de análisis visión-lenguaje (Gemini) y sus modelos.
    openai_api_key / openai_model_vision:
        Proveedor alternativo de análisis (OpenAI con visión).
    vision_provider:
        "gemini" u "openai".
    fal_key / fal_trellis_url:
        Proveedor de reconstrucción 3D (Trellis en fal.ai).
    default_images_quota / default_models_quota:
        Cuotas con las que se crea una cuenta nueva.
    render_variant_count / render_aspect_ratio:
        Parámetros del pipeline fan-out de variantes.
    mesh_extensions:
        Extensiones aceptadas al buscar la URL del mesh en la respuesta 3D.
    http_timeout_s:
        Timeout (segundos) para cada llamada HTTP saliente. Sin reintentos.
    """

    # Document store
    database_url: str = "sqlite:///data/scene_ai_core.sqlite"

    # Storage
    storage_backend: str = "supabase"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""
    storage_bucket: str = "scene-ai-core"
    local_storage_dir: str = "data/blobs"
    public_base_url: str = "http://localhost:8000/blobs"

    # Generación de imágenes
    bria_api_key: str = ""
    bria_base_url: str = "https://engine.prod.bria-api.com"

    # Análisis visión-lenguaje
    vision_provider: str = "gemini"
    gemini_api_key: str = ""
    gemini_model_text: str = "gemini-2.5-flash"
    gemini_model_detect: str = "gemini-3-pro-preview"
    openai_api_key: str = ""
    openai_model_vision: str = "gpt-4.1-mini"

    # Reconstrucción 3D
    fal_key: str = ""
    fal_trellis_url: str = "https://fal.run/fal-ai/trellis"

    # Cuotas
    default_images_quota: int = 200
    default_models_quota: int = 100

    # Pipelines
    render_variant_count: int = 2
    render_aspect_ratio: str = "4:3"
    mesh_extensions: tuple[str, ...] = (".glb", ".gltf", ".obj")
    http_timeout_s: int = 120

    # API
    cors_origins: tuple[str, ...] = field(
        default=("http://localhost:3000", "http://localhost:5173")
    )


@lru_cache
def get_settings() -> Settings:
    """
    Devuelve una instancia única y cacheada de `Settings`.

    Implementa un patrón tipo *singleton funcional* usando `lru_cache`.
    Solo la capa de arranque (API, tools) debería llamarla; el core recibe
    la instancia ya resuelta.

    Returns
    -------
    Settings
        Configuración resuelta a partir de variables de entorno.
    """
    render_variant_count = _env_int("RENDER_VARIANT_COUNT", 2)
    if render_variant_count < 1:
        raise RuntimeError(
            f"RENDER_VARIANT_COUNT debe ser >= 1 (valor en el .env: {render_variant_count})"
        )

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///data/scene_ai_core.sqlite"),

        # Storage
        storage_backend=os.getenv("STORAGE_BACKEND", "supabase").strip().lower(),
        supabase_url=os.getenv("SUPABASE_URL", "").rstrip("/"),
        supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
        supabase_jwt_secret=os.getenv("SUPABASE_JWT_SECRET", ""),
        storage_bucket=os.getenv("STORAGE_BUCKET", "scene-ai-core"),
        local_storage_dir=os.getenv("LOCAL_STORAGE_DIR", "data/blobs"),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000/blobs").rstrip("/"),

        # Proveedores
        bria_api_key=os.getenv("BRIA_API_KEY", ""),
        bria_base_url=os.getenv("BRIA_BASE_URL", "https://engine.prod.bria-api.com").rstrip("/"),
        vision_provider=os.getenv("VISION_PROVIDER", "gemini").strip().lower(),
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model_text=os.getenv("GEMINI_MODEL_TEXT", "gemini-2.5-flash"),
        gemini_model_detect=os.getenv("GEMINI_MODEL_DETECT", "gemini-3-pro-preview"),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model_vision=os.getenv("OPENAI_MODEL_VISION", "gpt-4.1-mini"),
        fal_key=os.getenv("FAL_KEY", ""),
        fal_trellis_url=os.getenv("FAL_TRELLIS_URL", "https://fal.run/fal-ai/trellis"),

        # Cuotas y pipelines
        default_images_quota=_env_int("DEFAULT_IMAGES_QUOTA", 200),
        default_models_quota=_env_int("DEFAULT_MODELS_QUOTA", 100),
        render_variant_count=render_variant_count,
        render_aspect_ratio=os.getenv("RENDER_ASPECT_RATIO", "4:3"),
        mesh_extensions=tuple(
            ext.lower() for ext in _env_list("MESH_EXTENSIONS", ".glb,.gltf,.obj")
        ),
        http_timeout_s=_env_int("HTTP_TIMEOUT_S", 120),

        cors_origins=_env_list("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"),
    )
