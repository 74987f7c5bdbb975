"""
Modelos de request/response para la API.

Estos modelos definen la estructura esperada de los requests HTTP,
validando tipos antes de pasarlos al core. El cliente habla camelCase
(`imageBase64`, `structuredPrompt`, ...), así que todos los modelos usan
alias camelCase y aceptan también el nombre Python.

La presencia de campos requeridos NO se valida acá: la valida el core
(`ValidationError` → 400 `{"error": ...}`), igual para todos los callers.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Generación
# ============================================================================

class GenerateImageRequest(CamelModel):
    structured_prompt: Optional[Any] = Field(
        default=None,
        description="Structured prompt (objeto o string JSON)",
    )
    prompt: Optional[str] = None
    seed: Optional[int] = None
    image_base64: Optional[str] = Field(default=None, description="Imagen de referencia")


class GenerateImageResponse(CamelModel):
    image_url: str
    structured_prompt: Any = None
    seed: Optional[int] = None
    original_url: str


class GenerateSceneRequest(CamelModel):
    image_base64: Optional[str] = None
    mime_type: Optional[str] = None
    analysis_prompt: Optional[str] = None


class GenerateSceneResponse(CamelModel):
    furniture_list: str
    structured_prompt: Any = None
    seed: Optional[int] = None
    image_url: str


class RenderVariantsRequest(CamelModel):
    screenshot: Optional[str] = Field(default=None, description="Screenshot en base64 (data URI opcional)")


class VariantResponse(CamelModel):
    id: int
    image_url: str
    original_url: str


class RenderVariantsResponse(CamelModel):
    session_id: str
    original_url: str
    results: List[VariantResponse]


class GenerateModelRequest(CamelModel):
    image_url: Optional[str] = None


class GenerateModelResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())

    model_url: str
    image_url: Optional[str] = None
    raw_response: Any = None


# ============================================================================
# Análisis
# ============================================================================

class AnalyzeImageRequest(CamelModel):
    prompt: Optional[str] = None
    model: Optional[str] = Field(default=None, description="Modelo de visión (default: el configurado)")
    json_output: bool = Field(default=False, alias="json", description="Pedir respuesta JSON")
    image_base64: Optional[str] = None
    mime_type: Optional[str] = None
    image_url: Optional[str] = None


class DetectBoxesRequest(CamelModel):
    prompt: Optional[str] = None
    image_base64: Optional[str] = None
    image_url: Optional[str] = None


# ============================================================================
# Cuotas
# ============================================================================

class QuotaResponse(CamelModel):
    images_quota: int
    models_quota: int
    images_used: int
    models_used: int
    images_remaining: int
    models_remaining: int


# ============================================================================
# Proyectos
# ============================================================================

class ProjectCreateRequest(CamelModel):
    name: Optional[str] = None


class ProjectRenameRequest(CamelModel):
    name: Optional[str] = None


class ProjectResponse(CamelModel):
    id: str
    name: str
    created_at: str
    updated_at: str


class ProjectVariationRequest(CamelModel):
    base_name: Optional[str] = None
    state: Dict[str, Any] = Field(default_factory=dict, description="Estado de actividad a forkear")


class ProjectVariationResponse(CamelModel):
    project_id: str
    project_name: str
    project_state: Dict[str, Any]


class RenderItem(CamelModel):
    name: str
    url: str
    full_path: str


class RendersResponse(CamelModel):
    renders: List[RenderItem]
    next_page_token: Optional[str] = None
    has_more: bool = False


# ============================================================================
# Metadata de links
# ============================================================================

class OpenGraphRequest(CamelModel):
    url: Optional[str] = None


class OpenGraphResponse(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image_base64: Optional[str] = None
    normalized_url: str
