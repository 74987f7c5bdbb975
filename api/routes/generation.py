"""
Endpoints de generación (consumen cuota).

Este módulo maneja:
- POST /api/generate-image: imagen desde prompt / structured prompt / referencia
- POST /api/generate-scene: análisis de la referencia + generación de la escena
- POST /api/render-variants: N variantes en paralelo a partir de un screenshot
- POST /api/generate-3d-model: reconstrucción 3D a partir de una imagen

Los handlers son `def` (no `async`): el trabajo es bloqueante y FastAPI lo
corre en su threadpool.
"""

import logging

from fastapi import APIRouter, Depends

from scene_ai_core.engine import GenerationEngine

from ..dependencies import get_current_user_id, get_engine
from ..models.requests import (
    GenerateImageRequest,
    GenerateImageResponse,
    GenerateModelRequest,
    GenerateModelResponse,
    GenerateSceneRequest,
    GenerateSceneResponse,
    RenderVariantsRequest,
    RenderVariantsResponse,
    VariantResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generation"])


@router.post("/generate-image", response_model=GenerateImageResponse)
def generate_image(
    request: GenerateImageRequest,
    user_id: str = Depends(get_current_user_id),
    engine: GenerationEngine = Depends(get_engine),
):
    """
    Genera una imagen y la guarda en storage propio.

    Raises:
        400: sin structuredPrompt, prompt ni imageBase64
        403: cuota de imágenes agotada
        502: error del proveedor
    """
    result = engine.generate_image(
        user_id,
        structured_prompt=request.structured_prompt,
        prompt=request.prompt,
        seed=request.seed,
        image_base64=request.image_base64,
    )
    return GenerateImageResponse(
        image_url=result.image_url,
        structured_prompt=result.structured_prompt,
        seed=result.seed,
        original_url=result.original_url,
    )


@router.post("/generate-scene", response_model=GenerateSceneResponse)
def generate_scene(
    request: GenerateSceneRequest,
    user_id: str = Depends(get_current_user_id),
    engine: GenerationEngine = Depends(get_engine),
):
    result = engine.generate_scene(
        user_id,
        image_base64=request.image_base64,
        analysis_prompt=request.analysis_prompt,
        mime_type=request.mime_type,
    )
    return GenerateSceneResponse(
        furniture_list=result.furniture_list,
        structured_prompt=result.structured_prompt,
        seed=result.seed,
        image_url=result.image_url,
    )


@router.post("/render-variants", response_model=RenderVariantsResponse)
def render_variants(
    request: RenderVariantsRequest,
    user_id: str = Depends(get_current_user_id),
    engine: GenerationEngine = Depends(get_engine),
):
    session = engine.render_variants(user_id, screenshot=request.screenshot)
    return RenderVariantsResponse(
        session_id=session.session_id,
        original_url=session.original_url,
        results=[
            VariantResponse(id=r.id, image_url=r.image_url, original_url=r.original_url)
            for r in session.results
        ],
    )


@router.post("/generate-3d-model", response_model=GenerateModelResponse)
def generate_3d_model(
    request: GenerateModelRequest,
    user_id: str = Depends(get_current_user_id),
    engine: GenerationEngine = Depends(get_engine),
):
    result = engine.generate_model(user_id, image_url=request.image_url)
    return GenerateModelResponse(
        model_url=result.model_url,
        image_url=result.image_url,
        raw_response=result.raw_response,
    )
