"""
Endpoints de análisis visión-lenguaje (no consumen cuota).

- POST /api/analyze-image: texto libre o JSON sobre una imagen opcional
- POST /api/detect-bboxes: detección de bounding boxes (JSON del modelo)
"""

from typing import Any

from fastapi import APIRouter, Depends

from scene_ai_core.engine import GenerationEngine

from ..dependencies import get_current_user_id, get_engine
from ..models.requests import AnalyzeImageRequest, DetectBoxesRequest

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analyze-image")
def analyze_image(
    request: AnalyzeImageRequest,
    user_id: str = Depends(get_current_user_id),
    engine: GenerationEngine = Depends(get_engine),
) -> Any:
    return engine.analyze_image(
        request.prompt,
        model=request.model,
        json_output=request.json_output,
        image_base64=request.image_base64,
        mime_type=request.mime_type,
        image_url=request.image_url,
    )


@router.post("/detect-bboxes")
def detect_bboxes(
    request: DetectBoxesRequest,
    user_id: str = Depends(get_current_user_id),
    engine: GenerationEngine = Depends(get_engine),
) -> Any:
    return engine.detect_boxes(
        request.prompt,
        image_base64=request.image_base64,
        image_url=request.image_url,
    )
