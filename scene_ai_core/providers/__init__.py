"""
Provider adapters: un contrato por tipo de proveedor generativo.

- generación de imágenes: `BriaImageGenerator`
- análisis visión-lenguaje: `GeminiVisionAnalyzer`, `OpenAIVisionAnalyzer`
- reconstrucción 3D: `FalTrellisReconstructor`
"""

from .base import (
    ImageGenerationOutput,
    ImageGenerationRequest,
    ImageGenerator,
    ImagePart,
    Reconstructor,
    VisionAnalyzer,
)

__all__ = [
    "ImageGenerationOutput",
    "ImageGenerationRequest",
    "ImageGenerator",
    "ImagePart",
    "Reconstructor",
    "VisionAnalyzer",
]
