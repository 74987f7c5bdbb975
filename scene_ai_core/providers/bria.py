"""
Adapter de generación de imágenes sobre Bria FIBO (API v2, modo síncrono).

Contrato HTTP
-------------
POST {BRIA_BASE_URL}/v2/image/generate
    headers: api_token: <BRIA_API_KEY>
    body:    {"sync": true, "prompt"?, "structured_prompt"?, "seed"?,
              "images"?, "aspect_ratio"?}
→ {"result": {"image_url": str, "structured_prompt": str, "seed": int}}
"""

from __future__ import annotations

import logging

import requests

from ..errors import UpstreamError
from ._http import post_json
from .base import ImageGenerationOutput, ImageGenerationRequest

logger = logging.getLogger(__name__)

SERVICE = "FIBO API"


class BriaImageGenerator:
    def __init__(self, api_key: str, session: requests.Session, base_url: str, timeout: float = 120):
        if not api_key:
            raise RuntimeError("BRIA_API_KEY no está configurada en el .env")
        self.api_key = api_key
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _build_payload(self, request: ImageGenerationRequest) -> dict:
        payload: dict = {"sync": True}
        if request.structured_prompt:
            payload["structured_prompt"] = request.structured_prompt
        if request.prompt:
            payload["prompt"] = request.prompt
        if request.seed is not None:
            payload["seed"] = request.seed
        if request.reference_images:
            payload["images"] = list(request.reference_images)
        if request.aspect_ratio:
            payload["aspect_ratio"] = request.aspect_ratio
        return payload

    def generate(self, request: ImageGenerationRequest) -> ImageGenerationOutput:
        payload = self._build_payload(request)
        logger.info(
            f"Generando imagen con FIBO (prompt={bool(request.prompt)}, "
            f"structured={bool(request.structured_prompt)}, refs={len(request.reference_images)})"
        )

        data = post_json(
            self.session,
            f"{self.base_url}/v2/image/generate",
            service=SERVICE,
            payload=payload,
            timeout=self.timeout,
            headers={"api_token": self.api_key},
        )

        result = data.get("result") if isinstance(data, dict) else None
        if not isinstance(result, dict) or not result.get("image_url"):
            raise UpstreamError(SERVICE, "response without result.image_url", body=str(data))

        return ImageGenerationOutput(
            image_url=result["image_url"],
            structured_prompt=result.get("structured_prompt"),
            seed=result.get("seed"),
        )
