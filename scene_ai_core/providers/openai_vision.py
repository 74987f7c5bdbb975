"""
Adapter de análisis visión-lenguaje sobre OpenAI (chat.completions con imágenes).

Alternativa a Gemini seleccionable con VISION_PROVIDER=openai. Las imágenes
se envían como partes `image_url`: data URL para contenido inline, o la URL
pública tal cual para referencias a archivos.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from openai import OpenAI, OpenAIError

from ..errors import UpstreamError
from .base import ImagePart

logger = logging.getLogger(__name__)

SERVICE = "OpenAI API"


def get_client(api_key: str) -> OpenAI:
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY no está configurada en el .env")
    return OpenAI(api_key=api_key)


def _image_to_content(image: ImagePart) -> Dict[str, Any]:
    if image.file_uri:
        url = image.file_uri
    else:
        url = f"data:{image.mime_type};base64,{image.data_base64}"
    return {"type": "image_url", "image_url": {"url": url}}


class OpenAIVisionAnalyzer:
    def __init__(self, client: OpenAI, default_model: str = "gpt-4.1-mini", timeout: float = 120):
        self.client = client
        self.default_model = default_model
        self.timeout = timeout

    def analyze(
        self,
        text: str,
        image: ImagePart | None = None,
        *,
        model: str | None = None,
        json_output: bool = False,
        temperature: float = 0.0,
        reasoning_level: str | None = None,
    ) -> str:
        """
        Analiza texto + imagen con un modelo con visión.

        `reasoning_level` no tiene equivalente en chat.completions y se ignora.
        """
        model_name = model or self.default_model
        content: List[Dict[str, Any]] = [{"type": "text", "text": text}]
        if image is not None:
            content.append(_image_to_content(image))

        kwargs: Dict[str, Any] = {}
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}

        logger.info(f"Analizando con OpenAI ({model_name})...")
        try:
            completion = self.client.chat.completions.create(
                model=model_name,
                messages=[{"role": "user", "content": content}],
                temperature=temperature,
                timeout=self.timeout,
                **kwargs,
            )
        except OpenAIError as e:
            raise UpstreamError(SERVICE, str(e), status=getattr(e, "status_code", None)) from e

        return completion.choices[0].message.content or ""
