"""
Adapter de análisis visión-lenguaje sobre Gemini (generateContent, REST).

Contrato HTTP
-------------
POST https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent?key=...
    body: {"contents": [{"parts": [{"text": ...}, <imagen>]}],
           "generationConfig": {...}}
→ texto en candidates[0].content.parts[0].text

La imagen se envía como `inline_data` (base64) o como `file_data`
(URI accesible por Gemini, p. ej. un objeto público del storage propio).
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from ._http import post_json
from .base import ImagePart

logger = logging.getLogger(__name__)

SERVICE = "Gemini API"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
MAX_OUTPUT_TOKENS = 8192


def _image_to_part(image: ImagePart) -> dict:
    if image.file_uri:
        return {"file_data": {"mime_type": image.mime_type, "file_uri": image.file_uri}}
    return {"inline_data": {"mime_type": image.mime_type, "data": image.data_base64}}


def extract_text(data: Any) -> str:
    """Devuelve el texto del primer candidato, o "" si no hay."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


class GeminiVisionAnalyzer:
    def __init__(
        self,
        api_key: str,
        session: requests.Session,
        default_model: str = "gemini-2.5-flash",
        timeout: float = 120,
        base_url: str = GEMINI_BASE_URL,
    ):
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY no está configurada en el .env")
        self.api_key = api_key
        self.session = session
        self.default_model = default_model
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")

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
        model_name = model or self.default_model
        parts: list[dict] = [{"text": text}]
        if image is not None:
            parts.append(_image_to_part(image))

        generation_config: dict = {
            "temperature": temperature,
            "maxOutputTokens": MAX_OUTPUT_TOKENS,
        }
        if json_output:
            generation_config["responseMimeType"] = "application/json"
        if reasoning_level:
            # Con "thinking" el presupuesto de salida incluye el razonamiento
            generation_config["maxOutputTokens"] = MAX_OUTPUT_TOKENS * 4
            generation_config["thinkingConfig"] = {"thinkingLevel": reasoning_level}

        logger.info(f"Analizando con Gemini ({model_name})...")
        data = post_json(
            self.session,
            f"{self.base_url}/models/{model_name}:generateContent",
            service=SERVICE,
            payload={"contents": [{"parts": parts}], "generationConfig": generation_config},
            timeout=self.timeout,
            params={"key": self.api_key},
        )
        return extract_text(data)
