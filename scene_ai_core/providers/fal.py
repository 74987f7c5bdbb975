"""
Adapter de reconstrucción 3D sobre Trellis (fal.ai, endpoint síncrono).

POST https://fal.run/fal-ai/trellis
    headers: Authorization: Key <FAL_KEY>
    body:    {"image_url": ...}
→ JSON arbitrario; la URL del mesh suele estar en `model_mesh.url`, pero el
  orquestador no asume esa forma (ver `scene_ai_core.mesh_search`).
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from ._http import post_json

logger = logging.getLogger(__name__)

SERVICE = "Trellis API"


class FalTrellisReconstructor:
    def __init__(self, fal_key: str, session: requests.Session, url: str, timeout: float = 120):
        if not fal_key:
            raise RuntimeError("FAL_KEY no está configurada en el .env")
        self.fal_key = fal_key
        self.session = session
        self.url = url
        self.timeout = timeout

    def reconstruct(self, image_url: str) -> Any:
        logger.info("Generando modelo 3D con Trellis...")
        return post_json(
            self.session,
            self.url,
            service=SERVICE,
            payload={"image_url": image_url},
            timeout=self.timeout,
            headers={"Authorization": f"Key {self.fal_key}"},
        )
