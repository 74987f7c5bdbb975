from __future__ import annotations

"""
scene_ai_core.engine
====================

Orquestador de alto nivel de los pipelines de generación.

Este módulo expone una **API interna** y estable para correr cada pipeline
(check de cuota → proveedores → ingestión → commit de uso), sin preocuparse por:

- HTTP
- frameworks web
- autenticación

La idea es que:

- La API HTTP (`api/routes/generation.py`, `api/routes/analysis.py`) llame
  a este módulo y nunca a los adapters directamente.
- Los tests ejerciten los pipelines con proveedores fake.

Ciclo de vida de cada invocación
--------------------------------
    Init → Checked → (Etapa 1 → Etapa 2 → …) → Committed | Failed

- La validación de inputs ocurre ANTES del check de cuota y de cualquier red.
- La cuota se chequea una sola vez, al principio.
- El uso se compromete solo después de que la última etapa tuvo éxito.
  Un fallo en cualquier etapa se propaga tal cual y no compromete nada
  (los assets ya guardados quedan; no hay compensación).
"""

import base64
import json
import logging
import uuid
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from datetime import UTC, datetime
from typing import Any, List, Optional

from .domain_models import GenerationResult, ModelResult, RenderSession, SceneResult, VariantResult
from .errors import NotFoundError, UpstreamError, ValidationError
from .ingest import asset_path, strip_data_uri
from .mesh_search import find_first_url_with_extensions
from .prompts import RENDER_VARIANT_PROMPT, build_scene_prompt
from .providers import ImageGenerationRequest, ImagePart
from .quota import QuotaLedger, ResourceKind
from .services import PlatformServices

logger = logging.getLogger(__name__)

RENDERS_CATEGORY = "renders"
VISION_SERVICE = "Vision API"
DEFAULT_IMAGE_MIME = "image/jpeg"


def new_session_id() -> str:
    """
    Id de sesión de render: timestamp UTC + sufijo aleatorio.

    Ordenar los nombres de archivo en forma descendente da los más nuevos primero.
    """
    return f"{datetime.now(UTC).strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:8]}"


def serialize_structured_prompt(value: Any) -> Optional[str]:
    """Los structured prompts viajan al proveedor como JSON serializado."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value)


def parse_structured_prompt(value: Any) -> Any:
    """String JSON → valor; si no parsea (o no es string) se devuelve tal cual."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


def _parse_json_response(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as e:
        raise UpstreamError(VISION_SERVICE, f"invalid JSON response: {e}", body=text) from e


def _well_known_mesh_url(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    mesh = data.get("model_mesh")
    if isinstance(mesh, dict) and isinstance(mesh.get("url"), str) and mesh["url"]:
        return mesh["url"]
    return None


class GenerationEngine:
    """
    Orquestador de pipelines.

    Recibe el contexto de servicios (proveedores, storage, settings) y el
    ledger de cuotas; no guarda estado propio entre invocaciones.
    """

    def __init__(self, services: PlatformServices, ledger: QuotaLedger):
        self.services = services
        self.ledger = ledger

    @property
    def settings(self):
        return self.services.settings

    def _render_path(self, user_id: str, filename: str) -> str:
        return asset_path(user_id, RENDERS_CATEGORY, filename)

    # -------------------------
    # Imagen simple (1 etapa)
    # -------------------------

    def generate_image(
        self,
        user_id: str,
        *,
        structured_prompt: Any = None,
        prompt: Optional[str] = None,
        seed: Optional[int] = None,
        image_base64: Optional[str] = None,
    ) -> GenerationResult:
        """
        Genera una imagen a partir de un prompt, un structured prompt o una
        imagen de referencia, la re-sube a storage propio y compromete 1 imagen.

        Raises:
            ValidationError: si no viene ninguno de los tres inputs.
            QuotaExceededError: sin cuota de imágenes (cero llamadas a proveedores).
            UpstreamError: fallo del proveedor o de la descarga.
        """
        if not structured_prompt and not prompt and not image_base64:
            raise ValidationError("structuredPrompt, prompt or imageBase64 is required")

        self.ledger.check_quota(user_id, ResourceKind.IMAGE)

        request = ImageGenerationRequest(
            prompt=prompt or None,
            structured_prompt=serialize_structured_prompt(structured_prompt),
            seed=seed,
            reference_images=[image_base64] if image_base64 else [],
        )
        output = self.services.image_generator.generate(request)

        session_id = new_session_id()
        stored_url = self.services.ingestor.store_remote(
            output.image_url, self._render_path(user_id, f"{session_id}.png")
        )

        self.ledger.commit_usage(user_id, ResourceKind.IMAGE, 1)
        logger.info(f"Imagen generada para {user_id}: {stored_url}")

        return GenerationResult(
            image_url=stored_url,
            structured_prompt=parse_structured_prompt(output.structured_prompt),
            seed=output.seed,
            original_url=output.image_url,
        )

    # -------------------------
    # Escena (2 etapas)
    # -------------------------

    def generate_scene(
        self,
        user_id: str,
        *,
        image_base64: str,
        analysis_prompt: str,
        mime_type: Optional[str] = None,
    ) -> SceneResult:
        """
        Pipeline de dos etapas:

        1) Análisis visión-lenguaje de la imagen de referencia → lista de ítems.
        2) Generación de imagen con un prompt que embebe esa lista verbatim,
           restringido a no agregar ítems fuera de ella.

        Si la etapa 1 devuelve texto vacío el pipeline falla antes de la etapa 2.
        """
        if not image_base64 or not analysis_prompt:
            raise ValidationError("imageBase64 and analysisPrompt are required")

        self.ledger.check_quota(user_id, ResourceKind.IMAGE)

        # 1) Análisis
        payload, prefix_mime = strip_data_uri(image_base64)
        image = ImagePart(mime_type=mime_type or prefix_mime or DEFAULT_IMAGE_MIME, data_base64=payload)
        logger.info(f"Etapa 1: analizando imagen de referencia ({user_id})...")
        furniture_list = self.services.vision.analyze(analysis_prompt, image, temperature=0.0)
        if not furniture_list or not furniture_list.strip():
            raise UpstreamError(VISION_SERVICE, "returned no furniture analysis")

        # 2) Generación
        logger.info(f"Etapa 2: generando escena ({user_id})...")
        output = self.services.image_generator.generate(
            ImageGenerationRequest(
                prompt=build_scene_prompt(furniture_list),
                reference_images=[image_base64],
            )
        )

        session_id = new_session_id()
        stored_url = self.services.ingestor.store_remote(
            output.image_url, self._render_path(user_id, f"{session_id}.png")
        )

        self.ledger.commit_usage(user_id, ResourceKind.IMAGE, 1)

        return SceneResult(
            furniture_list=furniture_list,
            structured_prompt=parse_structured_prompt(output.structured_prompt),
            seed=output.seed,
            image_url=stored_url,
        )

    # -------------------------
    # Fan-out de variantes
    # -------------------------

    def _render_variant(self, user_id: str, session_id: str, original_url: str, k: int) -> VariantResult:
        output = self.services.image_generator.generate(
            ImageGenerationRequest(
                prompt=RENDER_VARIANT_PROMPT,
                reference_images=[original_url],
                aspect_ratio=self.settings.render_aspect_ratio,
            )
        )
        stored_url = self.services.ingestor.store_remote(
            output.image_url, self._render_path(user_id, f"{session_id}-variant{k}.png")
        )
        return VariantResult(id=k, image_url=stored_url, original_url=output.image_url)

    def render_variants(self, user_id: str, *, screenshot: str) -> RenderSession:
        """
        Guarda el screenshot y genera N variantes en paralelo a partir de él.

        Todo-o-nada: el primer fallo se propaga y no se compromete uso. Las
        ramas hermanas no se cancelan; lo que lleguen a guardar queda en storage.
        Con éxito total se comprometen exactamente N imágenes.
        """
        if not screenshot:
            raise ValidationError("Screenshot is required")

        n = self.settings.render_variant_count
        self.ledger.check_quota(user_id, ResourceKind.IMAGE, required=n)

        session_id = new_session_id()
        logger.info(f"Iniciando sesión de render {session_id} ({n} variantes)")

        original_url = self.services.ingestor.store_inline(
            screenshot, self._render_path(user_id, f"{session_id}-original.png"), "image/png"
        )

        executor = ThreadPoolExecutor(max_workers=n, thread_name_prefix=f"render-{session_id}")
        try:
            futures = {
                k: executor.submit(self._render_variant, user_id, session_id, original_url, k)
                for k in range(1, n + 1)
            }
            done, _ = wait(futures.values(), return_when=FIRST_EXCEPTION)
            for future in done:
                exc = future.exception()
                if exc is not None:
                    logger.error(f"Sesión de render {session_id} falló: {exc}")
                    raise exc
            results: List[VariantResult] = [futures[k].result() for k in sorted(futures)]
        finally:
            executor.shutdown(wait=False)

        self.ledger.commit_usage(user_id, ResourceKind.IMAGE, n)
        logger.info(f"Sesión de render {session_id} completada")

        return RenderSession(session_id=session_id, original_url=original_url, results=results)

    # -------------------------
    # Reconstrucción 3D
    # -------------------------

    def generate_model(self, user_id: str, *, image_url: str) -> ModelResult:
        if not image_url:
            raise ValidationError("imageUrl is required")

        self.ledger.check_quota(user_id, ResourceKind.MODEL)

        data = self.services.reconstructor.reconstruct(image_url)

        model_url = _well_known_mesh_url(data) or find_first_url_with_extensions(
            data, self.settings.mesh_extensions
        )
        if not model_url:
            raise NotFoundError("No model URL found in response")

        self.ledger.commit_usage(user_id, ResourceKind.MODEL, 1)
        logger.info(f"Modelo 3D generado para {user_id}: {model_url}")

        return ModelResult(
            model_url=model_url,
            image_url=data.get("image_url") if isinstance(data, dict) else None,
            raw_response=data,
        )

    # -------------------------
    # Análisis (sin cuota)
    # -------------------------

    def _fetch_inline(self, url: str) -> ImagePart:
        raw, content_type = self.services.ingestor.fetch(url)
        mime = content_type if content_type and content_type.startswith("image/") else DEFAULT_IMAGE_MIME
        return ImagePart(mime_type=mime, data_base64=base64.b64encode(raw).decode("ascii"))

    def analyze_image(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        json_output: bool = False,
        image_base64: Optional[str] = None,
        mime_type: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> Any:
        """
        Análisis visión-lenguaje de uso general.

        La imagen inline tiene prioridad sobre la URL; una URL se descarga
        e inlinea. Devuelve `{"text": ...}` o, con `json_output`, el JSON parseado.
        """
        if not prompt:
            raise ValidationError("Prompt is required")

        image: Optional[ImagePart] = None
        if image_base64:
            payload, prefix_mime = strip_data_uri(image_base64)
            image = ImagePart(mime_type=mime_type or prefix_mime or DEFAULT_IMAGE_MIME, data_base64=payload)
        elif image_url:
            image = self._fetch_inline(image_url)

        text = self.services.vision.analyze(prompt, image, model=model, json_output=json_output, temperature=0.0)
        if not text:
            raise UpstreamError(VISION_SERVICE, "returned no response")

        if json_output:
            return _parse_json_response(text)
        return {"text": text}

    def detect_boxes(
        self,
        prompt: str,
        *,
        image_base64: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> Any:
        """
        Detección de bounding boxes (respuesta JSON del modelo, sin transformar).

        Las URLs de storage propio se pasan al proveedor como referencia de
        archivo, sin re-descargar. El nivel de razonamiento sube a "high"
        cuando el prompt pide razonamiento espacial.
        """
        if not prompt:
            raise ValidationError("prompt is required")
        if not image_base64 and not image_url:
            raise ValidationError("imageBase64 or imageUrl is required")

        if image_url and self.services.storage.owns(image_url):
            image = ImagePart(mime_type=DEFAULT_IMAGE_MIME, file_uri=image_url)
        elif image_base64:
            payload, _ = strip_data_uri(image_base64)
            image = ImagePart(mime_type=DEFAULT_IMAGE_MIME, data_base64=payload)
        else:
            image = self._fetch_inline(image_url)

        level = "high" if "spatial" in prompt else "low"
        model = self.settings.gemini_model_detect if self.settings.vision_provider == "gemini" else None
        logger.info(f"Detectando bounding boxes (reasoning={level})...")

        text = self.services.vision.analyze(
            prompt,
            image,
            model=model,
            json_output=True,
            temperature=0.1,
            reasoning_level=level,
        )
        if not text:
            raise UpstreamError(VISION_SERVICE, "returned no response")
        return _parse_json_response(text)
