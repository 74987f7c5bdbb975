"""
Abstracciones (Protocols) para los proveedores generativos externos.

Cada tipo de proveedor expone UN contrato síncrono y angosto, de modo que
los pipelines del orquestador se puedan testear contra fakes y cada
implementación sea intercambiable:

- ImageGenerator  → generación de imágenes (prompt o structured prompt)
- VisionAnalyzer  → análisis visión-lenguaje (texto + imagen opcional)
- Reconstructor   → reconstrucción 3D a partir de una imagen
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class ImagePart:
    """
    Imagen adjunta a un pedido de análisis.

    Exactamente uno de `data_base64` (inline) o `file_uri` (referencia a un
    archivo ya accesible por el proveedor) debe estar presente.
    """

    mime_type: str = "image/jpeg"
    data_base64: str | None = None
    file_uri: str | None = None


@dataclass
class ImageGenerationRequest:
    prompt: str | None = None
    structured_prompt: str | None = None  # JSON serializado
    seed: int | None = None
    reference_images: list[str] = field(default_factory=list)  # base64 o URLs
    aspect_ratio: str | None = None


@dataclass
class ImageGenerationOutput:
    image_url: str              # URL del proveedor (no se asume durable)
    structured_prompt: Any      # eco del proveedor, string o ya estructurado
    seed: int | None


class ImageGenerator(Protocol):
    def generate(self, request: ImageGenerationRequest) -> ImageGenerationOutput:
        """
        Genera una imagen de forma síncrona.

        Raises:
            UpstreamError: si el proveedor responde con un status no exitoso
                o con un payload sin URL de imagen.
        """
        ...


class VisionAnalyzer(Protocol):
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
        Analiza `text` (y la imagen opcional) y devuelve el texto crudo.

        Si `json_output` es True, el proveedor debe responder JSON (como texto);
        parsearlo es responsabilidad del llamador. Un texto vacío se devuelve
        tal cual: decidir si eso es un fallo le corresponde al pipeline.
        """
        ...


class Reconstructor(Protocol):
    def reconstruct(self, image_url: str) -> Any:
        """
        Reconstruye un modelo 3D y devuelve la respuesta JSON completa
        (arbitrariamente anidada) del proveedor.
        """
        ...
