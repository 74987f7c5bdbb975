from __future__ import annotations

import base64
import binascii
import logging
import re

import requests

from .errors import UpstreamError, ValidationError
from .storage.base import BlobStorage

"""
scene_ai_core.ingest
====================

Ingestión de assets (bytes → blob storage → URL canónica).

Responsabilidad
----------------
Este módulo se encarga exclusivamente de:

- Decodificar imágenes inline (base64, opcionalmente con prefijo data-URI)
- Descargar bytes remotos (p. ej. la imagen que devuelve un proveedor)
- Guardarlos en el blob storage bajo un path namespaced por dueño
- Devolver la URL pública canónica del objeto guardado

NO hace:
---------
- Llamadas a proveedores generativos
- Contabilidad de cuotas
- Borrado de assets (la limpieza es responsabilidad del dueño)

Diseño
------
- Las URLs de los proveedores NO se asumen durables: todo resultado se
  re-sube a storage propio.
- El content type se pasa explícito; si no, se infiere del prefijo data-URI
  y, en último caso, se usa `image/png` (todos los call sites actuales
  guardan imágenes).
"""

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/png"

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=-]+)*;base64,", re.IGNORECASE)


def asset_path(owner_id: str, category: str, filename: str) -> str:
    """
    Path namespaced de un asset: `users/{owner}/{category}/{filename}`.

    Ejemplo:
        asset_path("u1", "renders", "abc123.png") → "users/u1/renders/abc123.png"
    """
    if not owner_id or "/" in owner_id:
        raise ValidationError(f"owner_id inválido: {owner_id!r}")
    return f"users/{owner_id}/{category.strip('/')}/{filename}"


def strip_data_uri(data: str) -> tuple[str, str | None]:
    """
    Quita el prefijo `data:<mime>;base64,` si existe.

    Returns:
        (payload_base64, mime_del_prefijo | None)
    """
    match = _DATA_URI_RE.match(data)
    if not match:
        return data.strip(), None
    return data[match.end():].strip(), match.group("mime")


def decode_base64_image(data: str) -> tuple[bytes, str | None]:
    """
    Decodifica una imagen base64 (con o sin prefijo data-URI).

    Raises:
        ValidationError: si el payload está vacío o no es base64 válido.
    """
    payload, mime = strip_data_uri(data)
    if not payload:
        raise ValidationError("Empty image payload")
    try:
        return base64.b64decode(payload, validate=True), mime
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64 image payload: {e}") from e


class AssetIngestor:
    """
    Punto de entrada único para persistir assets.

    Attributes
    ----------
    storage:
        Blob storage destino.
    http:
        Sesión `requests` para descargas remotas.
    timeout:
        Timeout (segundos) de cada descarga. Sin reintentos.
    """

    def __init__(self, storage: BlobStorage, http: requests.Session, timeout: float = 120):
        self.storage = storage
        self.http = http
        self.timeout = timeout

    def fetch(self, url: str) -> tuple[bytes, str | None]:
        """
        Descarga `url` y devuelve (bytes, content type informado).

        Raises:
            UpstreamError: si la respuesta no es 2xx o falla el transporte.
        """
        try:
            response = self.http.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError("Asset download", f"request failed: {e}") from e

        if not response.ok:
            raise UpstreamError(
                "Asset download",
                f"Failed to download {url}: {response.reason or ''}".strip(),
                status=response.status_code,
                body=response.text,
            )

        content_type = response.headers.get("Content-Type")
        if content_type:
            content_type = content_type.split(";")[0].strip()
        return response.content, content_type

    def store_inline(self, data: str, path: str, content_type: str | None = None) -> str:
        """
        Decodifica una imagen inline y la guarda en `path`.

        Returns:
            URL pública canónica del objeto guardado.
        """
        raw, prefix_mime = decode_base64_image(data)
        resolved_type = content_type or prefix_mime or DEFAULT_CONTENT_TYPE
        url = self.storage.put(raw, path, resolved_type)
        logger.info(f"📦 Asset inline guardado: {path} ({len(raw)} bytes, {resolved_type})")
        return url

    def store_remote(self, url: str, path: str, content_type: str | None = None) -> str:
        """
        Descarga `url` y guarda los bytes en `path`.

        Returns:
            URL pública canónica del objeto guardado.
        """
        raw, _reported_type = self.fetch(url)
        resolved_type = content_type or DEFAULT_CONTENT_TYPE
        stored_url = self.storage.put(raw, path, resolved_type)
        logger.info(f"📦 Asset remoto guardado: {path} ({len(raw)} bytes, {resolved_type})")
        return stored_url

