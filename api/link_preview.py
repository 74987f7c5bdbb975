"""
Preview de links (OpenGraph) para el moodboard del cliente.

Descarga la página, extrae título/descripción/imagen de los meta tags
OpenGraph (con fallback a <title> y meta description) y, si hay imagen,
la devuelve inline en base64. La descarga de la imagen es best-effort:
si falla, el preview sale igual sin imagen.
"""

from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from scene_ai_core.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


@dataclass
class LinkPreview:
    title: Optional[str]
    description: Optional[str]
    image_base64: Optional[str]
    normalized_url: str


def normalize_url(url: str) -> str:
    """Quita el fragmento y agrega `https://` si no hay esquema."""
    normalized = url.strip().split("#", 1)[0]
    if not _SCHEME_RE.match(normalized):
        normalized = "https://" + normalized
    return normalized


def _meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = (tag.get("content") or "").strip()
    return content or None


def extract_metadata(html: str) -> tuple[Optional[str], Optional[str], Optional[str]]:
    """Devuelve (title, description, image) de un documento HTML."""
    soup = BeautifulSoup(html, "html.parser")

    title = _meta_content(soup, property="og:title")
    if title is None and soup.title and soup.title.string:
        title = soup.title.string.strip() or None

    description = _meta_content(soup, property="og:description") or _meta_content(soup, name="description")
    image = _meta_content(soup, property="og:image")
    return title, description, image


def _download_image(http: requests.Session, image_url: str, timeout: float) -> Optional[str]:
    try:
        response = http.get(image_url, headers={"User-Agent": "Mozilla/5.0"}, timeout=timeout)
    except requests.RequestException as e:
        logger.warning(f"No se pudo descargar la imagen OG {image_url}: {e}")
        return None
    if not response.ok:
        logger.warning(f"Imagen OG {image_url} respondió {response.status_code}")
        return None
    return base64.b64encode(response.content).decode("ascii")


def fetch_link_preview(http: requests.Session, url: str, timeout: float = 30) -> LinkPreview:
    """
    Raises:
        ValidationError: URL vacía, página no accesible o sin metadata.
        UpstreamError: fallo de transporte al pedir la página.
    """
    if not url or not url.strip():
        raise ValidationError("URL is required")

    normalized = normalize_url(url)
    logger.info(f"Obteniendo OpenGraph de: {normalized}")

    try:
        response = http.get(normalized, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    except requests.RequestException as e:
        raise UpstreamError("Link preview", f"request failed: {e}") from e
    if not response.ok:
        raise ValidationError("Link not supported")

    title, description, image = extract_metadata(response.text)
    if not title and not description and not image:
        raise ValidationError("No OpenGraph metadata found")

    image_base64 = None
    if image:
        image_base64 = _download_image(http, urljoin(normalized, image), timeout)

    return LinkPreview(
        title=title,
        description=description,
        image_base64=image_base64,
        normalized_url=normalized,
    )
