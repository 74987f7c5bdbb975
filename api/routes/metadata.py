"""
Endpoint público de preview de links (OpenGraph).

- POST /api/fetch-opengraph (sin autenticación)
"""

from fastapi import APIRouter, Depends

from scene_ai_core.services import PlatformServices

from ..dependencies import get_services
from ..link_preview import fetch_link_preview
from ..models.requests import OpenGraphRequest, OpenGraphResponse

router = APIRouter(prefix="/api", tags=["metadata"])


@router.post("/fetch-opengraph", response_model=OpenGraphResponse)
def fetch_opengraph(
    request: OpenGraphRequest,
    services: PlatformServices = Depends(get_services),
):
    preview = fetch_link_preview(services.http, request.url, timeout=services.settings.http_timeout_s)
    return OpenGraphResponse(
        title=preview.title,
        description=preview.description,
        image_base64=preview.image_base64,
        normalized_url=preview.normalized_url,
    )
