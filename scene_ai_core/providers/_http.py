from __future__ import annotations

import logging
from typing import Any

import requests

from ..errors import UpstreamError

logger = logging.getLogger(__name__)


def post_json(
    session: requests.Session,
    url: str,
    *,
    service: str,
    payload: dict,
    timeout: float,
    headers: dict | None = None,
    params: dict | None = None,
) -> Any:
    """
    POST JSON a un proveedor y devuelve el body decodificado.

    No reintenta: un pedido de generación no es idempotente (cuesta créditos
    en el proveedor), así que cualquier fallo se propaga al pipeline.

    Raises:
        UpstreamError: status no 2xx, error de transporte o body no-JSON.
    """
    try:
        response = session.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json", **(headers or {})},
            params=params,
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise UpstreamError(service, f"request failed: {e}") from e

    if not response.ok:
        raise UpstreamError(service, response.reason or "", status=response.status_code, body=response.text)

    try:
        return response.json()
    except ValueError as e:
        raise UpstreamError(service, "invalid JSON response", status=response.status_code, body=response.text) from e
