"""
Taxonomía de errores del core.

Cada error lleva el `status_code` HTTP con el que la capa API lo expone.
El core nunca importa FastAPI: solo levanta estas excepciones y la API
las traduce en un único exception handler (`api.main`).

- AuthError           → credencial ausente o inválida (401)
- ValidationError     → falta un input requerido; se rechaza antes de cualquier llamada de red (400)
- QuotaExceededError  → cuota agotada; cero uso comprometido y cero llamadas a proveedores (403)
- UpstreamError       → respuesta no exitosa de un proveedor o de un fetch (502)
- NotFoundError       → cuenta, proyecto, estado o mesh inexistente (404)
"""

from __future__ import annotations


class SceneCoreError(Exception):
    """Error base del core."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(SceneCoreError):
    status_code = 401


class ValidationError(SceneCoreError):
    status_code = 400


class NotFoundError(SceneCoreError):
    status_code = 404


class QuotaExceededError(SceneCoreError):
    """
    Cuota agotada para un tipo de recurso.

    Es distinta de un fallo genérico para que el cliente pueda mostrar
    un mensaje de upgrade.
    """

    status_code = 403

    def __init__(self, resource: str, remaining: int):
        label = "Image" if resource == "image" else "3D model"
        super().__init__(f"{label} quota exceeded. Please upgrade your account.")
        self.resource = resource
        self.remaining = remaining


class UpstreamError(SceneCoreError):
    """Respuesta no exitosa de un servicio externo (envuelve status + body)."""

    status_code = 502

    def __init__(self, service: str, message: str, status: int | None = None, body: str = ""):
        detail = f"{service} error"
        if status is not None:
            detail += f": {status}"
        detail += f" - {message}" if message else ""
        if body:
            detail += f" - {body[:500]}"
        super().__init__(detail)
        self.service = service
        self.status = status
        self.body = body
