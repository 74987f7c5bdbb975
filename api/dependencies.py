"""
Dependencias de FastAPI para autenticación y acceso a los servicios del core.

Este módulo proporciona dependencias reutilizables para:
- Obtener el contexto de servicios (`PlatformServices`) de la app
- Verificar el bearer token (JWT firmado por Supabase) y obtener la identidad
- Asegurar que la cuenta del usuario exista (cuotas por defecto) antes de
  cualquier operación autenticada
- Construir el ledger, el orquestador y el store de proyectos
"""

import logging
from dataclasses import dataclass
from typing import Optional

import jwt  # pyjwt
from fastapi import Depends, Header, Request

from scene_ai_core.engine import GenerationEngine
from scene_ai_core.errors import AuthError
from scene_ai_core.project_store import ProjectStore
from scene_ai_core.quota import QuotaLedger
from scene_ai_core.services import PlatformServices

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    subject_id: str
    email: Optional[str] = None
    is_anonymous: bool = False


class SupabaseTokenVerifier:
    """
    Verifica access tokens de Supabase Auth (HS256 con el JWT secret del proyecto).

    Solo verifica: la emisión y el refresh de tokens son del proveedor de identidad.
    """

    def __init__(self, jwt_secret: str, audience: str = "authenticated"):
        self.jwt_secret = jwt_secret
        self.audience = audience

    def verify(self, token: str) -> Identity:
        if not self.jwt_secret:
            raise RuntimeError("SUPABASE_JWT_SECRET no está configurada en el .env")

        try:
            decoded = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=["HS256"],
                audience=self.audience,
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthError("Token expired") from e
        except jwt.InvalidTokenError as e:
            logger.warning(f"Token inválido: {type(e).__name__}: {e}")
            raise AuthError("Invalid token") from e

        subject = decoded.get("sub")
        if not subject:
            raise AuthError("Invalid token: no user ID found")

        return Identity(
            subject_id=subject,
            email=decoded.get("email") or None,
            is_anonymous=bool(decoded.get("is_anonymous", False)),
        )


def get_services(request: Request) -> PlatformServices:
    return request.app.state.services


def get_token_verifier(request: Request) -> SupabaseTokenVerifier:
    return request.app.state.token_verifier


def get_ledger(services: PlatformServices = Depends(get_services)) -> QuotaLedger:
    return QuotaLedger(
        services.session_factory,
        default_images_quota=services.settings.default_images_quota,
        default_models_quota=services.settings.default_models_quota,
    )


def get_engine(
    services: PlatformServices = Depends(get_services),
    ledger: QuotaLedger = Depends(get_ledger),
) -> GenerationEngine:
    return GenerationEngine(services, ledger)


def get_project_store(services: PlatformServices = Depends(get_services)) -> ProjectStore:
    return ProjectStore(services)


def get_identity(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    verifier: SupabaseTokenVerifier = Depends(get_token_verifier),
) -> Identity:
    """
    Obtiene la identidad del usuario desde el header `Authorization: Bearer <token>`.

    Raises:
        AuthError: header ausente, con formato inválido o token inválido.
    """
    if not authorization:
        raise AuthError("Missing Authorization header")
    if not authorization.startswith("Bearer "):
        raise AuthError("Invalid Authorization header format. Expected 'Bearer <token>'")

    token = authorization[len("Bearer "):].strip()
    if not token:
        raise AuthError("Missing bearer token")
    return verifier.verify(token)


def get_current_user_id(
    identity: Identity = Depends(get_identity),
    ledger: QuotaLedger = Depends(get_ledger),
) -> str:
    """
    ID del usuario autenticado, con su cuenta garantizada.

    La cuenta se crea acá (primer acceso autenticado) con las cuotas por defecto.
    """
    ledger.ensure_account(identity.subject_id, email=identity.email, is_anonymous=identity.is_anonymous)
    return identity.subject_id
