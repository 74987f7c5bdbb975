"""
Quota Ledger: contabilidad de recursos consumibles por usuario.

Operaciones
-----------
- ensure_account: crea la cuenta con cuotas por defecto si no existe.
- check_quota:    devuelve el remanente; falla si no alcanza. No muta nada.
- commit_usage:   incrementa el uso con UN solo UPDATE atómico en la base.
- get_summary:    cuotas, uso y remanentes (para la UI).

Modelo de concurrencia
----------------------
`check_quota` y `commit_usage` son operaciones independientes separadas por
llamadas externas de varios segundos. Dos requests concurrentes del mismo
usuario pueden pasar ambos el check antes de que alguno comprometa uso:
es un hueco aceptado (no hay reserva/liberación transaccional).

Lo que SÍ se garantiza es que el incremento en sí no pierde updates:
se hace con `UPDATE ... SET used = used + :n` y nunca como lectura +
escritura del lado del cliente. `commit_usage` no se reintenta jamás: repetir
un incremento tras un fallo ambiguo podría contar doble.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .db.database import session_scope
from .db.models import Account
from .errors import NotFoundError, QuotaExceededError, ValidationError

logger = logging.getLogger(__name__)


class ResourceKind(str, Enum):
    """Tipo de recurso consumible."""

    IMAGE = "image"
    MODEL = "model"


# Columnas (quota, used) por tipo de recurso
_COLUMNS = {
    ResourceKind.IMAGE: (Account.images_quota, Account.images_used),
    ResourceKind.MODEL: (Account.models_quota, Account.models_used),
}


@dataclass
class QuotaSummary:
    images_quota: int
    models_quota: int
    images_used: int
    models_used: int

    @property
    def images_remaining(self) -> int:
        return self.images_quota - self.images_used

    @property
    def models_remaining(self) -> int:
        return self.models_quota - self.models_used


class QuotaLedger:
    """
    Ledger de cuotas sobre el document store.

    Es el ÚNICO componente que modifica los contadores de `Account`.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        default_images_quota: int = 200,
        default_models_quota: int = 100,
    ):
        self.session_factory = session_factory
        self.default_images_quota = default_images_quota
        self.default_models_quota = default_models_quota

    def ensure_account(self, user_id: str, email: str | None = None, is_anonymous: bool = False) -> Account:
        """
        Devuelve la cuenta de `user_id`, creándola con cuotas por defecto si no existe.

        Idempotente en llamadas secuenciales. Si dos primeras llamadas compiten,
        la que pierde el INSERT (conflicto de PK) relee la fila: los defaults
        son idénticos, así que el resultado final es el mismo.
        """
        with session_scope(self.session_factory) as session:
            account = session.get(Account, user_id)
            if account is not None:
                return account

        try:
            with session_scope(self.session_factory) as session:
                account = Account(
                    user_id=user_id,
                    email=email,
                    is_anonymous=is_anonymous,
                    images_quota=self.default_images_quota,
                    images_used=0,
                    models_quota=self.default_models_quota,
                    models_used=0,
                )
                session.add(account)
            logger.info(f"Creada cuenta nueva: {user_id} (anonymous={is_anonymous})")
            return account
        except IntegrityError:
            logger.info(f"Cuenta {user_id} creada por un request concurrente; se relee")
            with session_scope(self.session_factory) as session:
                account = session.get(Account, user_id)
                if account is None:
                    raise
                return account

    def _get_account(self, session: Session, user_id: str) -> Account:
        account = session.get(Account, user_id)
        if account is None:
            raise NotFoundError("User not found")
        return account

    def check_quota(self, user_id: str, resource: ResourceKind | str, required: int = 1) -> int:
        """
        Devuelve el remanente (`quota - used`) del recurso.

        Args:
            user_id: Dueño de la cuenta.
            resource: "image" | "model".
            required: Unidades que el pipeline va a comprometer si tiene éxito.

        Raises:
            NotFoundError: si la cuenta no existe.
            QuotaExceededError: si el remanente es menor a `required`.
        """
        kind = ResourceKind(resource)
        with session_scope(self.session_factory) as session:
            account = self._get_account(session, user_id)
            quota_col, used_col = _COLUMNS[kind]
            remaining = getattr(account, quota_col.key) - getattr(account, used_col.key)

        if remaining <= 0 or remaining < required:
            logger.info(f"Cuota de {kind.value} agotada para {user_id} (remanente={remaining}, requerido={required})")
            raise QuotaExceededError(kind.value, remaining)
        return remaining

    def commit_usage(self, user_id: str, resource: ResourceKind | str, count: int = 1) -> None:
        """
        Incrementa el uso en `count` con un único UPDATE atómico.

        Es incondicional: nunca falla por "cuota excedida".

        Raises:
            ValidationError: si `count` no es positivo.
            NotFoundError: si la cuenta no existe.
        """
        kind = ResourceKind(resource)
        if count <= 0:
            raise ValidationError(f"count debe ser positivo (recibido {count})")

        _, used_col = _COLUMNS[kind]
        with session_scope(self.session_factory) as session:
            result = session.execute(
                update(Account)
                .where(Account.user_id == user_id)
                .values({used_col: used_col + count})
            )
            if result.rowcount == 0:
                raise NotFoundError("User not found")
        logger.info(f"Uso comprometido: {user_id} +{count} {kind.value}")

    def get_summary(self, user_id: str) -> QuotaSummary:
        with session_scope(self.session_factory) as session:
            row = session.execute(
                select(
                    Account.images_quota,
                    Account.models_quota,
                    Account.images_used,
                    Account.models_used,
                ).where(Account.user_id == user_id)
            ).first()
        if row is None:
            raise NotFoundError("User not found")
        return QuotaSummary(
            images_quota=row.images_quota,
            models_quota=row.models_quota,
            images_used=row.images_used,
            models_used=row.models_used,
        )
