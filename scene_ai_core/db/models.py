"""
Modelos ORM del document store.

- Account: contabilidad de recursos por usuario (cuotas y uso).
- Project: metadata liviana de un proyecto (el contenido vive en blob storage).

El registro en la base es la fuente de verdad de existencia y timestamps;
el blob es la fuente de verdad del contenido.
"""

from __future__ import annotations

import uuid
from datetime import datetime, UTC

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class Account(Base):
    """
    Cuenta de un usuario autenticado.

    Se crea de forma perezosa en el primer acceso autenticado y nunca se
    elimina desde el core. Solo `QuotaLedger` modifica los contadores `*_used`.
    """
    __tablename__ = "accounts"

    # Identidad (subject del token del proveedor de identidad)
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False)

    # Cuotas
    images_quota: Mapped[int] = mapped_column(Integer, default=200)
    images_used: Mapped[int] = mapped_column(Integer, default=0)
    models_quota: Mapped[int] = mapped_column(Integer, default=100)
    models_used: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    # Relaciones
    projects: Mapped[list["Project"]] = relationship(back_populates="owner")


class Project(Base):
    """
    Metadata de un proyecto. Un proyecto sin blob de estado es válido
    y significa "todavía no guardado".
    """
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    owner_id: Mapped[str] = mapped_column(String(128), ForeignKey("accounts.user_id"), index=True)
    name: Mapped[str] = mapped_column(String(200))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    # Relaciones
    owner: Mapped["Account"] = relationship(back_populates="projects")
