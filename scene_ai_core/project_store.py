"""
Project State Store: proyectos versionados y forkeables.

Cada proyecto tiene:
- un registro liviano en la base (`Project`: nombre y timestamps), y
- UN blob JSON con el estado completo en
  `users/{owner}/projects/{project_id}/project.json`.

El estado se guarda siempre entero (no hay escrituras parciales). Un proyecto
sin blob es válido: `load` devuelve None.

Además lista los renders guardados del usuario (paginados), que viven en el
mismo namespace de storage.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db.database import session_scope
from .db.models import Account, Project, _now
from .domain_models import ProjectState, RenderPage, STATE_VERSION
from .errors import NotFoundError, ValidationError
from .ingest import asset_path
from .services import PlatformServices
from .storage import BlobNotFoundError

logger = logging.getLogger(__name__)

STATE_FILENAME = "project.json"
STATE_CONTENT_TYPE = "application/json"
DEFAULT_RENDERS_PAGE_SIZE = 8


def state_path(owner_id: str, project_id: str) -> str:
    return asset_path(owner_id, f"projects/{project_id}", STATE_FILENAME)


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Project name is required")
    return cleaned


def _check_cursor(state: ProjectState) -> None:
    if not state.cursor_is_valid():
        raise ValidationError(
            f"currentHistoryIndex {state.current_history_index} out of range "
            f"for {len(state.activity_history)} history entries"
        )


class ProjectStore:
    def __init__(self, services: PlatformServices):
        self.services = services

    @property
    def storage(self):
        return self.services.storage

    def _get_project(self, session: Session, owner_id: str, project_id: str) -> Project:
        project = session.execute(
            select(Project).where(Project.id == project_id, Project.owner_id == owner_id)
        ).scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project not found")
        return project

    # -------------------------
    # Metadata
    # -------------------------

    def create_project(self, owner_id: str, name: str) -> Project:
        name = _clean_name(name)
        with session_scope(self.services.session_factory) as session:
            if session.get(Account, owner_id) is None:
                raise NotFoundError("User not found")
            project = Project(owner_id=owner_id, name=name)
            session.add(project)
            session.flush()
        logger.info(f"Proyecto creado: {project.id} ({name}) para {owner_id}")
        return project

    def list_projects(self, owner_id: str) -> List[Project]:
        """Proyectos del usuario, el más recientemente actualizado primero."""
        with session_scope(self.services.session_factory) as session:
            return list(
                session.execute(
                    select(Project)
                    .where(Project.owner_id == owner_id)
                    .order_by(Project.updated_at.desc(), Project.created_at.desc())
                ).scalars()
            )

    def get_project(self, owner_id: str, project_id: str) -> Project:
        with session_scope(self.services.session_factory) as session:
            return self._get_project(session, owner_id, project_id)

    def rename_project(self, owner_id: str, project_id: str, name: str) -> Project:
        name = _clean_name(name)
        with session_scope(self.services.session_factory) as session:
            project = self._get_project(session, owner_id, project_id)
            project.name = name
            project.updated_at = _now()
        return project

    # -------------------------
    # Estado
    # -------------------------

    def save(self, owner_id: str, project_id: str, state: ProjectState) -> ProjectState:
        """
        Serializa el estado entero al blob del proyecto y actualiza `updated_at`.

        Raises:
            NotFoundError: si el proyecto no existe (o no es del usuario).
            ValidationError: si el cursor del historial está fuera de rango.
        """
        _check_cursor(state)

        with session_scope(self.services.session_factory) as session:
            project = self._get_project(session, owner_id, project_id)

            if not state.timestamp:
                state.timestamp = datetime.now(UTC).isoformat()
            body = json.dumps(state.to_dict()).encode("utf-8")
            self.storage.put(body, state_path(owner_id, project_id), STATE_CONTENT_TYPE)

            project.updated_at = _now()

        logger.info(f"Estado guardado: proyecto {project_id} ({len(body)} bytes)")
        return state

    def load(self, owner_id: str, project_id: str) -> Optional[ProjectState]:
        """Devuelve el estado guardado, o None si el proyecto nunca se guardó."""
        try:
            raw = self.storage.get(state_path(owner_id, project_id))
        except BlobNotFoundError:
            return None
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ValidationError(f"Stored project state is not valid JSON: {e}") from e
        return ProjectState.from_dict(data)

    def create_variation(self, owner_id: str, base_name: str, source: ProjectState) -> Tuple[Project, ProjectState]:
        """
        Crea un proyecto nuevo `"{base_name}_variation"` con una copia profunda
        del estado fuente (incluido el historial completo y su cursor).

        El proyecto fuente no se toca. Un estado inválido se rechaza antes de
        crear el registro nuevo.
        """
        _check_cursor(source)
        project = self.create_project(owner_id, f"{_clean_name(base_name)}_variation")

        state = source.copy()
        state.version = STATE_VERSION
        state.timestamp = datetime.now(UTC).isoformat()
        state.extras = {}

        self.save(owner_id, project.id, state)
        logger.info(f"Variación creada: {project.id} desde '{base_name}'")
        return project, state

    def delete(self, owner_id: str, project_id: str) -> None:
        """
        Borra el registro del proyecto y su blob de estado.

        Que el blob no exista no es un error.
        """
        with session_scope(self.services.session_factory) as session:
            project = self._get_project(session, owner_id, project_id)
            session.delete(project)

        try:
            self.storage.delete(state_path(owner_id, project_id))
        except BlobNotFoundError:
            logger.debug(f"Proyecto {project_id} sin blob de estado; nada que borrar")

        logger.info(f"Proyecto borrado: {project_id}")

    # -------------------------
    # Renders
    # -------------------------

    def list_renders(
        self,
        owner_id: str,
        page_token: Optional[str] = None,
        page_size: int = DEFAULT_RENDERS_PAGE_SIZE,
    ) -> RenderPage:
        """
        Renders guardados del usuario, nombre descendente (más nuevos primero).

        `page_token` es opaco para el cliente (internamente, un offset).
        """
        if page_size <= 0:
            raise ValidationError("pageSize must be positive")
        try:
            offset = int(page_token) if page_token else 0
        except ValueError as e:
            raise ValidationError(f"Invalid page token: {page_token!r}") from e
        if offset < 0:
            raise ValidationError(f"Invalid page token: {page_token!r}")

        items = sorted(
            self.storage.list(asset_path(owner_id, "renders", "")),
            key=lambda item: item.name,
            reverse=True,
        )
        page = items[offset:offset + page_size]
        next_offset = offset + page_size
        return RenderPage(
            renders=[{"name": i.name, "url": i.url, "fullPath": i.path} for i in page],
            next_page_token=str(next_offset) if next_offset < len(items) else None,
        )
