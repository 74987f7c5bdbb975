"""
Endpoints para gestionar proyectos y su estado versionado.

Este módulo maneja:
- GET    /api/projects: listar proyectos del usuario (más recientes primero)
- POST   /api/projects: crear un proyecto vacío
- PATCH  /api/projects/{project_id}: renombrar
- DELETE /api/projects/{project_id}: borrar proyecto y estado
- GET    /api/projects/{project_id}/state: cargar estado (null si nunca se guardó)
- PUT    /api/projects/{project_id}/state: guardar estado completo
- POST   /api/projects/variations: forkear un estado a un proyecto nuevo
- GET    /api/renders: renders guardados del usuario, paginados
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from scene_ai_core.db.models import Project
from scene_ai_core.domain_models import ProjectState
from scene_ai_core.project_store import DEFAULT_RENDERS_PAGE_SIZE, ProjectStore

from ..dependencies import get_current_user_id, get_project_store
from ..models.requests import (
    ProjectCreateRequest,
    ProjectRenameRequest,
    ProjectResponse,
    ProjectVariationRequest,
    ProjectVariationResponse,
    RenderItem,
    RendersResponse,
)

router = APIRouter(prefix="/api", tags=["projects"])


def _to_response(project: Project) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        created_at=project.created_at.isoformat(),
        updated_at=project.updated_at.isoformat(),
    )


@router.get("/projects", response_model=List[ProjectResponse])
def list_projects(
    user_id: str = Depends(get_current_user_id),
    store: ProjectStore = Depends(get_project_store),
):
    return [_to_response(p) for p in store.list_projects(user_id)]


@router.post("/projects", response_model=ProjectResponse)
def create_project(
    request: ProjectCreateRequest,
    user_id: str = Depends(get_current_user_id),
    store: ProjectStore = Depends(get_project_store),
):
    return _to_response(store.create_project(user_id, request.name))


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
def rename_project(
    project_id: str,
    request: ProjectRenameRequest,
    user_id: str = Depends(get_current_user_id),
    store: ProjectStore = Depends(get_project_store),
):
    return _to_response(store.rename_project(user_id, project_id, request.name))


@router.delete("/projects/{project_id}")
def delete_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ProjectStore = Depends(get_project_store),
):
    store.delete(user_id, project_id)
    return {"success": True}


@router.get("/projects/{project_id}/state")
def load_project_state(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ProjectStore = Depends(get_project_store),
) -> Optional[Dict[str, Any]]:
    state = store.load(user_id, project_id)
    return state.to_dict() if state is not None else None


@router.put("/projects/{project_id}/state")
def save_project_state(
    project_id: str,
    state: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    store: ProjectStore = Depends(get_project_store),
) -> Dict[str, Any]:
    saved = store.save(user_id, project_id, ProjectState.from_dict(state))
    return saved.to_dict()


@router.post("/projects/variations", response_model=ProjectVariationResponse)
def create_project_variation(
    request: ProjectVariationRequest,
    user_id: str = Depends(get_current_user_id),
    store: ProjectStore = Depends(get_project_store),
):
    project, state = store.create_variation(user_id, request.base_name, ProjectState.from_dict(request.state))
    return ProjectVariationResponse(
        project_id=project.id,
        project_name=project.name,
        project_state=state.to_dict(),
    )


@router.get("/renders", response_model=RendersResponse)
def list_renders(
    page_token: Optional[str] = Query(None, alias="pageToken"),
    page_size: int = Query(DEFAULT_RENDERS_PAGE_SIZE, alias="pageSize"),
    user_id: str = Depends(get_current_user_id),
    store: ProjectStore = Depends(get_project_store),
):
    page = store.list_renders(user_id, page_token=page_token, page_size=page_size)
    return RendersResponse(
        renders=[RenderItem(**item) for item in page.renders],
        next_page_token=page.next_page_token,
        has_more=page.has_more,
    )
