from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .errors import ValidationError

"""
scene_ai_core.domain_models
===========================

Tipos del dominio que circulan entre el orquestador, el store de proyectos
y la capa API.

- Resultados de pipelines (transitorios, no se persisten)
- `ProjectState`: documento completo de un proyecto, con historial lineal
  de undo/redo, serializado como UN blob JSON con claves camelCase
"""

Snapshot = Dict[str, Any]  # copia puntual del estado (sin historial), claves camelCase


@dataclass
class GenerationResult:
    image_url: str             # URL canónica en storage propio
    structured_prompt: Any     # eco del proveedor, parseado si es JSON
    seed: Optional[int]
    original_url: str          # URL del proveedor (no durable)


@dataclass
class SceneResult:
    furniture_list: str        # texto de la etapa 1, verbatim
    structured_prompt: Any
    seed: Optional[int]
    image_url: str


@dataclass
class VariantResult:
    id: int                    # 1..N, fijo por rama
    image_url: str
    original_url: str


@dataclass
class RenderSession:
    session_id: str
    original_url: str          # screenshot guardado
    results: List[VariantResult]


@dataclass
class ModelResult:
    model_url: str
    image_url: Optional[str]   # eco del proveedor
    raw_response: Any


@dataclass
class RenderPage:
    renders: List[Dict[str, str]]
    next_page_token: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.next_page_token is not None


# atributo → clave del blob. Todos son parte del snapshot.
_SNAPSHOT_KEYS = {
    "structured_prompt": "structuredPrompt",
    "seed": "seed",
    "image_url": "imageUrl",
    "furniture_list": "furnitureList",
    "glb_list": "glbList",
    "bounding_boxes": "studioBoundingBoxes",
    "glb_assignments": "studioGlbAssignments",
    "ideation_bounding_boxes": "ideationBoundingBoxes",
}

_ENVELOPE_KEYS = {"version", "timestamp", "activityHistory", "currentHistoryIndex"}

STATE_VERSION = "2.0"


@dataclass
class ProjectState:
    """
    Estado completo de un proyecto.

    `activity_history` es una lista de snapshots y `current_history_index`
    un cursor sobre ella (-1 = historial vacío). Editar después de un undo
    trunca todo lo que está después del cursor antes de agregar.

    Las claves desconocidas que escriba el cliente se conservan en `extras`
    y se vuelven a emitir en `to_dict`.
    """

    structured_prompt: Any = None
    seed: Optional[int] = None
    image_url: Optional[str] = None
    furniture_list: Optional[str] = None
    glb_list: List[Any] = field(default_factory=list)
    bounding_boxes: Any = None
    glb_assignments: Dict[str, Any] = field(default_factory=dict)
    ideation_bounding_boxes: Any = None
    activity_history: List[Snapshot] = field(default_factory=list)
    current_history_index: int = -1
    version: str = STATE_VERSION
    timestamp: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)

    # -------------------------
    # Serialización
    # -------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectState":
        if not isinstance(data, dict):
            raise ValidationError("Project state must be a JSON object")

        index = data.get("currentHistoryIndex")
        history = data.get("activityHistory")
        if history is not None and not isinstance(history, list):
            raise ValidationError("activityHistory must be a list")

        try:
            cursor = -1 if index is None else int(index)
        except (TypeError, ValueError) as e:
            raise ValidationError("currentHistoryIndex must be an integer") from e

        state = cls(
            structured_prompt=data.get("structuredPrompt"),
            seed=data.get("seed"),
            image_url=data.get("imageUrl"),
            furniture_list=data.get("furnitureList"),
            glb_list=list(data.get("glbList") or []),
            bounding_boxes=data.get("studioBoundingBoxes"),
            glb_assignments=dict(data.get("studioGlbAssignments") or {}),
            ideation_bounding_boxes=data.get("ideationBoundingBoxes"),
            activity_history=list(history or []),
            current_history_index=cursor,
            version=data.get("version") or STATE_VERSION,
            timestamp=data.get("timestamp"),
        )
        known = set(_SNAPSHOT_KEYS.values()) | _ENVELOPE_KEYS
        state.extras = {k: v for k, v in data.items() if k not in known}
        return state

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extras)
        data["version"] = self.version
        data["timestamp"] = self.timestamp
        data.update(self.snapshot())
        data["activityHistory"] = copy.deepcopy(self.activity_history)
        data["currentHistoryIndex"] = self.current_history_index
        return data

    def copy(self) -> "ProjectState":
        return copy.deepcopy(self)

    # -------------------------
    # Historial (undo/redo lineal)
    # -------------------------

    def snapshot(self) -> Snapshot:
        """Copia profunda de los campos del estado, sin historial."""
        return {key: copy.deepcopy(getattr(self, attr)) for attr, key in _SNAPSHOT_KEYS.items()}

    def apply(self, snapshot: Snapshot) -> None:
        for attr, key in _SNAPSHOT_KEYS.items():
            if key in snapshot:
                setattr(self, attr, copy.deepcopy(snapshot[key]))
        if self.glb_list is None:
            self.glb_list = []
        if self.glb_assignments is None:
            self.glb_assignments = {}

    def cursor_is_valid(self) -> bool:
        return -1 <= self.current_history_index <= len(self.activity_history) - 1

    def record(self) -> Snapshot:
        """
        Agrega el estado actual al historial.

        Todo lo que esté después del cursor (rama "redo") se descarta.
        """
        del self.activity_history[self.current_history_index + 1:]
        snap = self.snapshot()
        self.activity_history.append(snap)
        self.current_history_index = len(self.activity_history) - 1
        return snap

    def can_undo(self) -> bool:
        return self.current_history_index > 0

    def can_redo(self) -> bool:
        return self.current_history_index < len(self.activity_history) - 1

    def undo(self) -> bool:
        if not self.can_undo():
            return False
        self.current_history_index -= 1
        self.apply(self.activity_history[self.current_history_index])
        return True

    def redo(self) -> bool:
        if not self.can_redo():
            return False
        self.current_history_index += 1
        self.apply(self.activity_history[self.current_history_index])
        return True
