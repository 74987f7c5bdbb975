"""
Búsqueda de la URL del mesh dentro de una respuesta arbitraria de reconstrucción 3D.

Los proveedores 3D devuelven JSON con formas que cambian entre versiones;
la URL del modelo puede estar en cualquier nivel. Esta búsqueda es un BFS
con cola explícita (sin recursión, así que payloads muy anidados no agotan
el stack) y un set de visitados por identidad (`id()`), así que termina
aunque la estructura tenga ciclos.

Ejemplo
-------
>>> find_first_url_with_extensions({"a": {"b": ["x.png", "mesh.glb"]}}, [".glb"])
'mesh.glb'
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Any


class NodeKind(str, Enum):
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


def classify(node: Any) -> NodeKind:
    """Clasifica un nodo del árbol JSON. Strings y bytes son escalares."""
    if isinstance(node, Mapping):
        return NodeKind.MAPPING
    if isinstance(node, Sequence) and not isinstance(node, (str, bytes, bytearray)):
        return NodeKind.SEQUENCE
    return NodeKind.SCALAR


def find_first_url_with_extensions(value: Any, extensions: Iterable[str]) -> str | None:
    """
    Devuelve el primer string (en orden BFS) cuyo lowercase termina en
    alguna de `extensions`, o None si no hay ninguno.

    Args:
        value: Respuesta decodificada del proveedor (dict/list/escalares).
        extensions: Extensiones aceptadas, p. ej. [".glb", ".gltf", ".obj"].
    """
    suffixes = tuple(ext.lower() for ext in extensions)
    if not suffixes:
        return None

    queue: deque[Any] = deque([value])
    seen: set[int] = set()

    while queue:
        current = queue.popleft()
        kind = classify(current)

        if kind is NodeKind.SCALAR:
            if isinstance(current, str) and current.lower().endswith(suffixes):
                return current
            continue

        if id(current) in seen:
            continue
        seen.add(id(current))

        if kind is NodeKind.MAPPING:
            queue.extend(current.values())
        else:
            queue.extend(current)

    return None
