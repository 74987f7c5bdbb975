"""
Contrato del colaborador de blob storage.

El core solo depende de esta interfaz. Implementaciones:
- `SupabaseBlobStorage`: Supabase Storage (producción).
- `LocalBlobStorage`: filesystem (desarrollo local).

Todas las escrituras dejan el objeto públicamente legible y devuelven una
URL canónica y estable derivada del nombre del bucket y del path.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from ..errors import NotFoundError


class BlobNotFoundError(NotFoundError):
    """El objeto pedido no existe en el storage."""

    def __init__(self, path: str):
        super().__init__(f"Blob not found: {path}")
        self.path = path


@dataclass
class BlobInfo:
    name: str   # nombre del archivo (último segmento del path)
    path: str   # path completo dentro del bucket
    url: str    # URL pública canónica


class BlobStorage(Protocol):
    """
    Interfaz mínima de blob storage.

    Métodos
    -------
    put(data, path, content_type) -> URL pública
    get(path) -> bytes            (BlobNotFoundError si no existe)
    delete(path) -> None          (BlobNotFoundError si no existe)
    list(prefix) -> [BlobInfo]    (vacío si el prefijo no existe)
    public_url(path) -> URL canónica
    owns(url) -> True si la URL apunta a este storage
    """

    bucket: str

    def put(self, data: bytes, path: str, content_type: str) -> str:
        ...

    def get(self, path: str) -> bytes:
        ...

    def delete(self, path: str) -> None:
        ...

    def list(self, prefix: str) -> list[BlobInfo]:
        ...

    def public_url(self, path: str) -> str:
        ...

    def owns(self, url: str) -> bool:
        ...
