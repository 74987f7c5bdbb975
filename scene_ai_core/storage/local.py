"""
Blob storage sobre el filesystem local.

Pensado para desarrollo: los objetos se guardan en
`{root}/{bucket}/{path}` y la API los sirve como archivos estáticos
bajo `public_base_url` (ver `api.main`).
"""

from __future__ import annotations

import logging
from pathlib import Path

from .base import BlobInfo, BlobNotFoundError

logger = logging.getLogger(__name__)


class LocalBlobStorage:
    def __init__(self, root: str | Path, bucket: str, public_base_url: str):
        self.root = Path(root)
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        (self.root / bucket).mkdir(parents=True, exist_ok=True)

    def _file(self, path: str) -> Path:
        target = (self.root / self.bucket / path).resolve()
        base = (self.root / self.bucket).resolve()
        if base not in target.parents:
            raise ValueError(f"Path fuera del bucket: {path}")
        return target

    def put(self, data: bytes, path: str, content_type: str) -> str:
        target = self._file(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug(f"Guardado {len(data)} bytes en {target} ({content_type})")
        return self.public_url(path)

    def get(self, path: str) -> bytes:
        target = self._file(path)
        if not target.is_file():
            raise BlobNotFoundError(path)
        return target.read_bytes()

    def delete(self, path: str) -> None:
        target = self._file(path)
        if not target.is_file():
            raise BlobNotFoundError(path)
        target.unlink()

    def list(self, prefix: str) -> list[BlobInfo]:
        folder = self._file(prefix.rstrip("/"))
        if not folder.is_dir():
            return []
        items = []
        for entry in sorted(folder.iterdir()):
            if entry.is_file():
                path = f"{prefix.rstrip('/')}/{entry.name}"
                items.append(BlobInfo(name=entry.name, path=path, url=self.public_url(path)))
        return items

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{path}"

    def owns(self, url: str) -> bool:
        return url.startswith(f"{self.public_base_url}/{self.bucket}/")
