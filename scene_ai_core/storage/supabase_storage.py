"""
Blob storage sobre Supabase Storage.

Requisitos
----------
- El bucket (`STORAGE_BUCKET`) debe existir y estar configurado como público:
  en Supabase la visibilidad se define por bucket, no por objeto.
- Se usa la service role key, así que este cliente nunca debe exponerse
  al frontend.

La URL devuelta es la URL pública canónica:
    {SUPABASE_URL}/storage/v1/object/public/{bucket}/{path}
"""

from __future__ import annotations

import logging

from supabase import Client, StorageException, create_client

from .base import BlobInfo, BlobNotFoundError

logger = logging.getLogger(__name__)

# Supabase expresa cache-control como max-age en segundos
CACHE_MAX_AGE_S = "31536000"

# Máximo de entradas por request de listado
LIST_PAGE_SIZE = 1000


def _is_not_found(exc: Exception) -> bool:
    status = getattr(exc, "status", None) or getattr(exc, "code", None)
    if str(status) in {"404", "NoSuchKey", "not_found"}:
        return True
    return "not found" in str(exc).lower()


class SupabaseBlobStorage:
    def __init__(self, client: Client, bucket: str, supabase_url: str):
        self.client = client
        self.bucket = bucket
        self.supabase_url = supabase_url.rstrip("/")

    @classmethod
    def from_credentials(cls, supabase_url: str, service_role_key: str, bucket: str) -> "SupabaseBlobStorage":
        if not supabase_url or not service_role_key:
            raise RuntimeError("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY no están configuradas en el .env")
        return cls(create_client(supabase_url, service_role_key), bucket, supabase_url)

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def put(self, data: bytes, path: str, content_type: str) -> str:
        self._bucket().upload(
            path=path,
            file=data,
            file_options={
                "content-type": content_type,
                "cache-control": CACHE_MAX_AGE_S,
                "upsert": "true",
            },
        )
        logger.debug(f"Subidos {len(data)} bytes a {self.bucket}/{path}")
        return self.public_url(path)

    def get(self, path: str) -> bytes:
        try:
            return self._bucket().download(path)
        except StorageException as e:
            if _is_not_found(e):
                raise BlobNotFoundError(path) from e
            raise

    def delete(self, path: str) -> None:
        removed = self._bucket().remove([path])
        # Supabase no falla al borrar algo inexistente: devuelve una lista vacía
        if not removed:
            raise BlobNotFoundError(path)

    def list(self, prefix: str) -> list[BlobInfo]:
        folder = prefix.rstrip("/")
        items = []
        offset = 0
        while True:
            try:
                entries = self._bucket().list(
                    folder,
                    {
                        "limit": LIST_PAGE_SIZE,
                        "offset": offset,
                        "sortBy": {"column": "name", "order": "asc"},
                    },
                )
            except StorageException as e:
                if _is_not_found(e):
                    return []
                raise

            entries = entries or []
            for entry in entries:
                # Las "carpetas" vienen con id None
                if not entry.get("id"):
                    continue
                path = f"{folder}/{entry['name']}"
                items.append(BlobInfo(name=entry["name"], path=path, url=self.public_url(path)))

            if len(entries) < LIST_PAGE_SIZE:
                return items
            offset += LIST_PAGE_SIZE

    def public_url(self, path: str) -> str:
        return f"{self.supabase_url}/storage/v1/object/public/{self.bucket}/{path}"

    def owns(self, url: str) -> bool:
        return url.startswith(f"{self.supabase_url}/storage/v1/object/public/{self.bucket}/")
