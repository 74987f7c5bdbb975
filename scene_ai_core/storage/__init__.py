"""Colaborador de blob storage: contrato + implementaciones (Supabase, filesystem)."""

from .base import BlobInfo, BlobNotFoundError, BlobStorage
from .local import LocalBlobStorage

__all__ = ["BlobInfo", "BlobNotFoundError", "BlobStorage", "LocalBlobStorage"]
