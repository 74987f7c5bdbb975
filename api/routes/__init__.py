"""Rutas de la API."""

from . import analysis, generation, metadata, projects, quota

__all__ = ["analysis", "generation", "metadata", "projects", "quota"]
