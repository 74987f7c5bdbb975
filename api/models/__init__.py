"""Modelos pydantic de request/response."""
