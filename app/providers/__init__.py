"""
Provider ratebook schemas and registry.
"""

from __future__ import annotations

from app.domain.errors import UnknownProviderError
from app.providers.ald import ALDSchema
from app.providers.base import ProviderSchema
from app.providers.lex import LexSchema
from app.providers.ogilvie import OgilvieSchema

_SCHEMAS: dict[str, ProviderSchema] = {
    schema.code: schema for schema in (LexSchema(), OgilvieSchema(), ALDSchema())
}


def available_providers() -> list[str]:
    return sorted(_SCHEMAS)


def get_provider_schema(provider_code: str) -> ProviderSchema:
    schema = _SCHEMAS.get((provider_code or "").strip().lower())
    if schema is None:
        raise UnknownProviderError(
            f"Unknown ratebook provider '{provider_code}'. "
            f"Allowed providers: {', '.join(available_providers())}."
        )
    return schema


__all__ = [
    "ALDSchema",
    "LexSchema",
    "OgilvieSchema",
    "ProviderSchema",
    "available_providers",
    "get_provider_schema",
]
