"""
Lookup of provider-published derivative names to CAP codes.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.provider_cap_mapping import ProviderCapMapping


class ProviderCapMappingRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def lookup(self, *, provider_code: str, derivative_name: str) -> str | None:
        """
        Exact-name lookup; returns the CAP code or None.
        """

        if not derivative_name:
            return None
        stmt = (
            select(ProviderCapMapping.cap_code)
            .where(
                ProviderCapMapping.provider_code == provider_code,
                ProviderCapMapping.derivative_name == derivative_name,
                ProviderCapMapping.cap_code.is_not(None),
            )
            .limit(1)
        )
        return self._session.scalars(stmt).first()
