"""Ephemeral record of the principal bound to one session."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class SessionContext:
    """Authenticated principal for one session, or anonymous when empty."""

    principal_id: UUID | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.principal_id is not None

    @classmethod
    def anonymous(cls) -> SessionContext:
        return cls(principal_id=None)

    @classmethod
    def for_principal(cls, principal_id: UUID) -> SessionContext:
        return cls(principal_id=principal_id)
