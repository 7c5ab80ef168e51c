from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Principal:
    """Caller identity taken from a validated bearer token.

    user_id: the token subject; for signers this is the User id.
    roles:   super_admin | admin | user
    name:    display name carried in the token, used for audit entries
    """

    user_id: str
    roles: frozenset[str]
    name: str = ""

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)

    def user_uuid(self) -> UUID | None:
        try:
            return UUID(self.user_id)
        except ValueError:
            return None
