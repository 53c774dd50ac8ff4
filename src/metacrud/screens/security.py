"""
Screen security predicates.

The stored expression is one of ``PermitAll``, ``DenyAll``,
``RolesAllowed(ROLE_A, ROLE_B)`` or empty (anonymous access).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

_ROLES_ALLOWED = re.compile(r"^RolesAllowed\s*\((?P<roles>.*)\)$", re.DOTALL)


class AccessKind(StrEnum):
    ANONYMOUS = "anonymous"
    PERMIT_ALL = "permit_all"
    DENY_ALL = "deny_all"
    ROLES = "roles"


class SecurityPredicate(BaseModel):
    kind: AccessKind
    roles: frozenset[str] = frozenset()

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, expression: str | None) -> SecurityPredicate:
        """
        Parse a stored security expression.

        Raises:
            ValueError: If the expression is not recognized
        """
        text = (expression or "").strip()
        if not text:
            return cls(kind=AccessKind.ANONYMOUS)
        if text == "PermitAll":
            return cls(kind=AccessKind.PERMIT_ALL)
        if text == "DenyAll":
            return cls(kind=AccessKind.DENY_ALL)
        match = _ROLES_ALLOWED.match(text)
        if match:
            roles = frozenset(
                part.strip().strip("\"'")
                for part in match.group("roles").split(",")
                if part.strip().strip("\"'")
            )
            if not roles:
                raise ValueError("RolesAllowed needs at least one role")
            return cls(kind=AccessKind.ROLES, roles=roles)
        raise ValueError(f"Unrecognized security expression: {text!r}")

    def permits(self, roles: Iterable[str], authenticated: bool = True) -> bool:
        if self.kind == AccessKind.ANONYMOUS:
            return True
        if self.kind == AccessKind.DENY_ALL:
            return False
        if not authenticated:
            return False
        if self.kind == AccessKind.PERMIT_ALL:
            return True
        return bool(self.roles.intersection(roles))

    def __str__(self) -> str:
        if self.kind == AccessKind.PERMIT_ALL:
            return "PermitAll"
        if self.kind == AccessKind.DENY_ALL:
            return "DenyAll"
        if self.kind == AccessKind.ROLES:
            return f"RolesAllowed({', '.join(sorted(self.roles))})"
        return ""
