from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Member:
    """Domain entity: a manager or staff member of an organization.

    Note: Plain data object (no DB access). Accounts are owned by the identity
    service; the core only reads them.
    """

    user_id: int
    name: str
    email: str
    role: Role
    organization_id: int
    manager_id: Optional[int] = None

    @property
    def is_staff(self) -> bool:
        return self.role == Role.STAFF
