from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Member


class MemberRepository(Protocol):
    """Repository interface for members.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_by_id(self, user_id: int) -> Optional[Member]:
        raise NotImplementedError

    def get_by_email(self, *, organization_id: int, email: str) -> Optional[Member]:
        raise NotImplementedError

    def list_staff_for_manager(self, manager_id: int) -> Sequence[Member]:
        raise NotImplementedError
