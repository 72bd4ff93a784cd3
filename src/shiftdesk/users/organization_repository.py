from __future__ import annotations

from typing import Optional, Protocol

from .organization_model import Organization


class OrganizationRepository(Protocol):
    def get_by_id(self, organization_id: int) -> Optional[Organization]:
        raise NotImplementedError
