from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .organization_model import Organization
from .organization_repository import OrganizationRepository


class MySQLOrganizationRepository(OrganizationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, organization_id: int) -> Optional[Organization]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT organization_id, name, timezone FROM organizations WHERE organization_id=%s",
                (int(organization_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Organization(
                organization_id=int(r["organization_id"]),
                name=r["name"],
                timezone=r.get("timezone"),
            )
