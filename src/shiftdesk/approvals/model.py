from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

LEAVE_ITEM = "leave"
SHIFT_ITEM = "shift"


@dataclass(frozen=True)
class ApprovalItem:
    """One row of a staff member's approvals feed (a leave request or a shift)."""

    kind: str
    item_id: int
    status: str
    title: str
    description: str
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[dict] = None
    manager_comments: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.item_id,
            "type": self.kind,
            "status": self.status,
            "title": self.title,
            "description": self.description,
            "submitted_at": self.submitted_at.isoformat(),
            "reviewed_at": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewed_by": self.reviewed_by,
            "manager_comments": self.manager_comments or "",
            "details": self.details,
        }
