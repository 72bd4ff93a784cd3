from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Organization:
    organization_id: int
    name: str
    timezone: Optional[str] = None
