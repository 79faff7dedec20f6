from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class EvidenceEntry:
    """Domain entity: one photo reference attached to a punch action."""

    action: str
    url: str
    taken_at: datetime
    evidence_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {"action": self.action, "url": self.url, "takenAt": self.taken_at.isoformat()}
