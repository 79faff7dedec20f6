from __future__ import annotations

from typing import Protocol, Sequence

from .model import EvidenceEntry


class EvidenceLog(Protocol):
    """Append-only evidence storage, kept apart from the record document.

    Entries come back in the order they were appended.
    """

    def append(self, record_id: int, entry: EvidenceEntry) -> EvidenceEntry:
        raise NotImplementedError

    def list_for_record(self, record_id: int) -> Sequence[EvidenceEntry]:
        raise NotImplementedError
