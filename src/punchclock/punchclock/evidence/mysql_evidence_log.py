from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import EvidenceEntry
from .repository import EvidenceLog


class MySQLEvidenceLog(EvidenceLog):
    """Evidence rows live in their own table; inserts never touch attendance_records."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, record_id: int, entry: EvidenceEntry) -> EvidenceEntry:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_evidence(record_id, action, url, taken_at)
                VALUES(%s,%s,%s,%s)
                """,
                (int(record_id), entry.action, entry.url, entry.taken_at),
            )
            return replace(entry, evidence_id=int(cur.lastrowid))

    def list_for_record(self, record_id: int) -> Sequence[EvidenceEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT evidence_id, action, url, taken_at
                FROM attendance_evidence
                WHERE record_id=%s
                ORDER BY evidence_id
                """,
                (int(record_id),),
            )
            return [
                EvidenceEntry(
                    evidence_id=int(r["evidence_id"]),
                    action=r["action"],
                    url=r["url"],
                    taken_at=r["taken_at"],
                )
                for r in fetchall(cur)
            ]
