"""SQLModel backed key-value store for learner snapshots."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Field, Session, SQLModel, create_engine, select

from .config import DATABASE_URL
from .exceptions import SnapshotError
from .models import utcnow


class SnapshotRecord(SQLModel, table=True):
    key: str = Field(primary_key=True)
    kind: str
    schema_version: int
    payload: str
    updated_at: datetime = Field(default_factory=utcnow)


def make_engine(url: str = DATABASE_URL, *, echo: bool = False) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=echo, connect_args=connect_args)


class SnapshotStore:
    """Save and load versioned snapshots by key."""

    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine if engine is not None else make_engine()

    @classmethod
    def from_url(cls, url: str) -> "SnapshotStore":
        store = cls(make_engine(url))
        store.create_tables()
        return store

    def create_tables(self) -> None:
        SQLModel.metadata.create_all(self.engine, tables=[SnapshotRecord.__table__])

    def save(self, key: str, snapshot: Mapping[str, Any]) -> SnapshotRecord:
        payload = json.dumps(snapshot, sort_keys=True)
        with Session(self.engine, expire_on_commit=False) as session:
            row = session.get(SnapshotRecord, key)
            if row is None:
                row = SnapshotRecord(key=key, kind="", schema_version=0, payload="")
            row.kind = str(snapshot.get("kind", ""))
            row.schema_version = int(snapshot.get("schema_version", 0))
            row.payload = payload
            row.updated_at = utcnow()
            session.add(row)
            session.commit()
            return row

    def load(self, key: str) -> Optional[dict]:
        """Return the decoded snapshot for ``key`` or ``None`` on first run."""

        with Session(self.engine) as session:
            row = session.get(SnapshotRecord, key)
            if row is None:
                return None
            try:
                data = json.loads(row.payload)
            except json.JSONDecodeError as exc:
                raise SnapshotError(f"Snapshot '{key}' is not valid JSON.") from exc
        if not isinstance(data, dict):
            raise SnapshotError(f"Snapshot '{key}' is not a JSON object.")
        return data

    def delete(self, key: str) -> bool:
        with Session(self.engine) as session:
            row = session.get(SnapshotRecord, key)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def keys(self) -> tuple[str, ...]:
        with Session(self.engine) as session:
            return tuple(session.exec(select(SnapshotRecord.key).order_by(SnapshotRecord.key)).all())


__all__ = ["SnapshotRecord", "SnapshotStore", "make_engine"]
