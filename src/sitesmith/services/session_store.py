"""Session Store
================

Persistence collaborator for the turn controller. The controller calls
``load`` once when it is created and ``save`` after every state change;
snapshots are stored alongside.

Two implementations:
- InMemorySessionStore: process-local, used by tests and by default
- SqlSessionStore: Flask-SQLAlchemy backed, pushes its own app context so it
  can be used from the background event loop thread
"""
from __future__ import annotations

import copy
import json
import logging
import threading
from typing import Dict, List, Optional, Protocol

from flask import Flask

from sitesmith.extensions import db
from sitesmith.services.service_base import NotFoundError
from sitesmith.services.session_state import ProjectSnapshot, SessionState

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Interface the turn controller persists through."""

    def load(self, session_id: str) -> Optional[SessionState]: ...

    def save(self, session_id: str, state: SessionState) -> None: ...

    def add_snapshot(self, session_id: str, snapshot: ProjectSnapshot) -> None: ...

    def list_snapshots(self, session_id: str) -> List[ProjectSnapshot]: ...

    def get_snapshot(self, session_id: str, snapshot_id: str) -> ProjectSnapshot: ...

    def delete_snapshot(self, session_id: str, snapshot_id: str) -> None: ...


class InMemorySessionStore:
    """Dictionary-backed store. Saved states are deep copies."""

    def __init__(self):
        self._states: Dict[str, SessionState] = {}
        self._snapshots: Dict[str, Dict[str, ProjectSnapshot]] = {}
        self._lock = threading.Lock()

    def load(self, session_id: str) -> Optional[SessionState]:
        with self._lock:
            state = self._states.get(session_id)
            return copy.deepcopy(state) if state is not None else None

    def save(self, session_id: str, state: SessionState) -> None:
        with self._lock:
            self._states[session_id] = copy.deepcopy(state)

    def add_snapshot(self, session_id: str, snapshot: ProjectSnapshot) -> None:
        with self._lock:
            self._snapshots.setdefault(session_id, {})[snapshot.id] = snapshot

    def list_snapshots(self, session_id: str) -> List[ProjectSnapshot]:
        with self._lock:
            return sorted(self._snapshots.get(session_id, {}).values(), key=lambda s: s.created_at)

    def get_snapshot(self, session_id: str, snapshot_id: str) -> ProjectSnapshot:
        with self._lock:
            snapshot = self._snapshots.get(session_id, {}).get(snapshot_id)
        if snapshot is None:
            raise NotFoundError(f"Snapshot {snapshot_id} not found")
        return snapshot

    def delete_snapshot(self, session_id: str, snapshot_id: str) -> None:
        with self._lock:
            removed = self._snapshots.get(session_id, {}).pop(snapshot_id, None)
        if removed is None:
            raise NotFoundError(f"Snapshot {snapshot_id} not found")


class SqlSessionStore:
    """Database-backed store using the SessionRecord / ProjectSnapshotRecord models."""

    def __init__(self, app: Flask):
        self.app = app

    def _record(self, session_id: str, create: bool = False):
        from sitesmith.models import SessionRecord

        record = SessionRecord.query.filter_by(session_id=session_id).first()
        if record is None and create:
            record = SessionRecord(session_id=session_id)
            record.set_state(SessionState().to_dict())
            db.session.add(record)
        return record

    def load(self, session_id: str) -> Optional[SessionState]:
        with self.app.app_context():
            record = self._record(session_id)
            if record is None:
                return None
            return SessionState.from_dict(record.get_state())

    def save(self, session_id: str, state: SessionState) -> None:
        with self.app.app_context():
            try:
                record = self._record(session_id, create=True)
                record.set_state(state.to_dict())
                db.session.commit()
            except Exception:
                db.session.rollback()
                logger.exception(f"Failed to persist session {session_id}")
                raise

    def add_snapshot(self, session_id: str, snapshot: ProjectSnapshot) -> None:
        from sitesmith.models import ProjectSnapshotRecord

        with self.app.app_context():
            try:
                record = self._record(session_id, create=True)
                db.session.flush()
                db.session.add(ProjectSnapshotRecord(
                    snapshot_id=snapshot.id,
                    session_pk=record.id,
                    name=snapshot.name,
                    payload=json.dumps(snapshot.to_dict()),
                    created_at=snapshot.created_at,
                ))
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

    def list_snapshots(self, session_id: str) -> List[ProjectSnapshot]:
        with self.app.app_context():
            record = self._record(session_id)
            if record is None:
                return []
            return [ProjectSnapshot.from_dict(s.get_payload()) for s in record.snapshots]

    def _snapshot_record(self, session_id: str, snapshot_id: str):
        from sitesmith.models import ProjectSnapshotRecord, SessionRecord

        record = (
            ProjectSnapshotRecord.query
            .join(SessionRecord)
            .filter(SessionRecord.session_id == session_id)
            .filter(ProjectSnapshotRecord.snapshot_id == snapshot_id)
            .first()
        )
        if record is None:
            raise NotFoundError(f"Snapshot {snapshot_id} not found")
        return record

    def get_snapshot(self, session_id: str, snapshot_id: str) -> ProjectSnapshot:
        with self.app.app_context():
            return ProjectSnapshot.from_dict(self._snapshot_record(session_id, snapshot_id).get_payload())

    def delete_snapshot(self, session_id: str, snapshot_id: str) -> None:
        with self.app.app_context():
            record = self._snapshot_record(session_id, snapshot_id)
            db.session.delete(record)
            db.session.commit()


__all__ = ['SessionStore', 'InMemorySessionStore', 'SqlSessionStore']
