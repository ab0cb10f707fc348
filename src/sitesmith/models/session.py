"""
Session persistence models.
"""
import json
from typing import Any, Dict

from ..extensions import db
from ..utils.time import utc_now


class SessionRecord(db.Model):
    """Serialized SessionState keyed by session id."""
    __tablename__ = 'sessions'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), unique=True, nullable=False, index=True)

    state = db.Column(db.Text, nullable=False)  # JSON: SessionState.to_dict()

    created_at = db.Column(db.DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    snapshots = db.relationship(
        'ProjectSnapshotRecord',
        backref='session',
        lazy='select',
        cascade='all, delete-orphan',
        order_by='ProjectSnapshotRecord.created_at',
    )

    def get_state(self) -> Dict[str, Any]:
        """Get state as dictionary."""
        if self.state:
            try:
                return json.loads(self.state)
            except json.JSONDecodeError:
                return {}
        return {}

    def set_state(self, state_dict: Dict[str, Any]) -> None:
        """Set state from dictionary."""
        self.state = json.dumps(state_dict)

    def __repr__(self) -> str:
        return f'<SessionRecord {self.session_id}>'


class ProjectSnapshotRecord(db.Model):
    """One saved project snapshot."""
    __tablename__ = 'project_snapshots'

    id = db.Column(db.Integer, primary_key=True)
    snapshot_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    session_pk = db.Column(db.Integer, db.ForeignKey('sessions.id'), nullable=False, index=True)

    name = db.Column(db.String(200), nullable=False)
    payload = db.Column(db.Text, nullable=False)  # JSON: ProjectSnapshot.to_dict()
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now, nullable=False, index=True)

    def get_payload(self) -> Dict[str, Any]:
        try:
            return json.loads(self.payload) if self.payload else {}
        except json.JSONDecodeError:
            return {}

    def __repr__(self) -> str:
        return f'<ProjectSnapshotRecord {self.snapshot_id} {self.name!r}>'
