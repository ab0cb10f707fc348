"""
Database Models for SiteSmith

- SessionRecord: persisted state of one generation session
- ProjectSnapshotRecord: user-saved snapshots of a session's site and chat
"""

from __future__ import annotations

from ..extensions import db
from .session import ProjectSnapshotRecord, SessionRecord

__all__ = ['db', 'SessionRecord', 'ProjectSnapshotRecord']
