"""Session State
================

In-memory shape of one generation session and its point-in-time snapshots.
The turn controller owns a ``SessionState`` exclusively; stores only load and
save it.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sitesmith.constants import (
    DEFAULT_PROJECT_NAME,
    INITIAL_CREDITS,
    SessionPhase,
    TurnRole,
)
from sitesmith.services.generation.config import SeoArtifacts
from sitesmith.utils.time import to_iso, utc_now


@dataclass(frozen=True)
class Turn:
    """One chat message."""
    role: TurnRole
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {'role': self.role.value, 'content': self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Turn":
        return cls(role=TurnRole(data['role']), content=data.get('content', ''))

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(TurnRole.USER, content)

    @classmethod
    def assistant(cls, content: str) -> "Turn":
        return cls(TurnRole.ASSISTANT, content)


@dataclass(frozen=True)
class ProjectSnapshot:
    """Saved copy of a session's site and conversation."""
    id: str
    name: str
    site_artifact: str
    turns: Tuple[Turn, ...]
    created_at: datetime

    @classmethod
    def capture(cls, name: str, site_artifact: str, turns: List[Turn]) -> "ProjectSnapshot":
        return cls(
            id=uuid.uuid4().hex,
            name=name,
            site_artifact=site_artifact,
            turns=tuple(turns),
            created_at=utc_now(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'site_artifact': self.site_artifact,
            'turns': [t.to_dict() for t in self.turns],
            'created_at': to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectSnapshot":
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            site_artifact=data.get('site_artifact', ''),
            turns=tuple(Turn.from_dict(t) for t in data.get('turns', [])),
            created_at=datetime.fromisoformat(data['created_at']),
        )


@dataclass
class SessionState:
    """Mutable state of a single session.

    Attributes:
        phase: Current controller phase
        credits: Remaining credit balance (never below zero)
        publish_count: Successful publishes so far
        site_markup: Current site artifact, '' before the first success
        turns: Conversation history, append-only
        seo: Latest derived SEO pair, None until one has been applied
        deployed_url: Live URL of the last publish, cleared when content changes
        project_name: Name used for publish targets and export archives
    """
    phase: SessionPhase = SessionPhase.IDLE
    credits: int = INITIAL_CREDITS
    publish_count: int = 0
    site_markup: str = ""
    turns: List[Turn] = field(default_factory=list)
    seo: Optional[SeoArtifacts] = None
    deployed_url: Optional[str] = None
    project_name: str = DEFAULT_PROJECT_NAME

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase': self.phase.value,
            'credits': self.credits,
            'publish_count': self.publish_count,
            'site_markup': self.site_markup,
            'turns': [t.to_dict() for t in self.turns],
            'seo': self.seo.to_dict() if self.seo else None,
            'deployed_url': self.deployed_url,
            'project_name': self.project_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionState":
        phase = SessionPhase(data.get('phase', SessionPhase.IDLE.value))
        # A persisted in-flight phase cannot be resumed after a restart
        if phase in (SessionPhase.BUILDING, SessionPhase.GENERATING, SessionPhase.PUBLISHING):
            phase = SessionPhase.AWAITING_EDIT
        return cls(
            phase=phase,
            credits=int(data.get('credits', INITIAL_CREDITS)),
            publish_count=int(data.get('publish_count', 0)),
            site_markup=data.get('site_markup', ''),
            turns=[Turn.from_dict(t) for t in data.get('turns', [])],
            seo=SeoArtifacts.from_dict(data.get('seo')),
            deployed_url=data.get('deployed_url'),
            project_name=data.get('project_name') or DEFAULT_PROJECT_NAME,
        )
