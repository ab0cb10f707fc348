"""Turn Controller
==================

Sequences the turns of one generation session and owns all of its mutable
state: site markup, conversation, credits, publish counter, SEO files and the
deployed URL. Every other component is called with values and hands results
back; nothing else writes to the session.

Phases::

    idle --start--> building --(done)--> awaiting_edit
    awaiting_edit --message/upload--> generating --(done)--> awaiting_edit
    awaiting_edit --publish--> publishing --(done)--> awaiting_edit

Generation results are applied only if their request token is still the
latest one issued; a newer message, a snapshot restore or a reset turns any
in-flight result stale and it is dropped when it arrives. SEO derivation runs
as a background task keyed to the artifact revision it was started for.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from sitesmith.constants import (
    INITIAL_CREDITS,
    MAX_PUBLISH_LIMIT,
    UPDATE_COST,
    AssistantMessages,
    ErrorKind,
    SessionPhase,
)
from sitesmith.services.export_service import ExportBundle, build_export_archive
from sitesmith.services.generation.config import (
    GenerationConfig,
    SeoArtifacts,
    default_seo_artifacts,
)
from sitesmith.services.generation.errors import (
    ContentError,
    GenerationError,
    QuotaError,
)
from sitesmith.services.generation.prompt_composer import (
    build_recreation_request,
    build_update_request,
    compose,
)
from sitesmith.services.generation.seo_generator import SeoGenerator
from sitesmith.services.generation.site_generator import SiteGenerator
from sitesmith.services.generation.uploads import extract_upload
from sitesmith.services.publish_service import PublishRequest, VercelPublisher, safe_project_name
from sitesmith.services.service_base import ConflictError, ValidationError
from sitesmith.services.session_state import ProjectSnapshot, SessionState, Turn
from sitesmith.services.session_store import InMemorySessionStore, SessionStore
from sitesmith.utils.time import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TurnOutcome:
    """What happened to one generation attempt."""
    applied: bool
    stale: bool = False
    reply: Optional[Turn] = None
    error: Optional[GenerationError] = None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None


class TurnController:
    """Owner of one session's state and its generation/publish lifecycle."""

    def __init__(
        self,
        session_id: str,
        generator: SiteGenerator,
        seo_generator: SeoGenerator,
        publisher: VercelPublisher,
        store: Optional[SessionStore] = None,
        *,
        config: Optional[GenerationConfig] = None,
        update_cost: int = UPDATE_COST,
        publish_limit: int = MAX_PUBLISH_LIMIT,
        initial_credits: int = INITIAL_CREDITS,
    ):
        self.session_id = session_id
        self.generator = generator
        self.seo_generator = seo_generator
        self.publisher = publisher
        self.store: SessionStore = store if store is not None else InMemorySessionStore()
        self.config = config or GenerationConfig()
        self.update_cost = update_cost
        self.publish_limit = publish_limit

        loaded = self.store.load(session_id)
        self.state: SessionState = loaded if loaded is not None else SessionState(credits=initial_credits)

        self._request_token = 0
        self._active_token: Optional[int] = None
        self._artifact_revision = 0
        self._seo_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    @property
    def turns(self) -> List[Turn]:
        return list(self.state.turns)

    @property
    def can_generate(self) -> bool:
        return self.state.credits >= self.update_cost

    @property
    def can_publish(self) -> bool:
        return self.state.publish_count < self.publish_limit

    def view(self) -> Dict[str, Any]:
        """JSON-serializable snapshot of the session for clients."""
        state = self.state
        return {
            'session_id': self.session_id,
            'phase': state.phase.value,
            'credits': state.credits,
            'update_cost': self.update_cost,
            'can_generate': self.can_generate,
            'publish_count': state.publish_count,
            'publish_limit': self.publish_limit,
            'can_publish': self.can_publish,
            'site_markup': state.site_markup,
            'turns': [t.to_dict() for t in state.turns],
            'seo': state.seo.to_dict() if state.seo else None,
            'deployed_url': state.deployed_url,
            'project_name': state.project_name,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _save(self) -> None:
        self.store.save(self.session_id, self.state)

    def _append(self, turn: Turn) -> Turn:
        self.state.turns.append(turn)
        return turn

    def _check_credits(self) -> None:
        if not self.can_generate:
            raise QuotaError(
                f"Not enough credits: {self.update_cost:,} required, {self.state.credits:,} available."
            )

    def _issue_token(self) -> int:
        self._request_token += 1
        return self._request_token

    def _is_current(self, token: int) -> bool:
        return token == self._request_token

    def _invalidate_in_flight(self) -> None:
        """Make any pending generation result stale."""
        if self._active_token is not None:
            logger.info(f"Session {self.session_id}: invalidating in-flight request {self._active_token}")
        self._issue_token()
        self._active_token = None

    def _supersede_in_flight(self) -> None:
        """Close the in-flight user turn before a newer request takes over."""
        if self._active_token is None:
            return
        self._invalidate_in_flight()
        self._append(Turn.assistant(AssistantMessages.SUPERSEDED))

    def _ensure_can_edit(self) -> None:
        phase = self.state.phase
        if phase == SessionPhase.IDLE:
            raise ConflictError("Start a session with a prompt first.")
        if phase == SessionPhase.BUILDING:
            raise ConflictError("The initial site is still being built.")
        if phase == SessionPhase.PUBLISHING:
            raise ConflictError("A publish is in progress.")

    def _seo_base_url(self) -> str:
        if self.state.deployed_url:
            return self.state.deployed_url
        return f"https://{safe_project_name(self.state.project_name)}.vercel.app"

    @staticmethod
    def _failure_message(exc: Exception, default: str) -> str:
        if isinstance(exc, GenerationError) and exc.kind == ErrorKind.CAPACITY:
            return AssistantMessages.CAPACITY_FAILURE
        return default

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def _generate(
        self,
        token: int,
        request_text: str,
        history: List[Turn],
        *,
        success_message: str,
        failure_message: str,
    ) -> TurnOutcome:
        """Run one generation and apply its result if ``token`` is still current."""
        request = compose(request_text, history, brand_name=self.config.brand_name)
        try:
            markup = await self.generator.generate(request)
        except Exception as exc:
            if not self._is_current(token):
                logger.info(f"Session {self.session_id}: discarding stale failure for request {token}: {exc}")
                return TurnOutcome(applied=False, stale=True)
            reply = self._append(Turn.assistant(self._failure_message(exc, failure_message)))
            self._active_token = None
            self.state.phase = SessionPhase.AWAITING_EDIT
            self._save()
            if not isinstance(exc, GenerationError):
                logger.exception(f"Session {self.session_id}: unexpected generation failure")
                raise
            logger.warning(f"Session {self.session_id}: generation failed ({exc.kind}): {exc}")
            return TurnOutcome(applied=False, reply=reply, error=exc)

        if not self._is_current(token):
            logger.info(f"Session {self.session_id}: discarding stale result for request {token}")
            return TurnOutcome(applied=False, stale=True)

        state = self.state
        state.site_markup = markup
        state.deployed_url = None
        state.credits = max(0, state.credits - self.update_cost)
        self._artifact_revision += 1
        reply = self._append(Turn.assistant(success_message))
        self._active_token = None
        state.phase = SessionPhase.AWAITING_EDIT
        self._save()
        logger.info(
            f"Session {self.session_id}: applied request {token} "
            f"({len(markup)} chars, {state.credits:,} credits left)"
        )
        self._schedule_seo()
        return TurnOutcome(applied=True, reply=reply)

    async def _start(self, display_text: str, request_text: str) -> TurnOutcome:
        self._append(Turn.user(display_text))
        token = self._issue_token()
        self._active_token = token
        self.state.phase = SessionPhase.BUILDING
        self._save()
        return await self._generate(
            token,
            request_text,
            [],
            success_message=AssistantMessages.INITIAL_SUCCESS,
            failure_message=AssistantMessages.INITIAL_FAILURE,
        )

    async def start(self, prompt: str) -> TurnOutcome:
        """Build the first version of the site from ``prompt``."""
        if self.state.phase != SessionPhase.IDLE:
            raise ConflictError("Session has already started.")
        text = (prompt or '').strip()
        if not text:
            raise ValidationError("Prompt must not be empty.")
        self._check_credits()
        return await self._start(text, text)

    async def start_from_upload(self, filename: str, data: bytes) -> TurnOutcome:
        """Build the first version by recreating an uploaded site.

        Extraction errors are raised before anything is recorded.
        """
        if self.state.phase != SessionPhase.IDLE:
            raise ConflictError("Session has already started.")
        self._check_credits()
        upload = extract_upload(filename, data)
        return await self._start(
            f"[Uploaded File: {upload.filename}] Analyzing and recreating...",
            build_recreation_request(upload.filename, upload.content),
        )

    def _begin_request(self, display_text: str) -> tuple[int, List[Turn]]:
        """Record the user turn and issue a token; returns prior history."""
        self._supersede_in_flight()
        history = list(self.state.turns)
        self._append(Turn.user(display_text))
        token = self._issue_token()
        self._active_token = token
        self.state.phase = SessionPhase.GENERATING
        self.state.deployed_url = None
        self._save()
        return token, history

    async def send_message(self, message: str) -> TurnOutcome:
        """Regenerate the site according to a chat message."""
        self._ensure_can_edit()
        text = (message or '').strip()
        if not text:
            raise ContentError("Message must not be empty.")
        self._check_credits()

        token, history = self._begin_request(text)
        return await self._generate(
            token,
            build_update_request(text, self.state.site_markup),
            history,
            success_message=AssistantMessages.UPDATE_SUCCESS,
            failure_message=AssistantMessages.UPDATE_FAILURE,
        )

    async def upload(self, filename: str, data: bytes) -> TurnOutcome:
        """Recreate the site from an uploaded HTML/text file or zip archive."""
        self._ensure_can_edit()
        self._check_credits()

        token, history = self._begin_request(f"[Uploaded File: {filename}] Analyzing and recreating...")
        try:
            upload = extract_upload(filename, data)
        except ContentError as exc:
            reply = self._append(Turn.assistant(AssistantMessages.FILE_ERROR.format(error=exc.message)))
            self._active_token = None
            self.state.phase = SessionPhase.AWAITING_EDIT
            self._save()
            logger.info(f"Session {self.session_id}: rejected upload {filename}: {exc}")
            return TurnOutcome(applied=False, reply=reply, error=exc)

        return await self._generate(
            token,
            build_recreation_request(upload.filename, upload.content),
            history,
            success_message=AssistantMessages.RECREATION_SUCCESS.format(filename=upload.filename),
            failure_message=AssistantMessages.UPDATE_FAILURE,
        )

    # ------------------------------------------------------------------
    # Manual edits
    # ------------------------------------------------------------------

    def edit_code(self, markup: str) -> None:
        """Replace the site with hand-edited markup. Free, no regeneration."""
        if self.state.phase in (SessionPhase.IDLE, SessionPhase.BUILDING):
            raise ConflictError("There is no site to edit yet.")
        if self.state.phase == SessionPhase.GENERATING:
            raise ConflictError("Wait for the current update to finish before editing.")
        if markup is None:
            raise ValidationError("Markup is required.")
        self.state.site_markup = markup
        self.state.deployed_url = None
        self._artifact_revision += 1
        self._save()

    def rename(self, project_name: str) -> None:
        name = (project_name or '').strip()
        if not name:
            raise ValidationError("Project name must not be empty.")
        self.state.project_name = name
        self._save()

    # ------------------------------------------------------------------
    # SEO derivation
    # ------------------------------------------------------------------

    def _schedule_seo(self) -> None:
        revision = self._artifact_revision
        task = asyncio.get_running_loop().create_task(
            self._derive_seo(revision, self.state.site_markup, self._seo_base_url())
        )
        self._seo_tasks.add(task)
        task.add_done_callback(self._seo_tasks.discard)

    async def _derive_seo(self, revision: int, markup: str, base_url: str) -> None:
        try:
            seo = await self.seo_generator.derive(markup, base_url)
        except Exception:  # noqa: BLE001 - SEO failures never reach the user
            logger.exception(f"Session {self.session_id}: SEO derivation crashed")
            seo = default_seo_artifacts(base_url)
        if revision != self._artifact_revision:
            logger.debug(f"Session {self.session_id}: dropping SEO for superseded revision {revision}")
            return
        self.state.seo = seo
        self._save()

    async def wait_for_background(self) -> None:
        """Wait for outstanding SEO derivations."""
        while self._seo_tasks:
            await asyncio.gather(*list(self._seo_tasks), return_exceptions=True)

    def current_seo(self) -> SeoArtifacts:
        """Latest SEO pair, or defaults when none has been derived yet."""
        return self.state.seo or default_seo_artifacts(self._seo_base_url())

    # ------------------------------------------------------------------
    # Publish / export
    # ------------------------------------------------------------------

    async def publish(self, name: Optional[str] = None) -> str:
        """Deploy the current site and return its live URL.

        Raises:
            QuotaError: publish limit reached (nothing changes)
            ConflictError: wrong phase
            ContentError: nothing to publish
            TransportError: deployment failed (nothing changes)
        """
        if not self.can_publish:
            raise QuotaError(f"You have reached your maximum limit of {self.publish_limit} publishes.")
        if self.state.phase in (SessionPhase.BUILDING, SessionPhase.GENERATING):
            raise ConflictError("Wait for the current generation to finish before publishing.")
        if self.state.phase == SessionPhase.PUBLISHING:
            raise ConflictError("A publish is already in progress.")
        if not self.state.site_markup:
            raise ContentError("There is no generated site to publish yet.")

        revision = self._artifact_revision
        seo = self.current_seo()
        request = PublishRequest(
            markup=self.state.site_markup,
            crawler_rules=seo.crawler_rules,
            site_map=seo.site_map,
            target_name=name or self.state.project_name,
        )
        self.state.phase = SessionPhase.PUBLISHING
        try:
            url = await self.publisher.publish(request)
        finally:
            self.state.phase = SessionPhase.AWAITING_EDIT

        self.state.publish_count += 1
        if revision == self._artifact_revision:
            self.state.deployed_url = url
        else:
            logger.info(f"Session {self.session_id}: site changed during publish, not recording {url}")
        self._append(Turn.assistant(AssistantMessages.PUBLISH_SUCCESS.format(url=url)))
        self._save()
        return url

    def export(self) -> ExportBundle:
        """Zip of the current site plus its SEO files when derived."""
        return build_export_archive(self.state.site_markup, self.state.seo, self.state.project_name)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def save_snapshot(self, name: Optional[str] = None) -> ProjectSnapshot:
        if not self.state.site_markup and not self.state.turns:
            raise ContentError("Nothing to save yet.")
        label = (name or '').strip() or f"Project {utc_now():%Y-%m-%d}"
        snapshot = ProjectSnapshot.capture(label, self.state.site_markup, self.state.turns)
        self.store.add_snapshot(self.session_id, snapshot)
        logger.info(f"Session {self.session_id}: saved snapshot {snapshot.id} ({label})")
        return snapshot

    def list_snapshots(self) -> List[ProjectSnapshot]:
        return self.store.list_snapshots(self.session_id)

    def restore_snapshot(self, snapshot_id: str) -> ProjectSnapshot:
        """Load a snapshot's site and conversation, dropping in-flight results."""
        if self.state.phase == SessionPhase.PUBLISHING:
            raise ConflictError("A publish is in progress.")
        snapshot = self.store.get_snapshot(self.session_id, snapshot_id)
        self._invalidate_in_flight()
        state = self.state
        state.site_markup = snapshot.site_artifact
        state.turns = list(snapshot.turns)
        state.deployed_url = None
        state.seo = None
        state.phase = SessionPhase.AWAITING_EDIT
        self._artifact_revision += 1
        self._save()
        return snapshot

    def delete_snapshot(self, snapshot_id: str) -> None:
        self.store.delete_snapshot(self.session_id, snapshot_id)


__all__ = ['TurnController', 'TurnOutcome']
