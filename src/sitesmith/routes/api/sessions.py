"""
Session API routes
==================

Endpoints driving one generation session: initial build, chat messages,
uploads, manual edits, publishing, export and project snapshots.

Controller work runs on the registry's background loop; these handlers only
translate HTTP to controller calls. Service exceptions propagate to the
error handlers.
"""

import io
import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, current_app, request, send_file

from sitesmith.services.session_registry import SessionRegistry
from sitesmith.services.turn_controller import TurnOutcome
from sitesmith.utils.errors import BadRequestError

from ..response_utils import json_body, json_success, string_field

logger = logging.getLogger(__name__)

sessions_bp = Blueprint('sessions_api', __name__)


def _registry() -> SessionRegistry:
    return current_app.extensions['sitesmith_sessions']


def _uploaded_file() -> Tuple[str, bytes]:
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        raise BadRequestError("No file provided", code="missing_file")
    return upload.filename, upload.read()


def _outcome_dict(outcome: TurnOutcome) -> Dict[str, Any]:
    return {
        'applied': outcome.applied,
        'stale': outcome.stale,
        'reply': outcome.reply.to_dict() if outcome.reply else None,
        'error': {
            'kind': outcome.error_kind.value,
            'message': outcome.error.message,
        } if outcome.error is not None else None,
    }


def _turn_response(session_id: str, outcome: TurnOutcome, status: int = 200):
    view = _registry().call(session_id, lambda c: c.view())
    return json_success({'session': view, 'outcome': _outcome_dict(outcome)}, status=status)


@sessions_bp.route('', methods=['POST'])
def create_session():
    """Create a session; a ``prompt`` or uploaded ``file`` starts the first build."""
    registry = _registry()
    session_id = registry.create()

    if 'file' in request.files:
        filename, data = _uploaded_file()
        outcome = registry.run(session_id, lambda c: c.start_from_upload(filename, data))
        return _turn_response(session_id, outcome, status=201)

    prompt = string_field(json_body(), 'prompt')
    if prompt is not None:
        outcome = registry.run(session_id, lambda c: c.start(prompt))
        return _turn_response(session_id, outcome, status=201)

    view = registry.call(session_id, lambda c: c.view())
    return json_success({'session': view, 'outcome': None}, message="Session created", status=201)


@sessions_bp.route('/<session_id>', methods=['GET'])
def get_session(session_id):
    view = _registry().call(session_id, lambda c: c.view())
    return json_success(view)


@sessions_bp.route('/<session_id>', methods=['PATCH'])
def rename_session(session_id):
    name = string_field(json_body(), 'project_name', required=True)
    registry = _registry()
    registry.call(session_id, lambda c: c.rename(name))
    return json_success(registry.call(session_id, lambda c: c.view()), message="Project renamed")


@sessions_bp.route('/<session_id>/messages', methods=['POST'])
def send_message(session_id):
    message = string_field(json_body(), 'message', required=True)
    outcome = _registry().run(session_id, lambda c: c.send_message(message))
    return _turn_response(session_id, outcome)


@sessions_bp.route('/<session_id>/uploads', methods=['POST'])
def upload_file(session_id):
    filename, data = _uploaded_file()
    outcome = _registry().run(session_id, lambda c: c.upload(filename, data))
    return _turn_response(session_id, outcome)


@sessions_bp.route('/<session_id>/code', methods=['PUT'])
def edit_code(session_id):
    markup = string_field(json_body(), 'markup', required=True)
    registry = _registry()
    registry.call(session_id, lambda c: c.edit_code(markup))
    return json_success(registry.call(session_id, lambda c: c.view()), message="Code updated")


@sessions_bp.route('/<session_id>/publish', methods=['POST'])
def publish(session_id):
    name = string_field(json_body(), 'name')
    registry = _registry()
    url = registry.run(session_id, lambda c: c.publish(name))
    view = registry.call(session_id, lambda c: c.view())
    return json_success({'url': url, 'session': view}, message="Website published")


@sessions_bp.route('/<session_id>/export', methods=['GET'])
def export(session_id):
    bundle = _registry().call(session_id, lambda c: c.export())
    return send_file(
        io.BytesIO(bundle.data),
        mimetype='application/zip',
        as_attachment=True,
        download_name=bundle.filename,
    )


@sessions_bp.route('/<session_id>/snapshots', methods=['GET'])
def list_snapshots(session_id):
    snapshots = _registry().call(session_id, lambda c: c.list_snapshots())
    return json_success([s.to_dict() for s in snapshots], count=len(snapshots))


@sessions_bp.route('/<session_id>/snapshots', methods=['POST'])
def save_snapshot(session_id):
    name = string_field(json_body(), 'name')
    snapshot = _registry().call(session_id, lambda c: c.save_snapshot(name))
    return json_success(snapshot.to_dict(), message="Project saved", status=201)


@sessions_bp.route('/<session_id>/snapshots/<snapshot_id>/restore', methods=['POST'])
def restore_snapshot(session_id, snapshot_id):
    registry = _registry()
    registry.call(session_id, lambda c: c.restore_snapshot(snapshot_id))
    return json_success(registry.call(session_id, lambda c: c.view()), message="Project restored")


@sessions_bp.route('/<session_id>/snapshots/<snapshot_id>', methods=['DELETE'])
def delete_snapshot(session_id, snapshot_id):
    _registry().call(session_id, lambda c: c.delete_snapshot(snapshot_id))
    return json_success(None, message="Project deleted")
