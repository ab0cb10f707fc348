"""API route tests for the session endpoints."""

import io
import zipfile

import pytest

from sitesmith.constants import AssistantMessages
from sitesmith.services.generation import CapacityError, TransportError

pytestmark = pytest.mark.integration


def _create(client, prompt="A landing page for a bakery"):
    response = client.post('/api/sessions', json={'prompt': prompt})
    assert response.status_code == 201, response.get_json()
    return response.get_json()['data']['session']


def test_health(client):
    response = client.get('/api/health')

    assert response.status_code == 200
    body = response.get_json()
    assert body['ok'] is True
    assert body['data']['status'] == 'healthy'
    assert body['data']['session_loop'] is True


def test_create_empty_session(client):
    response = client.post('/api/sessions')

    assert response.status_code == 201
    session = response.get_json()['data']['session']
    assert session['phase'] == 'idle'
    assert session['turns'] == []
    assert session['credits'] == 1_000_000


def test_create_session_with_prompt(client, fake_generator):
    session = _create(client)

    assert session['phase'] == 'awaiting_edit'
    assert session['site_markup'] == fake_generator.default
    assert [t['role'] for t in session['turns']] == ['user', 'assistant']
    assert session['credits'] == 1_000_000 - 30_000


def test_create_session_from_upload(client, fake_generator):
    response = client.post(
        '/api/sessions',
        data={'file': (io.BytesIO(b'<h1>Old bakery</h1>'), 'old.html')},
        content_type='multipart/form-data',
    )

    assert response.status_code == 201
    assert response.get_json()['data']['outcome']['applied'] is True
    assert '<h1>Old bakery</h1>' in fake_generator.requests[0].prompt


def test_create_session_with_unsupported_upload(client):
    response = client.post(
        '/api/sessions',
        data={'file': (io.BytesIO(b'%PDF'), 'site.pdf')},
        content_type='multipart/form-data',
    )

    assert response.status_code == 400
    body = response.get_json()
    assert body['ok'] is False
    assert body['error']['type'] == 'ContentError'
    assert body['error']['details']['kind'] == 'content'


def test_get_session_round_trip(client):
    session = _create(client)

    response = client.get(f"/api/sessions/{session['session_id']}")

    assert response.status_code == 200
    assert response.get_json()['data']['site_markup'] == session['site_markup']


def test_unknown_session_is_404(client):
    response = client.get('/api/sessions/does-not-exist')

    assert response.status_code == 404
    assert response.get_json()['error']['type'] == 'NotFoundError'


def test_session_survives_registry_eviction(client, registry):
    session = _create(client)
    registry._controllers.clear()

    response = client.get(f"/api/sessions/{session['session_id']}")

    assert response.status_code == 200
    assert response.get_json()['data']['turns'] == session['turns']


def test_send_message(client, fake_generator):
    session = _create(client)
    fake_generator.results.append('<html>blue</html>')

    response = client.post(f"/api/sessions/{session['session_id']}/messages", json={'message': 'Make it blue'})

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['outcome']['applied'] is True
    assert data['outcome']['reply']['content'] == AssistantMessages.UPDATE_SUCCESS
    assert data['session']['site_markup'] == '<html>blue</html>'


def test_failed_message_is_reported_in_outcome(client, fake_generator):
    session = _create(client)
    fake_generator.results.append(CapacityError("All generation models are at capacity"))

    response = client.post(f"/api/sessions/{session['session_id']}/messages", json={'message': 'Make it blue'})

    assert response.status_code == 200
    outcome = response.get_json()['data']['outcome']
    assert outcome['applied'] is False
    assert outcome['error']['kind'] == 'capacity'
    assert outcome['reply']['content'] == AssistantMessages.CAPACITY_FAILURE


def test_message_requires_field(client):
    session = _create(client)

    response = client.post(f"/api/sessions/{session['session_id']}/messages", json={})

    assert response.status_code == 400
    assert response.get_json()['error']['details']['field'] == 'message'


def test_message_on_idle_session_conflicts(client):
    session_id = client.post('/api/sessions').get_json()['data']['session']['session_id']

    response = client.post(f"/api/sessions/{session_id}/messages", json={'message': 'Hello'})

    assert response.status_code == 409


def test_out_of_credits_is_429(app, client):
    app.config['INITIAL_CREDITS'] = 0

    response = client.post('/api/sessions', json={'prompt': 'A bakery'})

    assert response.status_code == 429
    assert response.get_json()['error']['type'] == 'QuotaError'


def test_upload_zip(client, fake_generator):
    session = _create(client)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as archive:
        archive.writestr('site/index.html', '<h1>Zipped</h1>')
    buffer.seek(0)

    response = client.post(
        f"/api/sessions/{session['session_id']}/uploads",
        data={'file': (buffer, 'site.zip')},
        content_type='multipart/form-data',
    )

    assert response.status_code == 200
    assert response.get_json()['data']['outcome']['applied'] is True
    assert '<h1>Zipped</h1>' in fake_generator.requests[-1].prompt


def test_upload_without_file(client):
    session = _create(client)

    response = client.post(f"/api/sessions/{session['session_id']}/uploads", data={}, content_type='multipart/form-data')

    assert response.status_code == 400


def test_edit_code_and_rename(client):
    session = _create(client)
    session_id = session['session_id']

    response = client.put(f"/api/sessions/{session_id}/code", json={'markup': '<html>edited</html>'})
    assert response.status_code == 200
    assert response.get_json()['data']['site_markup'] == '<html>edited</html>'
    assert response.get_json()['data']['credits'] == session['credits']

    response = client.patch(f"/api/sessions/{session_id}", json={'project_name': 'Corner Bakery'})
    assert response.status_code == 200
    assert response.get_json()['data']['project_name'] == 'Corner Bakery'


def test_publish(client, fake_publisher):
    session = _create(client)

    response = client.post(f"/api/sessions/{session['session_id']}/publish", json={'name': 'bakery'})

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['url'] == fake_publisher.url
    assert data['session']['deployed_url'] == fake_publisher.url
    assert data['session']['publish_count'] == 1
    assert fake_publisher.requests[0].target_name == 'bakery'


def test_publish_failure_is_502(app, client, failing_publisher):
    app.extensions['sitesmith_backends']['publisher'] = failing_publisher
    session = _create(client)

    response = client.post(f"/api/sessions/{session['session_id']}/publish")

    assert response.status_code == 502
    body = response.get_json()
    assert body['message'] == 'Project name is reserved'
    assert body['error']['details']['upstream_status'] == 400

    view = client.get(f"/api/sessions/{session['session_id']}").get_json()['data']
    assert view['publish_count'] == 0
    assert view['deployed_url'] is None


def test_export_zip(client, registry, fake_seo):
    session = _create(client)
    registry.drain(session['session_id'])

    response = client.get(f"/api/sessions/{session['session_id']}/export")

    assert response.status_code == 200
    assert response.mimetype == 'application/zip'
    assert 'sitesmith-project.zip' in response.headers['Content-Disposition']
    with zipfile.ZipFile(io.BytesIO(response.data)) as archive:
        assert sorted(archive.namelist()) == ['index.html', 'robots.txt', 'sitemap.xml']
        assert archive.read('robots.txt').decode() == fake_seo.artifacts.crawler_rules


def test_export_before_build_is_400(client):
    session_id = client.post('/api/sessions').get_json()['data']['session']['session_id']

    response = client.get(f"/api/sessions/{session_id}/export")

    assert response.status_code == 400


def test_snapshot_lifecycle(client, fake_generator):
    session = _create(client)
    base = f"/api/sessions/{session['session_id']}/snapshots"

    response = client.post(base, json={'name': 'Launch'})
    assert response.status_code == 201
    snapshot_id = response.get_json()['data']['id']

    fake_generator.results.append('<html>changed</html>')
    client.post(f"/api/sessions/{session['session_id']}/messages", json={'message': 'Change it'})

    listing = client.get(base).get_json()
    assert listing['meta']['count'] == 1
    assert listing['data'][0]['name'] == 'Launch'

    response = client.post(f"{base}/{snapshot_id}/restore")
    assert response.status_code == 200
    assert response.get_json()['data']['site_markup'] == session['site_markup']
    assert len(response.get_json()['data']['turns']) == 2

    assert client.delete(f"{base}/{snapshot_id}").status_code == 200
    assert client.get(base).get_json()['data'] == []
    assert client.delete(f"{base}/{snapshot_id}").status_code == 404


def test_transport_error_on_initial_build_is_reported(client, fake_generator):
    fake_generator.results.append(TransportError("connection refused"))

    response = client.post('/api/sessions', json={'prompt': 'A bakery'})

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['outcome']['error']['kind'] == 'transport'
    assert data['session']['site_markup'] == ''


def test_non_string_prompt_is_400(client):
    response = client.post('/api/sessions', json={'prompt': 5})

    assert response.status_code == 400
    error = response.get_json()['error']
    assert error['type'] == 'invalid_field'
    assert error['details']['field'] == 'prompt'


@pytest.mark.parametrize('method,suffix,field,value', [
    ('post', '/messages', 'message', {'text': 'Make it blue'}),
    ('post', '/messages', 'message', ['Make it blue']),
    ('post', '/publish', 'name', 42),
    ('patch', '', 'project_name', 7),
    ('put', '/code', 'markup', 12),
    ('post', '/snapshots', 'name', True),
])
def test_non_string_fields_are_400(client, fake_generator, fake_publisher, method, suffix, field, value):
    session = _create(client)

    response = getattr(client, method)(f"/api/sessions/{session['session_id']}{suffix}", json={field: value})

    assert response.status_code == 400
    error = response.get_json()['error']
    assert error['type'] == 'invalid_field'
    assert error['details']['field'] == field
    assert len(fake_generator.requests) == 1
    assert fake_publisher.requests == []
