import sys
from pathlib import Path

# Ensure the application package under src/ is importable when running tests
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / 'src'
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

import pytest

from sitesmith.factory import create_app
from sitesmith.services.generation import SeoArtifacts, TransportError

SAMPLE_HTML = (
    "<!DOCTYPE html><html><head><title>Bakery</title></head>"
    "<body><h1>Fresh bread</h1></body></html>"
)

SEO_FIXTURE = SeoArtifacts(
    crawler_rules="User-agent: *\nAllow: /\n",
    site_map="<urlset><url><loc>https://bakery.example/</loc></url></urlset>",
)


class FakeSiteGenerator:
    """Returns queued results in order, then ``default``. Exceptions are raised."""

    def __init__(self, default=SAMPLE_HTML):
        self.default = default
        self.results = []
        self.requests = []

    async def generate(self, request):
        self.requests.append(request)
        result = self.results.pop(0) if self.results else self.default
        if isinstance(result, BaseException):
            raise result
        return result


class FakeSeoGenerator:
    def __init__(self, artifacts=SEO_FIXTURE):
        self.artifacts = artifacts
        self.calls = []

    async def derive(self, markup, base_url):
        self.calls.append((markup, base_url))
        return self.artifacts


class FakePublisher:
    def __init__(self, url="https://bakery-abc123.vercel.app"):
        self.url = url
        self.error = None
        self.requests = []

    async def publish(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.url


@pytest.fixture
def fake_generator():
    return FakeSiteGenerator()


@pytest.fixture
def fake_seo():
    return FakeSeoGenerator()


@pytest.fixture
def fake_publisher():
    return FakePublisher()


@pytest.fixture
def failing_publisher():
    publisher = FakePublisher()
    publisher.error = TransportError("Project name is reserved", status_code=400)
    return publisher


@pytest.fixture(scope='function')
def app(fake_generator, fake_seo, fake_publisher):
    """Create application for the tests with fake generation backends."""
    app = create_app('testing')
    backends = app.extensions['sitesmith_backends']
    backends['generator'] = fake_generator
    backends['seo_generator'] = fake_seo
    backends['publisher'] = fake_publisher
    yield app
    app.extensions['sitesmith_sessions'].shutdown()


@pytest.fixture(scope='function')
def client(app):
    """Create a test client."""
    return app.test_client()


@pytest.fixture
def registry(app):
    return app.extensions['sitesmith_sessions']
