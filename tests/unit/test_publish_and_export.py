"""Tests for Vercel publishing and zip export."""

import io
import zipfile

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from sitesmith.services.export_service import build_export_archive, export_filename
from sitesmith.services.generation import ContentError, SeoArtifacts, TransportError
from sitesmith.services.publish_service import PublishRequest, VercelPublisher, safe_project_name

SEO = SeoArtifacts(crawler_rules="User-agent: *\nAllow: /\n", site_map="<urlset/>")

REQUEST = PublishRequest(
    markup="<html>bakery</html>",
    crawler_rules=SEO.crawler_rules,
    site_map=SEO.site_map,
    target_name="My Bakery!",
)


def _vercel_session(status, body):
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=body)
    post_ctx = MagicMock()
    post_ctx.__aenter__.return_value = response
    session = MagicMock()
    session.post.return_value = post_ctx
    session_ctx = MagicMock()
    session_ctx.__aenter__.return_value = session
    return MagicMock(return_value=session_ctx), session


@pytest.mark.unit
@pytest.mark.parametrize("name,expected", [
    ("My Bakery!", "my-bakery-"),
    ("", "ai-generated-site"),
    (None, "ai-generated-site"),
    ("x" * 40, "x" * 32),
])
def test_safe_project_name(name, expected):
    assert safe_project_name(name) == expected


@pytest.mark.unit
def test_publish_request_files():
    assert [f["file"] for f in REQUEST.files()] == ["index.html", "robots.txt", "sitemap.xml"]
    assert REQUEST.files()[0]["data"] == "<html>bakery</html>"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_publish_returns_live_url():
    factory, session = _vercel_session(200, {"url": "my-bakery-abc.vercel.app"})
    publisher = VercelPublisher(token="tok", team_id="team_1")

    with patch("sitesmith.services.publish_service.aiohttp.ClientSession", factory):
        url = await publisher.publish(REQUEST)

    assert url == "https://my-bakery-abc.vercel.app"
    sent = session.post.call_args.kwargs
    assert sent["json"]["name"] == "my-bakery-"
    assert sent["json"]["target"] == "production"
    assert sent["params"] == {"teamId": "team_1"}
    assert sent["headers"]["Authorization"] == "Bearer tok"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_publish_failure_carries_provider_message():
    factory, _ = _vercel_session(403, {"error": {"code": "forbidden", "message": "Not authorized"}})
    publisher = VercelPublisher(token="tok")

    with patch("sitesmith.services.publish_service.aiohttp.ClientSession", factory):
        with pytest.raises(TransportError, match="Not authorized") as exc_info:
            await publisher.publish(REQUEST)
    assert exc_info.value.status_code == 403


@pytest.mark.unit
@pytest.mark.asyncio
async def test_publish_without_token():
    with pytest.raises(TransportError, match="VERCEL_TOKEN"):
        await VercelPublisher(token="").publish(REQUEST)


@pytest.mark.unit
def test_export_filename_is_deterministic():
    assert export_filename("My Bakery!") == "my-bakery.zip"
    assert export_filename("") == "sitesmith-project.zip"
    assert export_filename("My Bakery!") == export_filename("my bakery")


@pytest.mark.unit
def test_export_archive_contents():
    bundle = build_export_archive("<html>bakery</html>", SEO, "Bakery")

    with zipfile.ZipFile(io.BytesIO(bundle.data)) as archive:
        assert sorted(archive.namelist()) == ["index.html", "robots.txt", "sitemap.xml"]
        assert archive.read("index.html").decode() == "<html>bakery</html>"
        assert archive.read("robots.txt").decode() == SEO.crawler_rules
    assert bundle.filename == "bakery.zip"


@pytest.mark.unit
def test_export_without_seo_contains_only_site():
    bundle = build_export_archive("<html></html>", None)

    with zipfile.ZipFile(io.BytesIO(bundle.data)) as archive:
        assert archive.namelist() == ["index.html"]


@pytest.mark.unit
def test_export_is_reproducible():
    first = build_export_archive("<html></html>", SEO, "Bakery")
    second = build_export_archive("<html></html>", SEO, "Bakery")

    assert first.data == second.data


@pytest.mark.unit
def test_export_requires_markup():
    with pytest.raises(ContentError):
        build_export_archive("", SEO)
