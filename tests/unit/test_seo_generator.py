"""Tests for SEO file derivation."""

import json

import pytest
from unittest.mock import AsyncMock, Mock

from sitesmith.constants import SEO_MARKUP_PREFIX_CHARS
from sitesmith.services.generation import (
    CapacityError,
    ContentError,
    GenerationConfig,
    SeoGenerator,
    TransportError,
    default_seo_artifacts,
)
from sitesmith.services.generation.seo_generator import SEO_RESPONSE_FORMAT, parse_seo_response

BASE_URL = "https://bakery.vercel.app"

ROBOTS = "User-agent: *\nAllow: /\nSitemap: https://bakery.vercel.app/sitemap.xml\n"
SITEMAP = '<?xml version="1.0"?><urlset><url><loc>https://bakery.vercel.app/</loc></url></urlset>'


def _body(payload):
    return {"choices": [{"message": {"content": json.dumps(payload)}}]}


def _seo(*outcomes, attempts=2):
    client = Mock()
    client.chat_completion = AsyncMock(side_effect=list(outcomes))
    config = GenerationConfig(seo_model="seo/model", seo_max_attempts=attempts, seo_retry_delay=1.0)
    return SeoGenerator(config, client, sleep=AsyncMock()), client


@pytest.mark.unit
def test_parse_valid_response():
    artifacts = parse_seo_response(json.dumps({"robots_txt": ROBOTS, "sitemap_xml": SITEMAP}))

    assert artifacts.crawler_rules == ROBOTS
    assert artifacts.site_map == SITEMAP
    assert artifacts.is_default is False


@pytest.mark.unit
@pytest.mark.parametrize("text", [
    "not json",
    json.dumps(["robots", "sitemap"]),
    json.dumps({"robots_txt": ROBOTS}),
    json.dumps({"robots_txt": ROBOTS, "sitemap_xml": SITEMAP, "extra": 1}),
    json.dumps({"robots_txt": ROBOTS, "sitemap_xml": 3}),
    json.dumps({"robots_txt": "", "sitemap_xml": SITEMAP}),
])
def test_parse_rejects_malformed_response(text):
    with pytest.raises(ContentError):
        parse_seo_response(text)


@pytest.mark.unit
def test_default_artifacts_reference_base_url():
    artifacts = default_seo_artifacts(BASE_URL + "/")

    assert artifacts.is_default is True
    assert "User-agent: *" in artifacts.crawler_rules
    assert "Allow: /" in artifacts.crawler_rules
    assert f"Sitemap: {BASE_URL}/sitemap.xml" in artifacts.crawler_rules
    assert f"<loc>{BASE_URL}/</loc>" in artifacts.site_map


@pytest.mark.unit
@pytest.mark.asyncio
async def test_derive_returns_model_files():
    generator, client = _seo(_body({"robots_txt": ROBOTS, "sitemap_xml": SITEMAP}))

    artifacts = await generator.derive("<html></html>", BASE_URL)

    assert (artifacts.crawler_rules, artifacts.site_map) == (ROBOTS, SITEMAP)
    sent = client.chat_completion.await_args.kwargs
    assert sent["model"] == "seo/model"
    assert sent["response_format"] == SEO_RESPONSE_FORMAT


@pytest.mark.unit
@pytest.mark.asyncio
async def test_derive_submits_bounded_markup_prefix():
    generator, client = _seo(_body({"robots_txt": ROBOTS, "sitemap_xml": SITEMAP}))
    markup = "x" * SEO_MARKUP_PREFIX_CHARS + "BEYOND_PREFIX"

    await generator.derive(markup, BASE_URL)

    user_message = client.chat_completion.await_args.kwargs["messages"][1]["content"]
    assert "x" * SEO_MARKUP_PREFIX_CHARS in user_message
    assert "BEYOND_PREFIX" not in user_message
    assert BASE_URL in user_message


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("outcomes", [
    [TransportError("connection reset")],
    [ContentError("invalid schema")],
    [CapacityError("busy"), CapacityError("busy")],
    [{"choices": [{"message": {"content": "not json"}}]}],
])
async def test_derive_falls_back_to_defaults(outcomes):
    generator, _ = _seo(*outcomes)

    artifacts = await generator.derive("<html></html>", BASE_URL)

    assert artifacts == default_seo_artifacts(BASE_URL)
    assert artifacts.is_default is True


@pytest.mark.unit
@pytest.mark.asyncio
async def test_derive_retries_capacity_then_succeeds():
    generator, client = _seo(CapacityError("busy"), _body({"robots_txt": ROBOTS, "sitemap_xml": SITEMAP}))

    artifacts = await generator.derive("<html></html>", BASE_URL)

    assert artifacts.crawler_rules == ROBOTS
    assert client.chat_completion.await_count == 2
