"""Tests for the OpenRouter client and failure classification."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from sitesmith.services.generation import CapacityError, ContentError, TransportError
from sitesmith.services.generation.api_client import (
    OpenRouterClient,
    classify_failure,
    extract_content,
)

MODEL = "google/gemini-2.5-pro"


def _session_factory(status, body, content_type="application/json"):
    """Stand-in for aiohttp.ClientSession returning one canned response."""
    response = MagicMock()
    response.status = status
    response.headers = {"Content-Type": content_type}
    response.json = AsyncMock(return_value=body)
    response.text = AsyncMock(return_value=str(body))

    post_ctx = MagicMock()
    post_ctx.__aenter__.return_value = response
    session = MagicMock()
    session.post.return_value = post_ctx
    session_ctx = MagicMock()
    session_ctx.__aenter__.return_value = session
    return MagicMock(return_value=session_ctx), session


def _ok_body(text="<html></html>"):
    return {"choices": [{"message": {"role": "assistant", "content": text}}], "usage": {}}


@pytest.mark.unit
@pytest.mark.parametrize("status,message,expected", [
    (429, "Too many requests", CapacityError),
    (503, "Service unavailable", CapacityError),
    (529, "Overloaded", CapacityError),
    (400, "Provider returned error: quota exceeded", CapacityError),
    (500, "RESOURCE_EXHAUSTED", CapacityError),
    (400, "Invalid model", ContentError),
    (413, "Payload too large", ContentError),
    (408, "Request timeout", TransportError),
    (500, "Internal error", TransportError),
    (502, "Bad gateway", TransportError),
])
def test_classify_failure(status, message, expected):
    error = classify_failure(status, message, MODEL)

    assert type(error) is expected
    assert error.status_code == status
    assert error.model == MODEL


@pytest.mark.unit
def test_extract_content():
    assert extract_content(_ok_body("<p>hi</p>")) == "<p>hi</p>"

    parts = {"choices": [{"message": {"content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]}}]}
    assert extract_content(parts) == "ab"

    with pytest.raises(ContentError):
        extract_content(_ok_body("   "))
    with pytest.raises(ContentError):
        extract_content({"choices": []})


@pytest.mark.unit
def test_payload_with_structured_output_requires_parameters():
    client = OpenRouterClient(api_key="k")
    schema = {"type": "json_schema", "json_schema": {"name": "x", "schema": {}}}

    payload = client._payload(MODEL, [], 0.2, 64000, response_format=schema)

    assert payload["max_tokens"] == 32000
    assert payload["response_format"] == schema
    assert payload["provider"] == {"require_parameters": True}
    assert "top_p" not in payload


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_api_key_is_transport_error():
    client = OpenRouterClient(api_key="")

    with pytest.raises(TransportError) as exc_info:
        await client.chat_completion(MODEL, [{"role": "user", "content": "hi"}])
    assert exc_info.value.status_code == 401


@pytest.mark.unit
@pytest.mark.asyncio
async def test_chat_completion_success():
    factory, session = _session_factory(200, _ok_body("<html>ok</html>"))
    client = OpenRouterClient(api_key="k", site_url="https://s.example", site_name="S")

    with patch("sitesmith.services.generation.api_client.aiohttp.ClientSession", factory):
        data = await client.chat_completion(MODEL, [{"role": "user", "content": "hi"}], top_p=0.95)

    assert extract_content(data) == "<html>ok</html>"
    sent = session.post.call_args.kwargs
    assert sent["json"]["model"] == MODEL
    assert sent["json"]["top_p"] == 0.95
    assert sent["headers"]["Authorization"] == "Bearer k"
    assert sent["headers"]["X-Title"] == "S"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_chat_completion_rate_limited_is_capacity_error():
    factory, _ = _session_factory(429, {"error": {"message": "Rate limit exceeded", "code": 429}})
    client = OpenRouterClient(api_key="k")

    with patch("sitesmith.services.generation.api_client.aiohttp.ClientSession", factory):
        with pytest.raises(CapacityError):
            await client.chat_completion(MODEL, [])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_error_inside_200_body_uses_embedded_code():
    factory, _ = _session_factory(200, {"error": {"message": "Invalid request", "code": 400}})
    client = OpenRouterClient(api_key="k")

    with patch("sitesmith.services.generation.api_client.aiohttp.ClientSession", factory):
        with pytest.raises(ContentError) as exc_info:
            await client.chat_completion(MODEL, [])
    assert exc_info.value.status_code == 400


@pytest.mark.unit
@pytest.mark.asyncio
async def test_timeout_is_transport_error():
    factory, session = _session_factory(200, _ok_body())
    session.post.return_value.__aenter__.side_effect = asyncio.TimeoutError()
    client = OpenRouterClient(api_key="k")

    with patch("sitesmith.services.generation.api_client.aiohttp.ClientSession", factory):
        with pytest.raises(TransportError, match="timed out"):
            await client.chat_completion(MODEL, [], timeout=5)
