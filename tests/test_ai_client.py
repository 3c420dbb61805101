"""Tests for the generation backend client."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from wandboard.ai_client import AIServiceClient, InvalidResponse, NetworkError, ServiceUnavailable
from wandboard.operations import GenerationRequest, RequestKind


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
    traits: list[str] | None = None,
) -> AIServiceClient:
    return AIServiceClient(
        "http://backend.test/",
        timeout=5.0,
        traits_loader=(lambda: traits) if traits is not None else None,
        transport=httpx.MockTransport(handler),
    )


def _recording(payload: Any, status: int = 200) -> tuple[list[httpx.Request], Callable]:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status, json=payload)

    return seen, handler


def test_returns_first_two_alternatives() -> None:
    seen, handler = _recording({"alternatives": ["safe", "bold", "extra"]})
    client = _client(handler)

    result = client.generate(GenerationRequest(RequestKind.REWRITE, text="hello"))

    assert result == ("safe", "bold")
    assert seen[0].method == "POST"
    assert seen[0].url == "http://backend.test/api/rewrite"


def test_normal_body_carries_traits_and_previous_outputs() -> None:
    seen, handler = _recording({"alternatives": ["a", "b"]})
    client = _client(handler, traits=["witty"])

    client.generate(GenerationRequest(RequestKind.NORMAL, text="hi", previous_outputs=("x", "y")))

    assert json.loads(seen[0].content) == {
        "incoming": "",
        "reply": "hi",
        "traits": ["witty"],
        "previousOutputs": ["x", "y"],
    }


def test_length_body() -> None:
    seen, handler = _recording({"alternatives": ["a", "b"]})
    client = _client(handler)

    client.generate(GenerationRequest(RequestKind.LENGTH, text="hi", length="Long", tones=("Playful",)))

    assert json.loads(seen[0].content) == {
        "text": "hi",
        "length": "Long",
        "tones": ["Playful"],
        "previousOutputs": [],
    }


def test_photo_body_uses_previous_messages() -> None:
    seen, handler = _recording({"alternatives": ["a", "b"]})
    client = _client(handler)

    client.generate(GenerationRequest(
        RequestKind.PHOTO, photos=("AAA",), context="beach", length="Medium", previous_outputs=("old",),
    ))

    body = json.loads(seen[0].content)
    assert seen[0].url.path == "/api/upload"
    assert body == {"photos": ["AAA"], "context": "beach", "previousMessages": ["old"], "length": "Medium"}


def test_legacy_result_is_duplicated_for_tone() -> None:
    _, handler = _recording({"result": "only"})
    client = _client(handler)

    assert client.generate(GenerationRequest(RequestKind.TONE, text="hi", tones=("Casual",))) == ("only", "only")


def test_legacy_result_is_rejected_for_normal() -> None:
    _, handler = _recording({"result": "only"})
    client = _client(handler)

    with pytest.raises(InvalidResponse):
        client.generate(GenerationRequest(RequestKind.NORMAL, text="hi"))


def test_single_alternative_is_invalid() -> None:
    _, handler = _recording({"alternatives": ["one"]})
    client = _client(handler)

    with pytest.raises(InvalidResponse):
        client.generate(GenerationRequest(RequestKind.REPLY, text="hi"))


def test_malformed_body_is_invalid() -> None:
    client = _client(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

    with pytest.raises(InvalidResponse) as excinfo:
        client.generate(GenerationRequest(RequestKind.REPLY, text="hi"))

    assert excinfo.value.message == "Received invalid response from AI"


def test_backend_error_message_is_kept_verbatim() -> None:
    _, handler = _recording({"error": "Rate limit exceeded"}, status=429)
    client = _client(handler)

    with pytest.raises(ServiceUnavailable) as excinfo:
        client.generate(GenerationRequest(RequestKind.REWRITE, text="hi"))

    assert excinfo.value.message == "Rate limit exceeded"


def test_http_error_without_message_reports_status() -> None:
    client = _client(lambda request: httpx.Response(503, content=b""))

    with pytest.raises(ServiceUnavailable) as excinfo:
        client.generate(GenerationRequest(RequestKind.REWRITE, text="hi"))

    assert excinfo.value.message == "Request failed (HTTP 503)"


def test_connection_failure_is_a_network_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(NetworkError) as excinfo:
        client.generate(GenerationRequest(RequestKind.REWRITE, text="hi"))

    assert "Connection failed" in excinfo.value.message


def test_timeout_is_service_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    client = _client(handler)

    with pytest.raises(ServiceUnavailable) as excinfo:
        client.generate(GenerationRequest(RequestKind.REWRITE, text="hi"))

    assert excinfo.value.message == "Request timed out"
