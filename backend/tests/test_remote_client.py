from __future__ import annotations

import asyncio

import httpx
import pytest

from tsparse.resolution.orchestrator import ResolutionMethod, Resolver
from tsparse.resolution.remote_client import ParseServiceClient, ParseServiceError, RemoteResolver

from conftest import REFERENCE, FixedParser


def _client(handler, base_url: str = "http://svc.test/") -> ParseServiceClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ParseServiceClient(base_url, "secret-key", client=http)


def test_parse_sends_contract_headers_and_trims_base_url():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json={"epoch": 1737036000, "suggestedFormatIndex": 4, "confidence": 0.9, "method": "llm-normalized"}
        )

    result = asyncio.run(_client(handler).parse("tmrw 2pm", "UTC"))

    assert str(seen[0].url) == "http://svc.test/parse"
    assert seen[0].headers["x-api-key"] == "secret-key"
    assert seen[0].headers["x-api-version"] == "1"
    assert result.epoch_seconds == 1737036000
    assert result.format_index == 4
    assert result.method == ResolutionMethod.LLM_NORMALIZED


def test_error_envelope_is_surfaced():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "unauthorized", "message": "Invalid or missing API key"})

    with pytest.raises(ParseServiceError) as exc:
        asyncio.run(_client(handler).parse("x", "UTC"))
    assert exc.value.kind == "unauthorized"
    assert exc.value.status_code == 401


@pytest.mark.parametrize(
    "payload",
    [
        {"epoch": "1737036000", "suggestedFormatIndex": 4, "confidence": 0.9, "method": "llm-normalized"},
        {"epoch": 1737036000, "suggestedFormatIndex": 7, "confidence": 0.9, "method": "llm-normalized"},
        {"epoch": 1737036000, "suggestedFormatIndex": 4, "confidence": 2, "method": "llm-normalized"},
        {"epoch": 1737036000, "suggestedFormatIndex": 4, "confidence": 0.9, "method": "magic"},
        ["not", "an", "object"],
    ],
)
def test_invalid_payload_rejected(payload):
    with pytest.raises(ParseServiceError):
        asyncio.run(_client(lambda request: httpx.Response(200, json=payload)).parse("x", "UTC"))


def test_remote_resolver_falls_back_to_local_pipeline():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    resolver = RemoteResolver(_client(handler), Resolver(FixedParser({"next friday": 1737100000})))
    result = asyncio.run(resolver.resolve_expression("next friday", now=REFERENCE))

    assert result.method == ResolutionMethod.DETERMINISTIC_FALLBACK
    assert result.epoch_seconds == 1737100000


def test_remote_resolver_falls_back_on_unresolved_answer():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "bad_request", "message": "Unable to parse date/time."})

    resolver = RemoteResolver(_client(handler), Resolver(FixedParser()))
    result = asyncio.run(resolver.resolve_expression("gibberish", now=REFERENCE))
    assert result.method == ResolutionMethod.UNRESOLVED


def test_remote_resolver_detects_markup_locally():
    resolver = RemoteResolver(_client(lambda request: httpx.Response(500)))
    assert resolver.detect("<t:1700000000:t>").format_index == 2


def test_health_check():
    assert asyncio.run(_client(lambda request: httpx.Response(200, json={"status": "healthy"})).health_check())

    def down(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    assert not asyncio.run(_client(down).health_check())


@pytest.mark.parametrize("body", [["boom"], "boom", 42])
def test_non_object_error_body_is_server_error(body):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json=body)

    with pytest.raises(ParseServiceError) as exc:
        asyncio.run(_client(handler).parse("x", "UTC"))
    assert exc.value.kind == "server_error"
    assert exc.value.status_code == 502


def test_remote_resolver_falls_back_on_non_object_error_body():
    resolver = RemoteResolver(
        _client(lambda request: httpx.Response(500, json=["boom"])),
        Resolver(FixedParser({"tomorrow": 1737000000})),
    )
    result = asyncio.run(resolver.resolve_expression("tomorrow", now=REFERENCE))
    assert result.method == ResolutionMethod.DETERMINISTIC_FALLBACK
    assert result.epoch_seconds == 1737000000


def _answer(method: str, index: int):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, json={"epoch": 1737036000, "suggestedFormatIndex": index, "confidence": 0.7, "method": method}
        )

    return handler


def test_remote_deterministic_answer_uses_local_histogram():
    resolver = RemoteResolver(_client(_answer("deterministic-fallback", 0)))
    result = asyncio.run(resolver.resolve_expression("tomorrow 2pm", now=REFERENCE, histogram={"F": 3, "d": 1}))
    assert result.format_index == 5
    assert result.epoch_seconds == 1737036000
    assert result.method == ResolutionMethod.DETERMINISTIC_FALLBACK


def test_remote_normalized_answer_keeps_its_suggestion():
    resolver = RemoteResolver(_client(_answer("llm-normalized", 2)))
    result = asyncio.run(resolver.resolve_expression("2pm", now=REFERENCE, histogram={"F": 3}))
    assert result.format_index == 2
