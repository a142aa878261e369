"""Oracle client tests — payload shape, citations, error mapping. No live network."""

import asyncio
import json
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import httpx
import pytest

from startup_xray.exceptions import OracleEmptyResponseError, OracleUnavailableError
from startup_xray.schemas.subject_schema import AnalysisRequestMode, AnalysisSubject, ComparisonPair
from startup_xray.services.oracle_client import (
    RawOracleResponse,
    get_temperature,
    invoke,
    invoke_oracle,
)
from startup_xray.services.prompt_builder import build_prompt


def _completion(content, citations=None, status_code=200):
    body = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    if citations is not None:
        body["citations"] = citations
    return httpx.Response(status_code, json=body)


def _run(coro):
    return asyncio.run(coro)


async def _invoke_with(handler, **kwargs):
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        return await invoke("system", "user", api_key="test-key", client=client, **kwargs)


@pytest.fixture(autouse=True)
def oracle_env(monkeypatch):
    monkeypatch.setenv("PERPLEXITY_API_KEY", "test-key")
    monkeypatch.delenv("PERPLEXITY_API_URL", raising=False)
    monkeypatch.delenv("PERPLEXITY_MODEL", raising=False)
    monkeypatch.delenv("PERPLEXITY_COMPARE_MODEL", raising=False)
    monkeypatch.delenv("PERPLEXITY_MAX_TOKENS", raising=False)
    monkeypatch.delenv("PERPLEXITY_METRICS_TEMPERATURE", raising=False)
    monkeypatch.delenv("PERPLEXITY_NARRATIVE_TEMPERATURE", raising=False)


class TestInvokeSuccess:
    def test_payload_and_headers(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["authorization"]
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return _completion("## Overview\n- hi")

        result = _run(_invoke_with(handler, model="sonar", temperature=0.1))

        assert isinstance(result, RawOracleResponse)
        assert result.text == "## Overview\n- hi"
        assert seen["auth"] == "Bearer test-key"
        assert seen["url"] == "https://api.perplexity.ai/chat/completions"
        body = seen["body"]
        assert body["model"] == "sonar"
        assert body["temperature"] == 0.1
        assert body["max_tokens"] == 2000
        assert [m["role"] for m in body["messages"]] == ["system", "user"]

    def test_citations_returned_in_order(self):
        urls = ["https://a.example", {"url": "https://b.example"}, "", 42]
        result = _run(_invoke_with(lambda request: _completion("text", citations=urls)))
        assert result.citations == ["https://a.example", "https://b.example"]

    def test_missing_citations_is_empty_list(self):
        result = _run(_invoke_with(lambda request: _completion("text")))
        assert result.citations == []

    def test_exactly_one_call(self):
        calls = []

        def handler(request):
            calls.append(request)
            return _completion("text")

        _run(_invoke_with(handler))
        assert len(calls) == 1


class TestInvokeErrors:
    def test_http_error_status(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"error": "bad key"})

        with pytest.raises(OracleUnavailableError):
            _run(_invoke_with(handler))
        # No retry
        assert len(calls) == 1

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(OracleUnavailableError):
            _run(_invoke_with(handler))

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(OracleUnavailableError):
            _run(_invoke_with(handler))

    def test_non_json_body(self):
        with pytest.raises(OracleUnavailableError):
            _run(_invoke_with(lambda request: httpx.Response(200, text="<html>oops</html>")))

    def test_empty_content(self):
        with pytest.raises(OracleEmptyResponseError):
            _run(_invoke_with(lambda request: _completion("   ")))

    def test_no_choices(self):
        with pytest.raises(OracleEmptyResponseError):
            _run(_invoke_with(lambda request: httpx.Response(200, json={"choices": []})))

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("PERPLEXITY_API_KEY", raising=False)
        with pytest.raises(OracleUnavailableError):
            _run(invoke("system", "user"))


class TestInvokeOracleConfig:
    def _capture(self, bundle):
        seen = {}

        def handler(request):
            seen.update(json.loads(request.content))
            return _completion("text")

        async def go():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await invoke_oracle(bundle, client=client)

        _run(go())
        return seen

    def test_startup_analysis_uses_low_temperature(self):
        bundle = build_prompt(AnalysisSubject.from_names("Stripe"), AnalysisRequestMode.SINGLE_ANALYSIS)
        body = self._capture(bundle)
        assert body["model"] == "sonar"
        assert body["temperature"] == 0.1

    def test_founder_analysis_uses_narrative_temperature(self):
        bundle = build_prompt(AnalysisSubject.from_names(None, "Ada Lovelace"), AnalysisRequestMode.SINGLE_ANALYSIS)
        body = self._capture(bundle)
        assert body["temperature"] == 0.5

    def test_comparison_uses_compare_model(self):
        bundle = build_prompt(ComparisonPair(first="Apple", second="Microsoft"), AnalysisRequestMode.COMPARISON)
        body = self._capture(bundle)
        assert body["model"] == "sonar-pro"

    def test_temperature_env_override_and_bad_value(self, monkeypatch):
        monkeypatch.setenv("PERPLEXITY_METRICS_TEMPERATURE", "0.2")
        assert get_temperature(True) == 0.2
        monkeypatch.setenv("PERPLEXITY_METRICS_TEMPERATURE", "cold")
        assert get_temperature(True) == 0.1
