"""Centralized oracle client — Perplexity chat completions.

All pipeline code MUST call `invoke_oracle()` from this module.
This ensures:
  - Model, temperature, timeout, and token limits are read from env.
  - Exactly one network call per invocation — retries belong to the caller.
  - Transport failures map to OracleUnavailableError, empty completions to
    OracleEmptyResponseError.
  - Consistent logging across analysis and comparison.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import OracleEmptyResponseError, OracleUnavailableError
from ..schemas.subject_schema import AnalysisRequestMode
from .prompt_builder import PromptBundle

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants, all read from environment with safe defaults
# ---------------------------------------------------------------------------
_DEFAULT_API_URL = "https://api.perplexity.ai/chat/completions"


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def get_api_key() -> str:
    """Read PERPLEXITY_API_KEY. Raises OracleUnavailableError if missing."""
    key = os.getenv("PERPLEXITY_API_KEY", "").strip()
    if not key:
        logger.error("[ORACLE] API key missing (PERPLEXITY_API_KEY)")
        raise OracleUnavailableError("Perplexity API key is not configured")
    return key


def get_api_url() -> str:
    return os.getenv("PERPLEXITY_API_URL", _DEFAULT_API_URL).strip()


def get_model(comparison: bool = False) -> str:
    """Analysis model (default: sonar) or comparison model (default: sonar-pro)."""
    if comparison:
        return os.getenv("PERPLEXITY_COMPARE_MODEL", "sonar-pro").strip()
    return os.getenv("PERPLEXITY_MODEL", "sonar").strip()


def get_temperature(metrics_bearing: bool) -> float:
    """Near-deterministic for metrics prompts; the parser depends on stable phrasing."""
    if metrics_bearing:
        return _env_float("PERPLEXITY_METRICS_TEMPERATURE", 0.1)
    return _env_float("PERPLEXITY_NARRATIVE_TEMPERATURE", 0.5)


def _get_timeout() -> float:
    return _env_float("PERPLEXITY_REQUEST_TIMEOUT", 60.0)


def _get_default_max_tokens() -> int:
    return _env_int("PERPLEXITY_MAX_TOKENS", 2000)


@dataclass(frozen=True)
class RawOracleResponse:
    """Completion text plus the ordered citation URLs (1-based in ``[n]`` markers)."""

    text: str
    citations: List[str] = field(default_factory=list)


def build_payload(
    *,
    model: str,
    system_message: str,
    user_message: str,
    temperature: float,
    max_tokens: int,
) -> Dict[str, Any]:
    """Build a chat completions payload (system + user, no JSON mode)."""
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": system_message},
            {"role": "user", "content": user_message},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }


def _extract_citations(data: Dict[str, Any]) -> List[str]:
    raw = data.get("citations") or []
    if not isinstance(raw, list):
        return []
    citations: List[str] = []
    for item in raw:
        # Newer responses may wrap each citation as {"url": ...}
        if isinstance(item, dict):
            item = item.get("url")
        if isinstance(item, str) and item.strip():
            citations.append(item.strip())
    return citations


async def invoke(
    system_message: str,
    user_message: str,
    *,
    model: Optional[str] = None,
    temperature: float = 0.1,
    max_tokens: int = 0,
    api_key: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> RawOracleResponse:
    """Send one chat completion request and return the raw text + citations.

    Parameters
    ----------
    system_message, user_message : str
        The two messages of the conversation.
    model : str, optional
        Override model name (default: from env).
    temperature : float
        Sampling temperature.
    max_tokens : int
        Token limit for the response. 0 = use env default.
    api_key : str, optional
        Override API key (default: from env).
    client : httpx.AsyncClient, optional
        Reuse an existing client (tests inject one with a MockTransport).

    Raises
    ------
    OracleUnavailableError
        Missing key, transport error, timeout, or non-200 status.
    OracleEmptyResponseError
        The completion carried no text.
    """
    if api_key is None:
        api_key = get_api_key()
    if model is None:
        model = get_model()
    if max_tokens <= 0:
        max_tokens = _get_default_max_tokens()

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    payload = build_payload(
        model=model,
        system_message=system_message,
        user_message=user_message,
        temperature=temperature,
        max_tokens=max_tokens,
    )

    t0 = time.time()
    print(f"🧠 [ORACLE] Calling {model} (temperature={temperature}, max_tokens={max_tokens})")
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=_get_timeout()) as owned_client:
                response = await owned_client.post(get_api_url(), headers=headers, json=payload)
        else:
            response = await client.post(get_api_url(), headers=headers, json=payload)
    except httpx.TimeoutException as exc:
        logger.error("[ORACLE] Timeout after %.1fs", time.time() - t0)
        raise OracleUnavailableError("Timed out waiting for the analysis service") from exc
    except httpx.HTTPError as exc:
        logger.error("[ORACLE] Transport error: %s", exc)
        raise OracleUnavailableError(f"Could not reach the analysis service: {exc}") from exc

    duration = time.time() - t0
    print(f"📦 [ORACLE] HTTP {response.status_code} ({duration:.1f}s)")

    if response.status_code != 200:
        logger.error("[ORACLE] Error response %d: %s", response.status_code, response.text[:400])
        raise OracleUnavailableError(f"Analysis service returned HTTP {response.status_code}")

    try:
        data = response.json()
    except ValueError as exc:
        logger.error("[ORACLE] Non-JSON response body: %s", response.text[:300])
        raise OracleUnavailableError("Analysis service returned an unreadable response") from exc

    usage = data.get("usage") if isinstance(data, dict) else None
    if usage:
        print(f"🧠 [ORACLE] Tokens used: prompt={usage.get('prompt_tokens', '?')}, completion={usage.get('completion_tokens', '?')}, total={usage.get('total_tokens', '?')}")

    try:
        content = data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        content = ""
    content = content.strip() if isinstance(content, str) else ""

    if not content:
        logger.warning("[ORACLE] Empty completion from %s", model)
        raise OracleEmptyResponseError("The analysis service returned no content")

    citations = _extract_citations(data)
    print(f"🧠 [ORACLE] Output length: {len(content)} chars, citations={len(citations)}")
    return RawOracleResponse(text=content, citations=citations)


async def invoke_oracle(
    bundle: PromptBundle,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> RawOracleResponse:
    """Invoke the oracle with model and temperature chosen for the bundle's mode."""
    return await invoke(
        bundle.system_message,
        bundle.user_message,
        model=get_model(comparison=bundle.mode == AnalysisRequestMode.COMPARISON),
        temperature=get_temperature(bundle.metrics_bearing),
        client=client,
    )
