"""
Unified text-generation client.

Provider priority:
  1. DeepSeek (OpenAI-compatible chat completions) when DEEPSEEK_API_KEY is set
  2. Oracle Generative AI Inference via OCI signed requests
  3. Anthropic
  4. A stub notice when nothing is configured
"""

import asyncio
import json
import logging
from pathlib import Path

import oci
import openai

from facilitator.config import settings

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# DeepSeek — OpenAI-compatible endpoint
# ─────────────────────────────────────────────────────────────────────────────

_deepseek_client: openai.AsyncOpenAI | None = None


def _deepseek() -> openai.AsyncOpenAI:
    global _deepseek_client
    if _deepseek_client is None:
        _deepseek_client = openai.AsyncOpenAI(
            api_key=settings.DEEPSEEK_API_KEY,
            base_url=settings.DEEPSEEK_BASE_URL,
        )
    return _deepseek_client


async def _deepseek_chat(
    system: str,
    messages: list[dict],
    max_tokens: int,
    temperature: float,
) -> str:
    payload = ([{"role": "system", "content": system}] if system else []) + messages
    response = await _deepseek().chat.completions.create(
        model=settings.DEEPSEEK_MODEL,
        messages=payload,
        max_tokens=max_tokens,
        temperature=temperature,
    )
    return response.choices[0].message.content or ""


# ─────────────────────────────────────────────────────────────────────────────
# Oracle GenAI — OCI signed requests
# ─────────────────────────────────────────────────────────────────────────────

def _build_oci_body(
    system: str,
    messages: list[dict],
    max_tokens: int,
    temperature: float,
) -> dict:
    """Build a GENERIC-format body for POST /actions/chat."""
    oci_msgs = [
        {
            "role": "USER" if m.get("role", "user") == "user" else "ASSISTANT",
            "content": [{"type": "TEXT", "text": m.get("content", "")}],
        }
        for m in messages
    ]
    chat_req: dict = {
        "apiFormat": "GENERIC",
        "messages": oci_msgs,
        "maxTokens": max_tokens,
        "temperature": temperature,
        "isStream": False,
    }
    if system:
        chat_req["systemMessage"] = system
    return {
        "servingMode": {"servingType": "ON_DEMAND", "modelId": settings.ORACLE_GENAI_MODEL},
        "chatRequest": chat_req,
        "compartmentId": settings.ORACLE_GENAI_COMPARTMENT_ID,
    }


def _extract_oci_text(response_json: dict) -> str:
    choices = response_json.get("chatResponse", {}).get("choices", [])
    if not choices:
        return ""
    content = choices[0].get("message", {}).get("content", [])
    if isinstance(content, list) and content:
        return content[0].get("text", "")
    return str(content)


def _oci_post(path: str, body: dict) -> dict:
    cfg_file = str(Path(settings.OCI_CONFIG_FILE).expanduser())
    cfg = oci.config.from_file(file_location=cfg_file, profile_name=settings.OCI_CONFIG_PROFILE)
    endpoint = settings.ORACLE_GENAI_BASE_URL.rstrip("/") or (
        f"https://inference.generativeai.{cfg.get('region', 'us-chicago-1')}.oci.oraclecloud.com"
    )
    client = oci.generative_ai_inference.GenerativeAiInferenceClient(
        config=cfg,
        service_endpoint=endpoint,
        timeout=(10.0, 120.0),
    )
    response = client.base_client.call_api(
        resource_path=path,
        method="POST",
        header_params={"content-type": "application/json"},
        body=body,
        response_type="str",
    )
    text = response.data if isinstance(response.data, str) else str(response.data)
    return json.loads(text)


async def _oracle_chat(
    system: str,
    messages: list[dict],
    max_tokens: int,
    temperature: float,
) -> str:
    body = _build_oci_body(system, messages, max_tokens, temperature)
    # The SDK already prefixes the API version path.
    data = await asyncio.to_thread(_oci_post, "/actions/chat", body)
    return _extract_oci_text(data)


# ─────────────────────────────────────────────────────────────────────────────
# Anthropic
# ─────────────────────────────────────────────────────────────────────────────

async def _anthropic_chat(system: str, messages: list[dict], max_tokens: int) -> str:
    import anthropic

    client = anthropic.AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)
    response = await client.messages.create(
        model=settings.ANTHROPIC_MODEL,
        max_tokens=max_tokens,
        system=system,
        messages=messages,
    )
    return response.content[0].text


# ─────────────────────────────────────────────────────────────────────────────
# Status helpers
# ─────────────────────────────────────────────────────────────────────────────

def _deepseek_configured() -> bool:
    return bool(settings.DEEPSEEK_API_KEY)


def _oracle_configured() -> bool:
    return bool(
        settings.OCI_CONFIG_FILE
        and settings.OCI_CONFIG_PROFILE
        and settings.ORACLE_GENAI_MODEL
        and settings.ORACLE_GENAI_COMPARTMENT_ID
    )


def _anthropic_configured() -> bool:
    return bool(settings.ANTHROPIC_API_KEY)


def ai_provider_name() -> str:
    if _deepseek_configured():
        return f"DeepSeek ({settings.DEEPSEEK_MODEL})"
    if _oracle_configured():
        return f"Oracle GenAI OCI-Signed ({settings.ORACLE_GENAI_MODEL})"
    if _anthropic_configured():
        return f"Anthropic ({settings.ANTHROPIC_MODEL})"
    return "none"


async def ai_health_check() -> dict:
    """Live connectivity test — called by /api/health/ai."""
    provider = ai_provider_name()
    if provider == "none":
        return {
            "provider": "none",
            "status": "unconfigured",
            "message": "Set DEEPSEEK_API_KEY (or OCI / Anthropic settings) in backend/.env.",
        }

    try:
        reply = await chat(
            system="You are a test assistant.",
            messages=[{"role": "user", "content": "Reply with exactly: OK"}],
            max_tokens=10,
            temperature=0.0,
        )
        return {"provider": provider, "status": "ok", "test_reply": reply.strip()}
    except Exception as e:
        return {"provider": provider, "status": "error", "error": str(e)}


# ─────────────────────────────────────────────────────────────────────────────
# Public chat() — the single entry point
# ─────────────────────────────────────────────────────────────────────────────

async def chat(
    system: str,
    messages: list[dict],
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> str:
    """Send a chat completion request to the first configured provider.

    Errors are raised to the caller; the facilitator and the insight oracle
    decide how to recover.
    """
    max_tokens = max_tokens or settings.LLM_MAX_TOKENS
    temperature = settings.LLM_TEMPERATURE if temperature is None else temperature

    if _deepseek_configured():
        return await _deepseek_chat(system, messages, max_tokens, temperature)

    # OCI and Anthropic both need at least one user turn after the system prompt.
    if not messages:
        messages = [{"role": "user", "content": "Begin."}]

    if _oracle_configured():
        return await _oracle_chat(system, messages, max_tokens, temperature)

    if _anthropic_configured():
        return await _anthropic_chat(system, messages, max_tokens)

    logger.warning("chat() called with no AI provider configured")
    return (
        "[AI not configured] Set DEEPSEEK_API_KEY in backend/.env "
        "(or configure OCI signing / ANTHROPIC_API_KEY) and restart."
    )
