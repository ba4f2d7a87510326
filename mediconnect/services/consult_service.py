"""
Consult service: validates an inbound query and forwards it to Groq
Flow: method check → credential → JSON body → query → chat completion
"""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from groq import APIStatusError

from mediconnect.config import get_settings
from mediconnect.utils import llm

logger = logging.getLogger("consult_service")

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

FALLBACK_REPLY = "AI response not available."
MISSING_KEY_ERROR = (
    "Missing Groq API key. Set GROQ_API_KEY in the environment and restart the service."
)


@dataclass
class ConsultResponse:
    status_code: int
    payload: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=lambda: dict(CORS_HEADERS))


def _error(status_code: int, error: str, details: Optional[str] = None) -> ConsultResponse:
    payload: Dict[str, Any] = {"error": error}
    if details is not None:
        payload["details"] = details
    return ConsultResponse(status_code, payload)


def parse_body(raw: Optional[bytes]) -> Any:
    """Decode a JSON request body; an empty body counts as ``{}``.

    Raises ValueError on malformed JSON.
    """
    if not raw or not raw.strip():
        return {}
    return json.loads(raw)


def extract_query(body: Any) -> str:
    if not isinstance(body, dict):
        return ""
    query = body.get("query")
    return query.strip() if isinstance(query, str) else ""


async def ask_groq(query: str, api_key: str) -> Optional[str]:
    settings = get_settings()
    return await asyncio.to_thread(
        llm.groq_chat,
        llm.build_consult_messages(query),
        api_key=api_key,
        model=settings.groq_model,
        temperature=settings.groq_temperature,
        max_tokens=settings.groq_max_tokens,
        timeout=settings.groq_timeout_seconds,
    )


async def handle_consult_request(method: str, raw_body: Optional[bytes]) -> ConsultResponse:
    """Translate one consult invocation into a status code and JSON payload.

    Never raises: every failure path becomes an error payload.
    """
    method = (method or "").upper()
    if method == "OPTIONS":
        return ConsultResponse(204)
    if method != "POST":
        return _error(405, "Method Not Allowed")

    api_key = llm.get_groq_api_key()
    if not api_key:
        logger.error("Consult rejected: no Groq credential in %s", ", ".join(llm.GROQ_KEY_ENV_VARS))
        return _error(500, MISSING_KEY_ERROR)

    try:
        body = parse_body(raw_body)
    except ValueError:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
        return _error(400, "Invalid JSON body")

    query = extract_query(body)
    if not query:
        return _error(400, "Query is required")

    try:
        content = await ask_groq(query, api_key)
    except APIStatusError as e:
        details = llm.extract_error_detail(e.body)
        logger.warning("Groq API error (%s): %s", e.status_code, details)
        return _error(e.status_code, "Groq API error", details)
    except Exception as e:
        logger.exception("Server error while contacting Groq: %s", e)
        return _error(500, "Server error while contacting Groq", str(e))

    reply = (content or "").strip()
    logger.info("Consult answered (query_len=%d, reply_len=%d)", len(query), len(reply))
    return ConsultResponse(200, {"reply": reply or FALLBACK_REPLY})
