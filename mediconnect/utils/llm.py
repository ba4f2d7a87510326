import logging
import os
from typing import Any, Dict, List, Optional

from groq import Groq

logger = logging.getLogger("llm")
# Don't add handler - use the root logger's handler to avoid duplicates

# Candidate environment variables for the Groq credential, in priority order.
# The first non-empty (after trimming) value wins:
#   GROQ_API_KEY  - canonical name
#   GROQ_KEY      - legacy deployments
#   API_KEY       - generic hosting dashboards
#   GROQ          - shortest alias seen in older setups
GROQ_KEY_ENV_VARS = ("GROQ_API_KEY", "GROQ_KEY", "API_KEY", "GROQ")

SYSTEM_PROMPT = (
    "You are a medical assistant. Provide general health advice only. "
    "Do not diagnose, prescribe medicine, or replace professional medical care."
)


def get_groq_api_key() -> str:
    """Return the first non-empty Groq credential, or an empty string."""
    for name in GROQ_KEY_ENV_VARS:
        value = (os.getenv(name) or "").strip()
        if value:
            logger.debug("Groq credential resolved from %s", name)
            return value
    return ""


def _get_groq_client(api_key: str, timeout: float) -> Groq:
    if not api_key:
        logger.error("Groq API key is not configured")
        raise RuntimeError("Groq API key is not configured")
    logger.debug("Groq client initialized.")
    # No retries: each consult is a single best-effort forward
    return Groq(api_key=api_key, timeout=timeout, max_retries=0)


def groq_chat(messages: List[Dict[str, str]], *, api_key: str, model: str,
              temperature: float = 0.4, max_tokens: int = 600,
              timeout: float = 30.0) -> Optional[str]:
    """
    Minimal wrapper around Groq chat completion.
    Returns the raw content of the first choice, or None when the upstream
    response carries no usable content. Upstream failures raise the groq
    SDK's exceptions (APIStatusError, APIConnectionError, ...).
    """
    client = _get_groq_client(api_key, timeout)
    logger.debug("Sending chat request to Groq: model=%s, temperature=%s", model, temperature)
    resp = client.chat.completions.create(
        model=model,
        messages=messages,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    choices = getattr(resp, "choices", None)
    if not choices:
        logger.warning("Groq returned no choices")
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not content:
        logger.warning("Groq returned empty content")
        return None
    logger.debug("Groq response received.")
    return content


def build_consult_messages(query: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": query},
    ]


def extract_error_detail(body: Any, default: str = "Groq API request failed") -> str:
    """
    Best-effort extraction of an upstream error message from the parsed JSON
    error document ({"error": {"message": ...}}) or its inner error object
    ({"message": ...}). Anything else, raw response text included, yields
    ``default``.
    """
    if not isinstance(body, dict):
        return default
    err = body.get("error")
    if isinstance(err, dict) and err.get("message"):
        return str(err["message"])
    if isinstance(err, str) and err.strip():
        return err.strip()
    if body.get("message"):
        return str(body["message"])
    return default
