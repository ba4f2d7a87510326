import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from mediconnect.config import get_settings


def _ensure_dir(path: str) -> None:
    directory = os.path.dirname(path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory, exist_ok=True)


def get_consult_log_path() -> str:
    """Resolve the log file path for consult traffic logs."""
    return get_settings().consult_log_path or os.path.join("logs", "consult_traffic_pretty.log")


def json_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def safe_json_dump_pretty(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, indent=2, default=str)


def _truncate(text: Optional[str], max_len: int = 280) -> Optional[str]:
    if text is None:
        return None
    s = str(text)
    return s if len(s) <= max_len else s[: max_len - 1] + "…"


def _summarize_request(payload: Any) -> Dict[str, Any]:
    query = payload.get("query") if isinstance(payload, dict) else None
    return {
        "has_query": isinstance(query, str) and bool(query.strip()),
        "query_preview": _truncate(query if isinstance(query, str) else None, 200),
    }


def _summarize_response(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        return {"empty": True}
    return {
        "reply_preview": _truncate(payload.get("reply"), 400),
        "error": payload.get("error"),
        "details": _truncate(payload.get("details"), 400),
    }


def log_consult_interaction_pretty(
    *,
    path: str,
    method: str,
    client_host: Optional[str],
    request_payload: Any,
    response_payload: Optional[Dict[str, Any]],
    status_code: int,
    latency_ms: float,
) -> None:
    """Write a human-friendly JSON block summarizing one consult call.

    Only previews are kept: headers (and with them the upstream credential)
    are never written.
    """
    summary = {
        "ts": json_now(),
        "path": path,
        "method": method,
        "client": client_host,
        "latency_ms": round(float(latency_ms), 3),
        "status": int(status_code),
        "request": _summarize_request(request_payload),
        "response": _summarize_response(response_payload),
    }

    log_path = get_consult_log_path()
    _ensure_dir(log_path)
    with open(log_path, "a", encoding="utf-8") as f:
        f.write(safe_json_dump_pretty(summary))
        f.write("\n\n")
