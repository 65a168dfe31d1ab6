from __future__ import annotations

import json
from typing import Any

# Market-data responses look like:
#   {"type": "success", "result": ..., "description": "..."}
# OHLC results carry the bar string under "dataReponse" (sic) or "listQuotes".


class EnvelopeError(ValueError):
    """The API answered with a non-success envelope."""


def _load(text: str) -> dict[str, Any] | None:
    s = text.strip()
    if not s.startswith("{"):
        return None
    try:
        data = json.loads(s)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) and "type" in data else None


def _result(env: dict[str, Any]) -> Any:
    kind = str(env.get("type") or "")
    if kind.lower() != "success":
        raise EnvelopeError(f"{kind or 'unknown'}: {env.get('description') or 'no description'}")
    return env.get("result")


def unwrap_master(text: str) -> str:
    """Return the raw master blob. Text that is not an envelope is returned as-is."""
    env = _load(text)
    if env is None:
        return text
    result = _result(env)
    if result is None:
        return ""
    return result if isinstance(result, str) else json.dumps(result, ensure_ascii=False)


def unwrap_bars(text: str) -> str:
    """Return the raw bar series string. Text that is not an envelope is returned as-is."""
    env = _load(text)
    if env is None:
        return text
    result = _result(env)
    if isinstance(result, str):
        return result
    if not isinstance(result, dict):
        return ""
    return str(result.get("dataReponse") or result.get("listQuotes") or "")
