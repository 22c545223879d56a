"""Chat widget session storage."""

from __future__ import annotations

import json
import logging
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Dict, List

from medibook.services.cache import cache_delete, cache_get, cache_set
from medibook.utils.config import get_settings

LOGGER = logging.getLogger(__name__)
SESSION_PREFIX = "medibook:chat:"

HISTORY_MAX_ENTRIES = 20

GREETING = (
    "Hello! I'm here to help you with any questions about our medical services, "
    "appointments, or doctors. How can I assist you today?"
)

DEFAULT_SESSION_STATE: Dict[str, Any] = {
    "history": [],
    "metadata": {},
}


def _session_key(session_id: str) -> str:
    return f"{SESSION_PREFIX}{session_id}"


def new_session_state() -> Dict[str, Any]:
    """Return a fresh session that opens with the assistant greeting."""

    state = deepcopy(DEFAULT_SESSION_STATE)
    append_history(state, "assistant", GREETING)
    return state


def load_session(session_id: str) -> Dict[str, Any]:
    """Load a session from Redis, creating a new one if missing."""

    raw_state = cache_get(_session_key(session_id))
    if raw_state is None:
        LOGGER.debug("Chat session %s not found; creating new state", session_id)
        return new_session_state()

    try:
        state: Dict[str, Any] = json.loads(raw_state)
    except json.JSONDecodeError:
        LOGGER.warning("Chat session %s payload invalid JSON; resetting", session_id)
        return new_session_state()

    if not isinstance(state, dict) or not isinstance(state.get("history"), list):
        LOGGER.warning("Chat session %s payload malformed; resetting", session_id)
        return new_session_state()

    return state


def save_session(session_id: str, state: Dict[str, Any]) -> None:
    """Persist session state to Redis with a TTL."""

    cache_set(
        _session_key(session_id),
        json.dumps(state),
        ex=get_settings().chat_session_ttl_seconds,
    )


def delete_session(session_id: str) -> None:
    """Remove a session from Redis."""

    cache_delete(_session_key(session_id))


def append_history(state: Dict[str, Any], role: str, content: str) -> None:
    """Append a conversation turn, dropping the oldest beyond the cap."""

    state.setdefault("history", [])
    state["history"].append(
        {
            "role": role,
            "content": content,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )
    overflow = len(state["history"]) - HISTORY_MAX_ENTRIES
    if overflow > 0:
        del state["history"][:overflow]


def get_history(state: Dict[str, Any]) -> List[Dict[str, Any]]:
    return state.get("history", [])
