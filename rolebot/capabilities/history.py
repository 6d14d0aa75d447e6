"""
Conversation history kept in ``context.state["conversation_history"]``.

Entries are plain strings prefixed with the speaker (``User: ...`` or
``Bot: ...``) so they stay JSON-serializable and readable when summarized.
"""

from typing import Any, Dict, List, Tuple

HISTORY_KEY = "conversation_history"
MAX_HISTORY_ENTRIES = 20

USER_PREFIX = "User: "
BOT_PREFIX = "Bot: "


def get_history(state: Dict[str, Any]) -> List[str]:
    history = state.get(HISTORY_KEY)
    if not isinstance(history, list):
        return []
    return [str(entry) for entry in history]


def extend_history(state: Dict[str, Any], user_input: str, reply: str) -> List[str]:
    """
    History with one more exchange appended, keeping the newest entries.

    ``state`` is not modified; the result is meant for ``updated_state``.
    """
    history = get_history(state)
    history.append(f"{USER_PREFIX}{user_input}")
    history.append(f"{BOT_PREFIX}{reply}")
    return history[-MAX_HISTORY_ENTRIES:]


def split_entry(entry: str) -> Tuple[str, str]:
    """Speaker role (``user``/``assistant``) and text of a history entry."""
    if entry.startswith(USER_PREFIX):
        return "user", entry[len(USER_PREFIX) :]
    if entry.startswith(BOT_PREFIX):
        return "assistant", entry[len(BOT_PREFIX) :]
    return "assistant", entry
