from typing import Dict, List, Sequence

from ..history import split_entry

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant integrated into a multi-role bot. "
    "Provide helpful, accurate, and contextually appropriate responses."
)


def build_chat_messages(
    user_input: str, system_prompt: str, history: Sequence[str] = ()
) -> List[Dict[str, str]]:
    """
    Build the chat completion message list.

    Args:
        user_input: Current user message
        system_prompt: System instruction (omitted when empty)
        history: Recent ``User:``/``Bot:`` history entries, oldest first

    Returns:
        OpenAI-style message dicts
    """
    messages = []

    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})

    for entry in history:
        role, content = split_entry(entry)
        messages.append({"role": role, "content": content})

    messages.append({"role": "user", "content": user_input})
    return messages
