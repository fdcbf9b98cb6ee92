"""Detect sub-agent spawns in a session log and correlate them with their task."""

import json
import logging
from typing import Iterable, Iterator, Mapping

from .models import ConversationRef, Entry, MessageEntry, SpawnedConversation
from .parser import extract_text, message_entries

logger = logging.getLogger(__name__)

SPAWN_TOOL_NAME = "sessions_spawn"
CHILD_KEY_FIELD = "childSessionKey"


def index_tool_calls(messages: Iterable[MessageEntry]) -> dict[str, dict]:
    """Map tool-call id to its arguments for every assistant tool call.

    Later calls win when an id repeats.
    """
    calls: dict[str, dict] = {}
    for msg in messages:
        if msg.role != "assistant":
            continue
        for block in msg.tool_calls:
            if block.id:
                calls[block.id] = block.arguments
    return calls


def is_spawn_result(msg: MessageEntry) -> bool:
    return msg.role == "toolResult" and msg.tool_name == SPAWN_TOOL_NAME


def read_child_key(msg: MessageEntry) -> str | None:
    """Decode a spawn result's payload and return the child session key, if any."""
    text = extract_text(msg.content)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    key = payload.get(CHILD_KEY_FIELD)
    if not key or not isinstance(key, str):
        return None
    return key


def iter_spawn_results(messages: Iterable[MessageEntry]) -> Iterator[tuple[MessageEntry, str]]:
    """Yield (tool result, child key) for every well-formed spawn result."""
    for msg in messages:
        if not is_spawn_result(msg):
            continue
        key = read_child_key(msg)
        if key:
            yield msg, key


def resolve_task(msg: MessageEntry, tool_calls: Mapping[str, dict]) -> str:
    """Task description from the tool call that produced this result."""
    if not msg.tool_call_id:
        return ""
    arguments = tool_calls.get(msg.tool_call_id) or {}
    task = arguments.get("task")
    return task if isinstance(task, str) else ""


def find_spawned_conversations(
    entries: Iterable[Entry],
    registry: Mapping[str, SpawnedConversation],
) -> dict[str, ConversationRef]:
    """Find nested conversations spawned from this log.

    Returns a dict mapping the spawning tool-result entry id to a
    ConversationRef. Only children present in the registry are returned;
    anything malformed is skipped.
    """
    messages = message_entries(entries)
    tool_calls = index_tool_calls(messages)

    refs: dict[str, ConversationRef] = {}
    for msg, key in iter_spawn_results(messages):
        info = registry.get(key)
        if info is None:
            logger.debug(f"Spawned session {key} is not in the registry")
            continue
        if not msg.id:
            continue
        refs[msg.id] = ConversationRef(
            child_key=key,
            filename=info.filename,
            label=info.label,
            task=resolve_task(msg, tool_calls),
        )
    return refs
