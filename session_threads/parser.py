"""Parse raw JSONL session logs into typed entries."""

import json
import logging
from typing import Iterable

from .models import (
    CompactionEntry,
    ContentBlock,
    Entry,
    MessageEntry,
    ModelChangeEntry,
    SessionEntry,
    TextBlock,
    ThinkingBlock,
    ThinkingLevelChangeEntry,
    ToolCallBlock,
    UnknownBlock,
    UnknownEntry,
)

logger = logging.getLogger(__name__)


def _optional_str(value) -> str | None:
    if value is None:
        return None
    return str(value)


def parse_content(content) -> list[ContentBlock]:
    """Parse message content (handles both string and list formats)."""
    if isinstance(content, str):
        return [TextBlock(text=content)] if content else []
    if not isinstance(content, list):
        return []

    blocks: list[ContentBlock] = []
    for item in content:
        if isinstance(item, str):
            blocks.append(TextBlock(text=item))
            continue
        if not isinstance(item, dict):
            continue

        block_type = item.get("type", "")
        if block_type == "text":
            blocks.append(TextBlock(text=str(item.get("text") or "")))
        elif block_type == "toolCall":
            arguments = item.get("arguments")
            blocks.append(ToolCallBlock(
                id=str(item.get("id") or ""),
                name=str(item.get("name") or ""),
                arguments=arguments if isinstance(arguments, dict) else {},
            ))
        elif block_type == "thinking":
            blocks.append(ThinkingBlock(thinking=str(item.get("thinking") or "")))
        elif "text" in item:
            # Some writers omit the type on plain text parts
            blocks.append(TextBlock(text=str(item.get("text") or "")))
        else:
            blocks.append(UnknownBlock(type=str(block_type), raw=item))
    return blocks


def parse_entry(data: dict) -> Entry:
    """Map one decoded log record to its entry variant."""
    kind = data.get("type")
    entry_id = _optional_str(data.get("id"))
    timestamp = _optional_str(data.get("timestamp"))

    if kind == "session":
        return SessionEntry(id=entry_id, timestamp=timestamp, raw=data, cwd=str(data.get("cwd") or ""))

    if kind == "message":
        msg = data.get("message")
        if not isinstance(msg, dict):
            msg = {}
        return MessageEntry(
            id=entry_id,
            timestamp=timestamp,
            raw=data,
            role=str(msg.get("role") or ""),
            content=parse_content(msg.get("content")),
            tool_call_id=_optional_str(msg.get("toolCallId")),
            tool_name=_optional_str(msg.get("toolName")),
            is_error=bool(msg.get("isError", False)),
        )

    if kind == "compaction":
        return CompactionEntry(id=entry_id, timestamp=timestamp, raw=data, summary=str(data.get("summary") or ""))

    if kind == "model_change":
        return ModelChangeEntry(
            id=entry_id,
            timestamp=timestamp,
            raw=data,
            model_id=str(data.get("modelId") or ""),
            provider=str(data.get("provider") or ""),
        )

    if kind == "thinking_level_change":
        return ThinkingLevelChangeEntry(
            id=entry_id,
            timestamp=timestamp,
            raw=data,
            thinking_level=str(data.get("thinkingLevel") or ""),
        )

    return UnknownEntry(kind=str(kind or ""), id=entry_id, timestamp=timestamp, raw=data)


def parse_log(text: str) -> list[Entry]:
    """Parse newline-delimited records, skipping lines that fail to decode.

    A malformed line never stops the rest of the log from being read, since
    logs may be read while they are still being appended to.
    """
    entries: list[Entry] = []
    skipped = 0
    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            skipped += 1
            continue
        if not isinstance(data, dict):
            skipped += 1
            continue
        entries.append(parse_entry(data))

    if skipped:
        logger.debug(f"Skipped {skipped} malformed log lines")
    return entries


def visible_entries(entries: Iterable[Entry]) -> list[Entry]:
    """All entries except structural session headers, in log order."""
    return [e for e in entries if e.kind != "session"]


def message_entries(entries: Iterable[Entry]) -> list[MessageEntry]:
    """Only message entries, in log order."""
    return [e for e in entries if isinstance(e, MessageEntry)]


def extract_text(content: list[ContentBlock], separator: str = "") -> str:
    """Concatenate the text blocks of a message's content."""
    return separator.join(b.text for b in content if isinstance(b, TextBlock))
