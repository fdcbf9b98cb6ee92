"""Read/unread position tracking against a stored watermark."""

from typing import Optional, Sequence

from .models import Entry, MessageEntry, ReadProgress, ReadState


def compute_read_ids(visible: Sequence[Entry], watermark_id: Optional[str]) -> frozenset:
    """Ids of the visible prefix up to and including the watermark entry.

    Empty when there is no watermark or it matches nothing visible.
    """
    if not watermark_id:
        return frozenset()

    read: set[str] = set()
    for entry in visible:
        if entry.id is not None:
            read.add(entry.id)
        if entry.id == watermark_id:
            return frozenset(read)
    return frozenset()


def read_message_count(messages: Sequence[MessageEntry], watermark_id: Optional[str]) -> int:
    """1-based position of the watermark among messages, 0 if not found."""
    if not watermark_id:
        return 0
    for position, msg in enumerate(messages, 1):
        if msg.id == watermark_id:
            return position
    return 0


def compute_read_state(
    visible: Sequence[Entry],
    messages: Sequence[MessageEntry],
    watermark_id: Optional[str],
) -> ReadState:
    watermark_id = watermark_id or None
    return ReadState(
        watermark_id=watermark_id,
        read_ids=compute_read_ids(visible, watermark_id),
        read_message_count=read_message_count(messages, watermark_id),
        total_message_count=len(messages),
        last_message_id=messages[-1].id if messages else None,
    )


def format_read_marker(progress: Optional[ReadProgress]) -> str:
    """Text of the "last read" marker line."""
    if progress and progress.last_read_at:
        return f"Last read · {progress.last_read_at.astimezone().strftime('%Y-%m-%d %H:%M:%S')}"
    return "Last read"
