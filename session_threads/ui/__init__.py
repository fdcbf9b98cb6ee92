"""UI components for Session Threads."""

from .widgets import (
    BlockHeader,
    ConversationBlock,
    EntryWidget,
    build_entry_text,
)
from .styles import APP_CSS

__all__ = [
    "BlockHeader",
    "ConversationBlock",
    "EntryWidget",
    "build_entry_text",
    "APP_CSS",
]
