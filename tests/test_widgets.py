"""Tests for entry rendering."""

from session_threads.models import DangerHit
from session_threads.parser import parse_entry
from session_threads.ui.widgets import build_entry_text, truncate


def message(role, content, **extra):
    msg = {"role": role, "content": content}
    msg.update(extra)
    return parse_entry({"type": "message", "id": "m1", "message": msg})


class TestBuildEntryText:
    """Tests for the generic entry renderer."""

    def test_user_message(self):
        """Test a user message block."""
        text = build_entry_text(message("user", "Fix the login bug"))
        assert "User" in text.plain
        assert "Fix the login bug" in text.plain

    def test_read_message_is_marked(self):
        """Test read messages carry a check mark."""
        text = build_entry_text(message("assistant", "Done"), is_read=True)
        assert "✓ Assistant" in text.plain

    def test_tool_call(self):
        """Test tool calls show name and arguments."""
        entry = message("assistant", [
            {"type": "toolCall", "id": "c1", "name": "sessions_spawn", "arguments": {"task": "Write docs"}},
        ])
        text = build_entry_text(entry)
        assert "🔧 sessions_spawn" in text.plain
        assert "Write docs" in text.plain

    def test_tool_result_truncated_unless_expanded(self):
        """Test long tool results are cut unless expanded."""
        entry = message("toolResult", [{"type": "text", "text": "x" * 2000}], toolName="exec")
        collapsed = build_entry_text(entry)
        expanded = build_entry_text(entry, expanded=True)
        assert "Tool Result: exec" in collapsed.plain
        assert "x" * 2000 not in collapsed.plain
        assert "x" * 2000 in expanded.plain

    def test_dangers(self):
        """Test danger hits render as warning lines."""
        hit = DangerHit(entry_id="m1", rule="rm -rf", severity="critical", snippet="rm -rf /tmp/build")
        text = build_entry_text(message("assistant", "cleaning"), dangers=[hit])
        assert "⚠ rm -rf" in text.plain

    def test_system_entries(self):
        """Test compaction, model and thinking level lines."""
        compaction = build_entry_text(parse_entry({"type": "compaction", "summary": "Earlier: set up CI"}))
        model = build_entry_text(parse_entry({"type": "model_change", "modelId": "claude-opus"}))
        thinking = build_entry_text(parse_entry({"type": "thinking_level_change"}))
        assert "Compaction" in compaction.plain
        assert "Earlier: set up CI" in compaction.plain
        assert model.plain == "Model → claude-opus"
        assert thinking.plain == "Thinking → ?"

    def test_unknown_entry_renders_nothing(self):
        """Test unknown entries have no display."""
        assert build_entry_text(parse_entry({"type": "custom_event", "id": "u"})) is None


def test_truncate():
    """Test truncation with ellipsis."""
    assert truncate("short", 10) == "short"
    assert truncate("a" * 20, 10) == "aaaaaaa..."
