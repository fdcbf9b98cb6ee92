"""Tests for read-position tracking."""

from datetime import datetime, timezone

import pytest

from session_threads.models import ReadProgress
from session_threads.parser import message_entries, parse_log, visible_entries
from session_threads.progress import (
    compute_read_ids,
    compute_read_state,
    format_read_marker,
    read_message_count,
)


TWO_MESSAGES = (
    '{"id":"1","type":"message","message":{"role":"user"}}\n'
    '{"id":"2","type":"message","message":{"role":"assistant"}}'
)

MIXED = "\n".join([
    '{"type":"session","id":"s"}',
    '{"id":"1","type":"message","message":{"role":"user"}}',
    '{"id":"c","type":"compaction","summary":"earlier work"}',
    '{"type":"model_change","modelId":"m"}',
    '{"id":"2","type":"message","message":{"role":"assistant"}}',
    '{"id":"3","type":"message","message":{"role":"user"}}',
    '{"id":"4","type":"message","message":{"role":"assistant"}}',
])


def state_for(raw: str, watermark):
    entries = parse_log(raw)
    return compute_read_state(visible_entries(entries), message_entries(entries), watermark)


class TestScenarios:
    """Read state for a two-message log."""

    def test_no_watermark(self):
        """Test nothing is read without a watermark."""
        entries = parse_log(TWO_MESSAGES)
        assert len(visible_entries(entries)) == 2
        assert len(message_entries(entries)) == 2

        state = state_for(TWO_MESSAGES, None)
        assert state.read_ids == frozenset()
        assert state.read_message_count == 0
        assert state.unread_message_count == 2

    def test_watermark_on_first(self):
        """Test a watermark on the first message."""
        state = state_for(TWO_MESSAGES, "1")
        assert state.read_ids == {"1"}
        assert state.read_message_count == 1
        assert state.unread_message_count == 1

        first, second = visible_entries(parse_log(TWO_MESSAGES))
        assert state.shows_marker_after(first)
        assert not state.shows_marker_after(second)

    def test_watermark_on_last(self):
        """Test a watermark on the last message hides the marker."""
        state = state_for(TWO_MESSAGES, "2")
        assert state.read_message_count == 2
        assert state.unread_message_count == 0
        assert not any(state.shows_marker_after(e) for e in visible_entries(parse_log(TWO_MESSAGES)))


class TestReadIds:
    """Tests for the read prefix."""

    def test_prefix_includes_non_messages(self):
        """Test system entries before the watermark count as read."""
        state = state_for(MIXED, "2")
        assert state.read_ids == {"1", "c", "2"}
        assert state.read_message_count == 2
        assert state.total_message_count == 4

    def test_session_entries_are_never_read(self):
        """Test session headers are outside the read set."""
        visible = visible_entries(parse_log(MIXED))
        assert "s" not in compute_read_ids(visible, "4")

    def test_unknown_watermark(self):
        """Test a watermark matching no entry reads nothing."""
        state = state_for(MIXED, "gone")
        assert state.read_ids == frozenset()
        assert state.read_message_count == 0
        assert state.unread_message_count == 4

    def test_empty_string_watermark(self):
        """Test an empty watermark counts as absent."""
        state = state_for(MIXED, "")
        assert state.watermark_id is None
        assert state.read_ids == frozenset()

    def test_watermark_on_non_message(self):
        """Test a watermark on a system entry."""
        state = state_for(MIXED, "c")
        assert state.read_ids == {"1", "c"}
        assert state.read_message_count == 0
        assert state.unread_message_count == 4

    def test_is_read(self):
        """Test per-entry read flags."""
        visible = visible_entries(parse_log(MIXED))
        state = state_for(MIXED, "2")
        flags = [state.is_read(e) for e in visible]
        # 1, c, model_change (no id), 2, 3, 4
        assert flags == [True, True, False, True, False, False]


class TestCounts:
    """Tests for read message counts."""

    @pytest.fixture
    def messages(self):
        return message_entries(parse_log(MIXED))

    def test_monotonic(self, messages):
        """Test later watermarks never read fewer messages."""
        counts = [read_message_count(messages, m.id) for m in messages]
        assert counts == sorted(counts)
        assert counts == [1, 2, 3, 4]

    def test_unread_never_negative(self, messages):
        """Test unread count is clamped at zero."""
        for m in messages:
            state = compute_read_state(messages, messages, m.id)
            assert state.unread_message_count >= 0

    def test_idempotent(self):
        """Test the same inputs give the same state."""
        assert state_for(MIXED, "3") == state_for(MIXED, "3")


class TestMarkerText:
    """Tests for the last-read marker label."""

    def test_without_time(self):
        """Test marker text without a timestamp."""
        assert format_read_marker(None) == "Last read"
        assert format_read_marker(ReadProgress(last_read_id="1")) == "Last read"

    def test_with_time(self):
        """Test marker text with a timestamp."""
        progress = ReadProgress(last_read_id="1", last_read_at=datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc))
        text = format_read_marker(progress)
        assert text.startswith("Last read · 2025-03-0")
