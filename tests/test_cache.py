"""Tests for read progress persistence."""

import json
from datetime import datetime, timezone

from session_threads.cache import ProgressStore


class TestProgressStore:
    """Tests for the JSON-backed watermark store."""

    def test_empty_store(self, tmp_path):
        """Test a missing file gives an empty store."""
        store = ProgressStore(tmp_path / "progress.json")
        assert len(store) == 0
        assert store.get("agent:main") is None

    def test_mark_read_and_reload(self, tmp_path):
        """Test a saved watermark survives a reload."""
        path = tmp_path / "nested" / "progress.json"
        store = ProgressStore(path)
        at = datetime(2025, 6, 1, 8, 30, tzinfo=timezone.utc)
        store.mark_read("agent:main", "m42", at=at)
        store.save()

        reloaded = ProgressStore(path)
        progress = reloaded.get("agent:main")
        assert progress.last_read_id == "m42"
        assert progress.last_read_at == at
        assert json.loads(path.read_text())["agent:main"]["lastReadId"] == "m42"

    def test_save_only_when_dirty(self, tmp_path):
        """Test saving an untouched store writes nothing."""
        path = tmp_path / "progress.json"
        ProgressStore(path).save()
        assert not path.exists()

    def test_millisecond_timestamps(self, tmp_path):
        """Test epoch millisecond times are accepted."""
        path = tmp_path / "progress.json"
        path.write_text(json.dumps({"k": {"lastReadId": "1", "lastReadAt": 1700000000000}}))
        progress = ProgressStore(path).get("k")
        assert progress.last_read_at == datetime.fromtimestamp(1700000000, tz=timezone.utc)

    def test_out_of_range_timestamp(self, tmp_path):
        """Test an absurd numeric lastReadAt keeps the watermark and drops the time."""
        path = tmp_path / "progress.json"
        path.write_text(json.dumps({"k": {"lastReadId": "p1", "lastReadAt": 1e20}}))
        progress = ProgressStore(path).get("k")
        assert progress.last_read_id == "p1"
        assert progress.last_read_at is None

    def test_corrupt_file(self, tmp_path):
        """Test an unreadable file loads as empty."""
        path = tmp_path / "progress.json"
        path.write_text("{not json")
        store = ProgressStore(path)
        assert len(store) == 0

    def test_clear(self, tmp_path):
        """Test clearing removes every watermark."""
        path = tmp_path / "progress.json"
        store = ProgressStore(path)
        store.mark_read("a", "1")
        store.mark_read("b", "2")
        assert sorted(store.keys()) == ["a", "b"]
        store.clear()
        store.save()
        assert len(ProgressStore(path)) == 0
