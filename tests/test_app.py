"""Tests for the TUI application."""

import asyncio
import json
import threading

import pytest

from session_threads.app import SessionThreadsApp
from session_threads.cache import ProgressStore
from session_threads.sources.openclaw import OpenClawSource


class RecordingSource(OpenClawSource):
    """OpenClaw source that remembers which thread scanned for spawns."""

    def __init__(self, sessions_dir):
        super().__init__(sessions_dir=sessions_dir)
        self.registry_thread = None

    def load_spawn_registry(self):
        self.registry_thread = threading.get_ident()
        return super().load_spawn_registry()


class TestSessionThreadsApp:
    """Tests for app startup."""

    @pytest.fixture
    def source(self, tmp_path):
        """Create a sessions directory holding one short session."""
        sessions = tmp_path / "sessions"
        sessions.mkdir()
        records = [
            {"type": "session", "id": "hdr"},
            {"type": "message", "id": "u1", "message": {"role": "user", "content": "hello"}},
            {"type": "message", "id": "a1", "message": {"role": "assistant", "content": "hi"}},
        ]
        (sessions / "main-id.jsonl").write_text("\n".join(json.dumps(r) for r in records) + "\n")
        return RecordingSource(sessions)

    def test_registry_scanned_off_event_loop(self, source, tmp_path):
        """Test the spawn registry is built in a worker thread before the root view mounts."""
        app = SessionThreadsApp(source, "main-id", store=ProgressStore(tmp_path / "progress.json"))

        async def scenario():
            async with app.run_test() as pilot:
                await app.workers.wait_for_complete()
                await pilot.pause()
                await app.workers.wait_for_complete()
                await pilot.pause()
                return len(app.query("#root-block"))

        mounted = asyncio.run(scenario())

        assert source.registry_thread is not None
        assert source.registry_thread != threading.main_thread().ident
        assert mounted == 1
        assert app.root_view.key == "main-id"
        assert [e.id for e in app.root_view.visible] == ["u1", "a1"]
