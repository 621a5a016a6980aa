"""Tests for state persistence."""

import threading

import joblib
import pytest

from edgework.errors import StateError
from edgework.models import DistributionState, DistributionStatus, ResourceId
from edgework.state import FileStateStore, MemoryStateStore, StateFile


def anchor(distribution_id: str = "dist") -> DistributionState:
    return DistributionState.anchor(ResourceId(project_id="proj", distribution_id=distribution_id))


class TestMemoryStateStore:
    def test_starts_empty(self):
        assert MemoryStateStore().read() is None

    def test_commit_and_clear_are_recorded(self):
        store = MemoryStateStore()
        store.commit(anchor())
        store.clear()
        assert store.history == [anchor(), None]
        assert store.read() is None

    def test_reads_are_copies(self):
        store = MemoryStateStore(anchor())
        state = store.read()
        state.status = DistributionStatus.ACTIVE
        assert store.read().status is None

    def test_seed_is_not_recorded(self):
        store = MemoryStateStore(anchor())
        assert store.history == []
        assert store.read() == anchor()


class TestStateFile:
    def test_missing_file_is_empty(self, temp_dir):
        state_file = StateFile(temp_dir / "state.joblib")
        assert state_file.names() == []
        assert state_file.get("web") is None

    def test_put_persists_across_instances(self, temp_dir):
        path = temp_dir / "nested" / "state.joblib"
        StateFile(path).put("web", anchor())

        reloaded = StateFile(path)
        assert reloaded.names() == ["web"]
        assert reloaded.get("web") == anchor()
        assert not path.with_suffix(".tmp").exists()

    def test_remove(self, temp_dir):
        state_file = StateFile(temp_dir / "state.joblib")
        state_file.put("web", anchor())
        assert state_file.remove("web") is True
        assert state_file.remove("web") is False
        assert StateFile(temp_dir / "state.joblib").names() == []

    def test_corrupt_file_raises(self, temp_dir):
        path = temp_dir / "state.joblib"
        path.write_bytes(b"definitely not a joblib pickle")
        with pytest.raises(StateError):
            StateFile(path)

    def test_unexpected_format_raises(self, temp_dir):
        path = temp_dir / "state.joblib"
        joblib.dump(["not", "a", "dict"], path)
        with pytest.raises(StateError, match="unexpected format"):
            StateFile(path)


    def test_instances_sharing_a_file_keep_each_others_entries(self, temp_dir):
        path = temp_dir / "state.joblib"
        first = StateFile(path)
        second = StateFile(path)

        first.put("alpha", anchor("a"))
        second.put("beta", anchor("b"))

        assert StateFile(path).names() == ["alpha", "beta"]
        assert second.get("alpha") == anchor("a")

        first.remove("beta")
        assert second.names() == ["alpha"]

    def test_concurrent_writers_lose_nothing(self, temp_dir):
        path = temp_dir / "state.joblib"

        def write(prefix):
            state_file = StateFile(path)
            for i in range(20):
                state_file.put(f"{prefix}-{i}", anchor(f"{prefix}-{i}"))

        threads = [threading.Thread(target=write, args=(prefix,)) for prefix in ("a", "b")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(StateFile(path).names()) == 40


class TestFileStateStore:
    def test_slots_are_independent(self, temp_dir):
        state_file = StateFile(temp_dir / "state.joblib")
        web = state_file.slot("web")
        api = state_file.slot("api")

        web.commit(anchor("web-dist"))
        api.commit(anchor("api-dist"))
        web.clear()

        assert isinstance(web, FileStateStore)
        assert web.read() is None
        assert api.read().distribution_id == "api-dist"

    def test_full_state_replaces_anchor(self, temp_dir, active_state):
        store = StateFile(temp_dir / "state.joblib").slot("web")
        store.commit(anchor())
        store.commit(active_state)
        assert StateFile(temp_dir / "state.joblib").get("web") == active_state
