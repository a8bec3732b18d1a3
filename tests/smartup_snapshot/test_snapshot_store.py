"""
Tests for smartup_snapshot.store.

Covers capture/restore round trips, listing order, id generation, failure
handling and retention.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from smartup.smartup_snapshot import Snapshot, SnapshotMetadata, SnapshotStore
from smartup.smartup_utils.errors import ManifestUnreadable, SnapshotNotFound
from smartup.smartup_utils.file_store import LocalFileStore

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


class StepClock:
    """Returns BASE_TIME + n seconds on the n-th call."""

    def __init__(self, step: timedelta = timedelta(seconds=1)) -> None:
        self.step = step
        self.calls = 0

    def __call__(self) -> datetime:
        moment = BASE_TIME + self.step * self.calls
        self.calls += 1
        return moment


class FailingMetadataStore(LocalFileStore):
    """Fails when the metadata record is written."""

    def write_bytes(self, path, data: bytes) -> None:
        if str(path).endswith("metadata.json"):
            raise OSError("disk full")
        super().write_bytes(path, data)


@pytest.fixture
def store(tmp_path):
    return SnapshotStore(LocalFileStore(tmp_path), clock=StepClock())


class TestCaptureRestore:
    """Capture followed by restore."""

    def test_round_trip_is_byte_identical(self, tmp_path, store, write_manifest) -> None:
        original = '{\n\t"name":  "démo-项目",\r\n  "dependencies": {"axios": "^1.0.0"}   \n}\n\n'.encode("utf-8")
        lock = b'{"lockfileVersion": 3}'
        write_manifest(original)
        write_manifest(lock, "package-lock.json")

        snapshot_id = store.capture(["axios"])
        write_manifest({"name": "changed"})
        write_manifest(b"{}", "package-lock.json")

        assert store.restore(snapshot_id) is True
        assert (tmp_path / "package.json").read_bytes() == original
        assert (tmp_path / "package-lock.json").read_bytes() == lock

    def test_restore_is_idempotent(self, tmp_path, store, write_manifest) -> None:
        write_manifest({"name": "demo"})
        snapshot_id = store.capture([])
        store.restore(snapshot_id)
        first = (tmp_path / "package.json").read_bytes()
        store.restore(snapshot_id)
        assert (tmp_path / "package.json").read_bytes() == first

    def test_lock_file_is_optional(self, tmp_path, store, write_manifest) -> None:
        write_manifest({"name": "demo"})
        snapshot_id = store.capture(["demo"])
        snapshot = store.get(snapshot_id)
        assert snapshot is not None
        assert snapshot.has_lock_file is False

        # A lock file created later is left untouched by restore
        write_manifest(b"new lock", "package-lock.json")
        store.restore(snapshot_id)
        assert (tmp_path / "package-lock.json").read_bytes() == b"new lock"

    def test_capture_without_manifest_fails(self, store) -> None:
        with pytest.raises(ManifestUnreadable):
            store.capture(["axios"])
        assert store.list() == []

    def test_metadata_is_written(self, tmp_path, store, write_manifest) -> None:
        write_manifest({"name": "demo"})
        snapshot_id = store.capture(["axios", "lodash"])
        metadata_path = tmp_path / ".smart-updater" / "snapshots" / snapshot_id / "metadata.json"
        metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
        assert metadata == {
            "id": snapshot_id,
            "timestamp": "2024-05-01T12:00:00.123456Z",
            "packages": ["axios", "lodash"],
            "success": True,
        }

    def test_failed_capture_leaves_nothing_listable(self, tmp_path, write_manifest) -> None:
        write_manifest({"name": "demo"})
        failing = SnapshotStore(FailingMetadataStore(tmp_path), clock=StepClock())
        with pytest.raises(OSError):
            failing.capture(["axios"])
        assert failing.list() == []
        assert list((tmp_path / ".smart-updater" / "snapshots").iterdir()) == []


class TestRestoreErrors:
    """restore() failure modes."""

    def test_unknown_snapshot(self, store) -> None:
        with pytest.raises(SnapshotNotFound):
            store.restore("snapshot-does-not-exist")

    @pytest.mark.parametrize("snapshot_id", ["", ".", "..", "../etc", "a/b"])
    def test_rejects_path_like_ids(self, store, snapshot_id: str) -> None:
        with pytest.raises(SnapshotNotFound):
            store.restore(snapshot_id)
        assert store.get(snapshot_id) is None

    def test_directory_without_manifest(self, tmp_path, store) -> None:
        (tmp_path / ".smart-updater" / "snapshots" / "snapshot-empty").mkdir(parents=True)
        with pytest.raises(SnapshotNotFound):
            store.restore("snapshot-empty")


class TestListing:
    """list() and get()."""

    def test_newest_first(self, store, write_manifest) -> None:
        write_manifest({"name": "demo"})
        ids = [store.capture([name]) for name in ("a", "b", "c")]
        listed = store.list()
        assert [s.id for s in listed] == list(reversed(ids))
        assert [s.packages for s in listed] == [("c",), ("b",), ("a",)]

    def test_ids_sort_like_capture_order(self, store, write_manifest) -> None:
        write_manifest({"name": "demo"})
        ids = [store.capture([]) for _ in range(3)]
        assert ids == sorted(ids)
        assert all(i.startswith("snapshot-2024-05-01T12-00-") for i in ids)

    def test_same_clock_reading_gets_sequence_suffix(self, tmp_path, write_manifest) -> None:
        write_manifest({"name": "demo"})
        frozen = SnapshotStore(LocalFileStore(tmp_path), clock=lambda: BASE_TIME)
        first = frozen.capture(["a"])
        second = frozen.capture(["b"])
        third = frozen.capture(["c"])
        assert second == f"{first}-001"
        assert third == f"{first}-002"
        assert [s.id for s in frozen.list()] == [third, second, first]

    def test_corrupt_metadata_is_skipped(self, tmp_path, store, write_manifest) -> None:
        write_manifest({"name": "demo"})
        good = store.capture(["ok"])
        root = tmp_path / ".smart-updater" / "snapshots"
        broken = root / "snapshot-broken"
        broken.mkdir()
        (broken / "package.json").write_text("{}")
        (broken / "metadata.json").write_text("{not json")
        missing = root / "snapshot-missing"
        missing.mkdir()
        (missing / "package.json").write_text("{}")

        assert [s.id for s in store.list()] == [good]
        assert store.get("snapshot-broken") is None

    def test_get_returns_captured_files(self, store, write_manifest) -> None:
        write_manifest(b'{"name": "demo"}')
        write_manifest(b"lock", "package-lock.json")
        snapshot_id = store.capture(["demo"])
        snapshot = store.get(snapshot_id)
        assert isinstance(snapshot, Snapshot)
        assert snapshot.timestamp == BASE_TIME
        assert snapshot.captured_files == {
            "package.json": b'{"name": "demo"}',
            "package-lock.json": b"lock",
        }

    def test_get_unknown(self, store) -> None:
        assert store.get("snapshot-unknown") is None


class TestRetention:
    """delete() and prune()."""

    def test_delete(self, store, write_manifest) -> None:
        write_manifest({"name": "demo"})
        snapshot_id = store.capture([])
        assert store.delete(snapshot_id) is True
        assert store.get(snapshot_id) is None
        assert store.delete(snapshot_id) is False

    def test_prune_keeps_newest(self, store, write_manifest) -> None:
        write_manifest({"name": "demo"})
        ids = [store.capture([]) for _ in range(4)]
        removed = store.prune(2)
        assert sorted(removed) == ids[:2]
        assert [s.id for s in store.list()] == [ids[3], ids[2]]

    def test_prune_rejects_negative(self, store) -> None:
        with pytest.raises(ValueError):
            store.prune(-1)


class TestSnapshotMetadata:
    """Validation of stored metadata records."""

    def test_round_trip(self) -> None:
        metadata = SnapshotMetadata(id="snapshot-x", timestamp="2024-01-01T00:00:00.000Z", packages=("a",))
        assert SnapshotMetadata.from_dict(metadata.to_dict()) == metadata

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"timestamp": "t", "success": True},
            {"id": "x", "timestamp": "t", "packages": "a", "success": True},
            {"id": "x", "timestamp": "t", "packages": [], "success": "yes"},
        ],
    )
    def test_rejects_invalid(self, data) -> None:
        with pytest.raises(ValueError):
            SnapshotMetadata.from_dict(data)
