import json

from conftest import T0, sample_at

from tracking.models import SessionState
from tracking.persistence import (
    SCHEMA_VERSION,
    FileKeyValueStore,
    InMemoryKeyValueStore,
    SessionSnapshotStore,
)
from tracking.state_machine import close_session, open_session, record_sample


class BrokenStore:
    """A store whose disk is full."""

    def get(self, key):
        raise OSError("I/O error")

    def set(self, key, value):
        raise OSError("No space left on device")

    def delete(self, key):
        raise OSError("I/O error")


def make_active_session(delhi_points):
    session = open_session("emp-42", T0)
    for sample in delhi_points:
        record_sample(session, sample)
    return session


def test_snapshot_round_trip(delhi_points):
    snapshots = SessionSnapshotStore(InMemoryKeyValueStore())
    session = make_active_session(delhi_points)

    assert snapshots.save(session)
    assert snapshots.is_enabled("emp-42")

    restored = snapshots.load("emp-42")
    assert restored.id == session.id
    assert restored.state == SessionState.ACTIVE
    assert restored.route == session.route
    assert restored.total_distance_m == session.total_distance_m
    assert restored.start_time == session.start_time


def test_keys_are_namespaced_and_versioned():
    store = InMemoryKeyValueStore()
    snapshots = SessionSnapshotStore(store)
    snapshots.save(open_session("emp-42", T0))

    assert sorted(store.keys()) == [
        f"fieldroute/v{SCHEMA_VERSION}/emp-42/enabled",
        f"fieldroute/v{SCHEMA_VERSION}/emp-42/session",
    ]


def test_clear_removes_everything_for_employee():
    store = InMemoryKeyValueStore()
    snapshots = SessionSnapshotStore(store)
    snapshots.save(open_session("emp-42", T0))
    snapshots.save(open_session("emp-7", T0))

    snapshots.clear("emp-42")

    assert not snapshots.is_enabled("emp-42")
    assert snapshots.load("emp-42") is None
    assert snapshots.is_enabled("emp-7")


def test_other_schema_version_is_ignored():
    store = InMemoryKeyValueStore()
    snapshots = SessionSnapshotStore(store)
    session = open_session("emp-42", T0)
    snapshots.save(session)

    payload = {"schema_version": SCHEMA_VERSION + 1, "session": session.to_dict()}
    store.set(snapshots.session_key("emp-42"), json.dumps(payload).encode("utf-8"))

    assert snapshots.load("emp-42") is None


def test_corrupt_snapshot_is_ignored():
    store = InMemoryKeyValueStore()
    snapshots = SessionSnapshotStore(store)
    store.set(snapshots.session_key("emp-42"), b"{not json")
    assert snapshots.load("emp-42") is None


def test_completed_snapshot_is_not_resumable(delhi_points):
    snapshots = SessionSnapshotStore(InMemoryKeyValueStore())
    session = make_active_session(delhi_points)
    close_session(session, T0)
    snapshots.save(session)
    assert snapshots.load("emp-42") is None


def test_store_failures_are_not_fatal():
    snapshots = SessionSnapshotStore(BrokenStore())
    session = open_session("emp-42", T0)

    assert snapshots.save(session) is False
    assert snapshots.load("emp-42") is None
    assert snapshots.is_enabled("emp-42") is False
    assert snapshots.clear("emp-42") is False


def test_file_store_survives_new_instance(tmp_path, delhi_points):
    SessionSnapshotStore(FileKeyValueStore(tmp_path)).save(make_active_session(delhi_points))

    reopened = SessionSnapshotStore(FileKeyValueStore(tmp_path))
    restored = reopened.load("emp-42")

    assert restored is not None
    assert len(restored.route) == 3
    # no temp files left behind
    assert not list(tmp_path.glob("*.tmp"))


def test_file_store_delete_missing_key_is_noop(tmp_path):
    store = FileKeyValueStore(tmp_path)
    store.delete("nothing/here")
    assert store.get("nothing/here") is None


def test_placeholder_start_survives_round_trip():
    snapshots = SessionSnapshotStore(InMemoryKeyValueStore())
    session = open_session("emp-42", T0)
    snapshots.save(session)

    restored = snapshots.load("emp-42")
    assert restored.start_location_pending
    assert restored.start_location.is_placeholder
    assert restored.route == []


def test_accuracy_is_preserved():
    snapshots = SessionSnapshotStore(InMemoryKeyValueStore())
    session = open_session("emp-42", T0)
    record_sample(session, sample_at(0, 28.61, 77.20, accuracy=12.5))
    snapshots.save(session)
    assert snapshots.load("emp-42").route[0].accuracy == 12.5


class QuotaStore:
    def get(self, key):
        raise RuntimeError("quota exceeded")

    def set(self, key, value):
        raise RuntimeError("quota exceeded")

    def delete(self, key):
        raise RuntimeError("quota exceeded")


def test_non_os_store_errors_are_contained():
    snapshots = SessionSnapshotStore(QuotaStore())
    session = open_session("emp-42", T0)

    assert snapshots.save(session) is False
    assert snapshots.is_enabled("emp-42") is False
    assert snapshots.load("emp-42") is None
    assert snapshots.clear("emp-42") is False
