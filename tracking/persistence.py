"""
Purpose: Crash-recovery persistence for the Active session.
What it does:
- KeyValueStore: the durable byte store the core is given (get/set/delete)
- InMemoryKeyValueStore / FileKeyValueStore: two concrete stores
- SessionSnapshotStore: typed, versioned keys on top of any KeyValueStore

Keys live under fieldroute/v{SCHEMA_VERSION}/{employee_id}/... so nothing
else sharing the store can collide with them.

Store failures of any kind are logged and reported as False/None. The in-memory session
stays authoritative for the rest of the process lifetime.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol
from urllib.parse import quote

from .models import SessionState, TrackingSession

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
NAMESPACE = "fieldroute"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store. Survives a manager being recreated, not the process."""

    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self):
        with self._lock:
            return list(self._data)


class FileKeyValueStore:
    """
    One file per key under a root directory.
    Writes go to a temp file first and are swapped in with os.replace.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / quote(key, safe="")

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def set(self, key: str, value: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(value)
        os.replace(tmp_path, path)

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()


class SessionSnapshotStore:
    """
    What must survive a restart while Active: the tracking-enabled flag,
    start time, accumulated route and accumulated distance (all carried in
    the session snapshot).
    """

    def __init__(self, store: KeyValueStore, namespace: str = NAMESPACE):
        self.store = store
        self.namespace = namespace

    def _key(self, employee_id: str, field_name: str) -> str:
        return f"{self.namespace}/v{SCHEMA_VERSION}/{employee_id}/{field_name}"

    def enabled_key(self, employee_id: str) -> str:
        return self._key(employee_id, "enabled")

    def session_key(self, employee_id: str) -> str:
        return self._key(employee_id, "session")

    def save(self, session: TrackingSession) -> bool:
        payload = {
            "schema_version": SCHEMA_VERSION,
            "session": session.to_dict(),
        }
        try:
            encoded = json.dumps(payload).encode("utf-8")
            self.store.set(self.session_key(session.employee_id), encoded)
            self.store.set(self.enabled_key(session.employee_id), b"1")
        except Exception as exc:
            # the backend may raise its own error types; none of them are fatal
            logger.warning("Could not persist session %s: %s", session.id, exc)
            return False
        return True

    def is_enabled(self, employee_id: str) -> bool:
        try:
            return self.store.get(self.enabled_key(employee_id)) == b"1"
        except Exception as exc:
            logger.warning("Could not read tracking flag for %s: %s", employee_id, exc)
            return False

    def load(self, employee_id: str) -> Optional[TrackingSession]:
        """
        The persisted Active session, or None if there is none or it cannot
        be decoded. Snapshots from another schema version are ignored.
        """
        try:
            raw = self.store.get(self.session_key(employee_id))
        except Exception as exc:
            logger.warning("Could not read session snapshot for %s: %s", employee_id, exc)
            return None
        if raw is None:
            return None

        try:
            payload = json.loads(raw.decode("utf-8"))
            version = payload.get("schema_version")
            if version != SCHEMA_VERSION:
                logger.warning(
                    "Ignoring session snapshot for %s with schema version %r (expected %d)",
                    employee_id, version, SCHEMA_VERSION,
                )
                return None
            session = TrackingSession.from_dict(payload["session"])
        except (UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning("Corrupt session snapshot for %s: %s", employee_id, exc)
            return None

        if session.state != SessionState.ACTIVE or session.employee_id != employee_id:
            logger.warning("Session snapshot for %s is not an active session; ignoring", employee_id)
            return None
        return session

    def clear(self, employee_id: str) -> bool:
        ok = True
        for key in (self.session_key(employee_id), self.enabled_key(employee_id)):
            try:
                self.store.delete(key)
            except Exception as exc:
                logger.warning("Could not delete %s: %s", key, exc)
                ok = False
        return ok
