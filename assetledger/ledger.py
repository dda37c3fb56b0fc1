"""
In-memory collaborator ledger.

A single-node stand-in for the replicated ledger the contract runs against:
committed world state, per-key modification history, and transactions that
buffer their writes and apply them atomically on commit.

Semantics follow the collaborator's:
    - reads inside a transaction see committed state only (no read-your-writes)
    - a failed invocation's write set is discarded, so no partial writes survive
    - range queries skip composite keys (keys starting with U+0000)

Snapshots are canonical JSON, so two nodes that committed the same
transactions write byte-identical snapshot files and report the same
state digest.
"""

from __future__ import annotations

import base64
import pathlib
import threading
import uuid
from typing import Any, Dict, Iterator, List, Optional, Tuple

from assetledger.core import (
    canonical_digest,
    canonical_json_bytes,
    is_canonical_json_bytes,
    load_json,
    now_rfc3339,
    write_canonical_json,
)
from assetledger.errors import LedgerError
from assetledger.store import KeyModification, WorldStateBackend

SNAPSHOT_FORMAT = "assetledger.world-state.v1"
COMPOSITE_KEY_NAMESPACE = "\x00"


def _b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _unb64(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True)


class LedgerTransaction(WorldStateBackend):
    """One transaction against an ``InMemoryLedger``. Single use."""

    def __init__(self, ledger: "InMemoryLedger", tx_id: str, timestamp: str):
        self.ledger = ledger
        self.tx_id = tx_id
        self.timestamp = timestamp
        self._writes: Dict[str, Optional[bytes]] = {}
        self._done = False

    def _check_open(self) -> None:
        if self._done:
            raise LedgerError(f"transaction {self.tx_id} already completed")

    @property
    def write_set(self) -> Dict[str, Optional[bytes]]:
        """Pending writes; ``None`` marks a deletion."""
        return dict(self._writes)

    def get_state(self, key: str) -> Optional[bytes]:
        self._check_open()
        return self.ledger.get_committed(key)

    def put_state(self, key: str, value: bytes) -> None:
        self._check_open()
        self._writes[key] = bytes(value)

    def delete_state(self, key: str) -> None:
        self._check_open()
        self._writes[key] = None

    def get_state_by_range(self, start_key: str, end_key: str) -> Iterator[Tuple[str, bytes]]:
        self._check_open()
        return iter(self.ledger.committed_range(start_key, end_key))

    def get_history_for_key(self, key: str) -> Iterator[KeyModification]:
        self._check_open()
        return iter(self.ledger.history_for_key(key))

    def commit(self) -> None:
        """Apply the write set atomically."""
        self._check_open()
        self._done = True
        self.ledger.apply(self.tx_id, self.timestamp, self._writes)

    def discard(self) -> None:
        """Drop the write set."""
        self._done = True


class InMemoryLedger:
    """Thread-safe committed world state with per-key history."""

    def __init__(self):
        self._state: Dict[str, bytes] = {}
        self._history: Dict[str, List[KeyModification]] = {}
        self._lock = threading.RLock()

    def begin(self, tx_id: Optional[str] = None, timestamp: Optional[str] = None) -> LedgerTransaction:
        """Open a transaction."""
        return LedgerTransaction(self, tx_id or uuid.uuid4().hex, timestamp or now_rfc3339())

    def get_committed(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._state.get(key)

    def committed_range(self, start_key: str, end_key: str) -> List[Tuple[str, bytes]]:
        """Committed entries in [start_key, end_key), ascending, composite keys excluded."""
        with self._lock:
            keys = sorted(self._state)
            return [
                (k, self._state[k])
                for k in keys
                if not k.startswith(COMPOSITE_KEY_NAMESPACE)
                and k >= start_key
                and (not end_key or k < end_key)
            ]

    def history_for_key(self, key: str) -> List[KeyModification]:
        with self._lock:
            return list(reversed(self._history.get(key, [])))

    def apply(self, tx_id: str, timestamp: str, writes: Dict[str, Optional[bytes]]) -> None:
        """Apply a transaction's write set under the ledger lock."""
        with self._lock:
            for key, value in writes.items():
                if value is None:
                    self._state.pop(key, None)
                    mod = KeyModification(tx_id=tx_id, timestamp=timestamp, is_delete=True)
                else:
                    self._state[key] = value
                    mod = KeyModification(tx_id=tx_id, timestamp=timestamp, is_delete=False, value=value)
                self._history.setdefault(key, []).append(mod)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._state)

    def __len__(self) -> int:
        with self._lock:
            return len(self._state)

    def state_digest(self) -> str:
        """sha256 over the canonical encoding of the committed key/value map."""
        with self._lock:
            return canonical_digest({k: _b64(v) for k, v in self._state.items()})

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "format": SNAPSHOT_FORMAT,
                "state": {k: _b64(v) for k, v in self._state.items()},
                "history": {
                    k: [
                        {
                            "tx_id": m.tx_id,
                            "timestamp": m.timestamp,
                            "is_delete": m.is_delete,
                            "value": _b64(m.value),
                        }
                        for m in mods
                    ]
                    for k, mods in self._history.items()
                },
            }

    @classmethod
    def from_snapshot(cls, snap: Dict[str, Any]) -> "InMemoryLedger":
        if not isinstance(snap, dict) or snap.get("format") != SNAPSHOT_FORMAT:
            raise LedgerError(f"unsupported world-state snapshot (expected format {SNAPSHOT_FORMAT})")
        ledger = cls()
        try:
            for k, v in (snap.get("state") or {}).items():
                ledger._state[k] = _unb64(v)
            for k, mods in (snap.get("history") or {}).items():
                ledger._history[k] = [
                    KeyModification(
                        tx_id=str(m["tx_id"]),
                        timestamp=str(m["timestamp"]),
                        is_delete=bool(m["is_delete"]),
                        value=_unb64(m.get("value") or ""),
                    )
                    for m in mods
                ]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise LedgerError(f"corrupt world-state snapshot: {e}") from e
        return ledger

    def snapshot_bytes(self) -> bytes:
        return canonical_json_bytes(self.snapshot())

    def save(self, path: pathlib.Path) -> str:
        """Write the snapshot as canonical JSON, returning its digest."""
        return write_canonical_json(path, self.snapshot())

    @classmethod
    def load(cls, path: pathlib.Path, *, check_canonical: bool = True) -> "InMemoryLedger":
        """Load a snapshot file; a missing file yields an empty ledger."""
        path = pathlib.Path(path)
        if not path.exists():
            return cls()
        if check_canonical and not is_canonical_json_bytes(path.read_bytes()):
            raise LedgerError(f"world-state snapshot is not canonical JSON: {path}")
        return cls.from_snapshot(load_json(path))
