"""
State Store Adapter

The sole path through which the contract reads or writes world state. It
abstracts the collaborator ledger's key-value API:

    StateStore.get(key)                   -> Optional[bytes]
    StateStore.put(key, value)
    StateStore.delete(key)
    StateStore.range_scan(start, end)     -> StateQueryIterator[KeyValue]
    StateStore.history(key)               -> StateQueryIterator[KeyModification]

Collaborator faults are surfaced as ``StoreUnavailable``; the adapter holds
no locks and performs no retries. Atomicity of a transaction's writes is the
collaborator's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterator, Optional, Tuple, TypeVar

from assetledger.errors import LedgerError, StoreUnavailable

T = TypeVar("T")


@dataclass(frozen=True)
class KeyValue:
    """One entry of a range scan."""
    key: str
    value: bytes


@dataclass(frozen=True)
class KeyModification:
    """One entry of a key's modification history."""
    tx_id: str
    timestamp: str
    is_delete: bool
    value: bytes = b""


class WorldStateBackend(ABC):
    """Key-value primitives offered by the collaborator ledger."""

    @abstractmethod
    def get_state(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None/empty when absent."""

    @abstractmethod
    def put_state(self, key: str, value: bytes) -> None:
        """Upsert a value."""

    @abstractmethod
    def delete_state(self, key: str) -> None:
        """Remove a key."""

    @abstractmethod
    def get_state_by_range(self, start_key: str, end_key: str) -> Iterator[Tuple[str, bytes]]:
        """Yield (key, value) for keys in [start_key, end_key), ascending."""

    def get_history_for_key(self, key: str) -> Iterator[KeyModification]:
        """Yield a key's modifications, newest first."""
        raise NotImplementedError("history queries are not supported by this backend")


class StateQueryIterator(Generic[T]):
    """
    Finite, forward-only, non-restartable sequence over a collaborator query.

    Must be drained or explicitly closed to release the collaborator's
    iteration state. Usable as a context manager:

        with stub.range_scan() as results:
            for kv in results:
                ...

    Iterating a closed iterator yields nothing.
    """

    def __init__(
        self,
        source: Iterator[Any],
        *,
        operation: str = "range_scan",
        transform: Optional[Callable[[Any], T]] = None,
    ):
        self._source = source
        self._operation = operation
        self._transform = transform
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> "StateQueryIterator[T]":
        return self

    def __next__(self) -> T:
        if self._closed:
            raise StopIteration
        try:
            item = next(self._source)
        except StopIteration:
            self.close()
            raise
        except LedgerError:
            self.close()
            raise
        except Exception as e:
            self.close()
            raise StoreUnavailable(self._operation, cause=e) from e
        return self._transform(item) if self._transform else item

    def close(self) -> None:
        """Release the underlying query. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        close = getattr(self._source, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "StateQueryIterator[T]":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def _as_key_value(item: Tuple[str, bytes]) -> KeyValue:
    key, value = item
    return KeyValue(key=key, value=bytes(value))


class StateStore:
    """Adapter over a collaborator backend for the duration of one transaction."""

    def __init__(self, backend: WorldStateBackend):
        self._backend = backend

    def _call(self, operation: str, key: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except LedgerError:
            raise
        except Exception as e:
            raise StoreUnavailable(operation, key, cause=e) from e

    def get(self, key: str) -> Optional[bytes]:
        """Raw stored bytes, or None when the key is absent."""
        value = self._call("get", key, self._backend.get_state, key)
        if not value:
            return None
        return bytes(value)

    def put(self, key: str, value: bytes) -> None:
        """Upsert a key's value within the enclosing transaction."""
        if not key:
            raise ValueError("key must be non-empty")
        if not value:
            raise ValueError("value must be non-empty")
        self._call("put", key, self._backend.put_state, key, bytes(value))

    def delete(self, key: str) -> None:
        """Remove a key. Absent keys are a no-op."""
        self._call("delete", key, self._backend.delete_state, key)

    def range_scan(self, start_key: str = "", end_key: str = "") -> StateQueryIterator[KeyValue]:
        """Entries with keys in [start_key, end_key).

        An empty start_key is open at the bottom, an empty end_key is open at
        the top; ("", "") covers the whole namespace.
        """
        source = self._call(
            "range_scan", start_key, self._backend.get_state_by_range, start_key, end_key
        )
        return StateQueryIterator(iter(source), operation="range_scan", transform=_as_key_value)

    def history(self, key: str) -> StateQueryIterator[KeyModification]:
        """Modification history of a key, newest first."""
        source = self._call("history", key, self._backend.get_history_for_key, key)
        return StateQueryIterator(iter(source), operation="history")
