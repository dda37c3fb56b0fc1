"""Core primitives for the asset ledger.

This module provides the foundational utilities used throughout the package:
- Canonical JSON serialization (JCS/RFC8785 subset) for world-state values
- Cryptographic hashing (SHA-256)
- YAML/JSON loading with consistent encoding

Every node executing a transaction must commit byte-identical values, so all
writes to the world state go through ``canonical_json_bytes``.
"""

from __future__ import annotations

import hashlib
import json
import pathlib
from datetime import date, datetime, timezone
from typing import Any, Dict, Set

import yaml

from assetledger.errors import EncodingError

# Package root, computed once at module load
PACKAGE_ROOT = pathlib.Path(__file__).resolve().parent


def sha256_bytes(data: bytes) -> str:
    """Compute SHA-256 hash of bytes, returning lowercase hex string."""
    return hashlib.sha256(data).hexdigest()


def load_yaml(path: pathlib.Path) -> Any:
    """Load YAML file with UTF-8 encoding."""
    return yaml.safe_load(pathlib.Path(path).read_text(encoding="utf-8"))


def load_json(path: pathlib.Path) -> Any:
    """Load JSON file with UTF-8 encoding."""
    return json.loads(pathlib.Path(path).read_text(encoding="utf-8"))


def _format_datetime(obj: date) -> str:
    if isinstance(obj, datetime):
        if obj.tzinfo is None:
            obj = obj.replace(tzinfo=timezone.utc)
        return obj.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return obj.isoformat()


def _coerce_json_types(obj: Any, path: str, active: Set[int]) -> Any:
    """Coerce Python objects into strict JSON types.

    - datetime/date objects become ISO-8601 strings (UTC, ``Z`` suffix).
    - tuples become lists.
    - Non-string mapping keys are coerced with ``str()``.
    - Floats, cycles and unknown types are rejected.
    """
    if obj is None or isinstance(obj, (str, bool, int)):
        return obj
    if isinstance(obj, float):
        raise EncodingError("Floats are not allowed in canonical JSON. Use strings or integers.", path or "$")
    if isinstance(obj, (datetime, date)):
        return _format_datetime(obj)

    if isinstance(obj, (list, tuple, dict)):
        marker = id(obj)
        if marker in active:
            raise EncodingError("Cyclic structure cannot be canonicalized", path or "$")
        active.add(marker)
        try:
            if isinstance(obj, dict):
                out: Dict[str, Any] = {}
                for k, v in obj.items():
                    key = k if isinstance(k, str) else str(k)
                    if key in out:
                        raise EncodingError(f"Duplicate key {key!r} after key coercion", path or "$")
                    out[key] = _coerce_json_types(v, f"{path}.{key}", active)
                return out
            return [_coerce_json_types(x, f"{path}[{i}]", active) for i, x in enumerate(obj)]
        finally:
            active.discard(marker)

    raise EncodingError(f"Unsupported type {type(obj).__name__} in canonical JSON", path or "$")


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize object to canonical JSON bytes (JCS/RFC8785 subset).

    Properties:
    - Keys sorted by code point, recursively
    - Array order preserved
    - No whitespace
    - UTF-8 encoded, non-ASCII characters emitted verbatim
    - Floats rejected (use strings/ints for amounts)

    This ensures byte-for-byte reproducibility across nodes regardless of
    the insertion order the record was built with.

    Raises:
        EncodingError: when the value has no canonical form
    """
    try:
        clean = _coerce_json_types(obj, "", set())
        text = json.dumps(
            clean,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except RecursionError as e:
        raise EncodingError("Structure is nested too deeply for canonical JSON", "$") from e
    return text.encode("utf-8")


def canonical_digest(obj: Any) -> str:
    """Compute sha256(canonical_json_bytes(obj))."""
    return sha256_bytes(canonical_json_bytes(obj))


def is_canonical_json_bytes(raw: bytes) -> bool:
    """Return True iff ``raw`` is already in canonical form.

    A single trailing LF is tolerated, matching ``write_canonical_json``.
    """
    body = raw[:-1] if raw.endswith(b"\n") else raw
    try:
        obj = json.loads(body.decode("utf-8"))
        return canonical_json_bytes(obj) == body
    except (UnicodeDecodeError, ValueError, RecursionError):
        return False


def write_canonical_json(path: pathlib.Path, obj: Any) -> str:
    """Write canonical JSON to file, returning the digest.

    Appends a trailing newline for POSIX compatibility.
    Returns the SHA-256 digest of the canonical bytes (without newline).
    """
    canonical = canonical_json_bytes(obj)
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(canonical + b"\n")
    return sha256_bytes(canonical)


def now_rfc3339() -> str:
    """Return current UTC time in RFC3339 format, seconds precision."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
