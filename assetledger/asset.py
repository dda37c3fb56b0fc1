"""Asset record and its boundary validation.

An ``Asset`` is one tradable item. Its wire form is a JSON object with the
PascalCase field names below; its stored form is the canonical encoding of
that object, keyed by ``ID`` in the world state.

Parsing is strict: payloads are validated against ``asset.schema.json``
(all eight fields required, no extra fields, integers must be integers)
before any state is touched.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Tuple, Union

from assetledger.core import canonical_json_bytes
from assetledger.errors import FieldError, Malformed
from assetledger.schema import schema_errors

ASSET_SCHEMA = "asset.schema.json"


@dataclass
class Asset:
    """A tradable asset record."""
    id: str
    model: str
    color: str
    owner: str
    year: int
    vin: str
    engine_type: str
    mileage: int

    # attribute name -> wire name
    WIRE_NAMES = {
        "id": "ID",
        "model": "Model",
        "color": "Color",
        "owner": "Owner",
        "year": "Year",
        "vin": "VIN",
        "engine_type": "EngineType",
        "mileage": "Mileage",
    }

    def to_dict(self) -> Dict[str, Any]:
        """Wire mapping with PascalCase keys."""
        return {wire: getattr(self, attr) for attr, wire in self.WIRE_NAMES.items()}

    def to_bytes(self) -> bytes:
        """Canonical encoding, the only form ever written to the world state."""
        return canonical_json_bytes(self.to_dict())

    def with_owner(self, owner: str) -> "Asset":
        return replace(self, owner=owner)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Asset":
        """Build an asset from its wire mapping.

        Raises:
            Malformed: when the mapping does not satisfy the asset schema
        """
        if not isinstance(data, Mapping):
            raise Malformed(f"asset must be a JSON object, got {type(data).__name__}")
        obj = dict(data)
        errors = [
            FieldError(err.json_path, err.message, err.instance)
            for err in schema_errors(obj, ASSET_SCHEMA)
        ]
        if errors:
            raise Malformed("invalid asset record", errors)
        return cls(**{attr: obj[wire] for attr, wire in cls.WIRE_NAMES.items()})

    @classmethod
    def parse(cls, payload: Union["Asset", Mapping[str, Any], str, bytes]) -> "Asset":
        """Parse a contract argument into an asset.

        Accepts an ``Asset``, a wire mapping, or JSON text/bytes.
        """
        if isinstance(payload, Asset):
            payload = payload.to_dict()
        if isinstance(payload, (str, bytes, bytearray)):
            payload = loads_strict(payload)
        return cls.from_dict(payload)


def _reject_duplicate_keys(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in pairs:
        if key in out:
            raise ValueError(f"duplicate key {key!r}")
        out[key] = value
    return out


def loads_strict(payload: Union[str, bytes, bytearray]) -> Any:
    """Decode JSON text, rejecting duplicate object keys.

    Raises:
        Malformed: when the payload is not valid UTF-8 JSON
    """
    try:
        text = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else payload
        return json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    except RecursionError as e:
        raise Malformed("payload is nested too deeply to decode") from e
    except (UnicodeDecodeError, ValueError) as e:
        raise Malformed(f"payload is not valid JSON: {e}") from e


def decode_record(raw: bytes) -> Union[Asset, str]:
    """Decode a stored value into an asset.

    Values that are not a decodable asset (non-JSON legacy content, JSON
    nested too deeply to decode, or JSON of another shape) are returned
    verbatim as text. Well-formed JSON that is not an asset is not parsed
    into a mapping: callers always get either an ``Asset`` or a ``str``.
    """
    text = raw.decode("utf-8", errors="replace")
    try:
        return Asset.from_dict(loads_strict(raw))
    except Malformed:
        return text
