"""Asset Ledger v0.1.0

A ledger-backed asset registry whose every write is canonically encoded, so
that independently executing nodes commit byte-identical world state.

Architecture:
    assetledger/
    ├── __init__.py       # Package entry, version, public API
    ├── core.py           # Canonical JSON encoder, sha256, JSON/YAML loading
    ├── errors.py         # Error taxonomy
    ├── schema.py         # JSON Schema validation infrastructure
    ├── asset.py          # Asset record, strict parsing, stored-value decoding
    ├── store.py          # State store adapter and query iterators
    ├── ledger.py         # In-memory collaborator ledger, snapshots, digests
    ├── contract.py       # Asset contract and its transaction table
    ├── runtime.py        # Transaction dispatch, commit/discard
    ├── config.py         # YAML + environment configuration
    ├── observability.py  # Structured logging, correlation IDs
    └── cli.py            # Command-line interface
"""

__version__ = "0.1.0"

from assetledger.core import (
    canonical_digest,
    canonical_json_bytes,
    is_canonical_json_bytes,
    sha256_bytes,
    write_canonical_json,
)
from assetledger.errors import (
    AlreadyExists,
    EncodingError,
    LedgerError,
    Malformed,
    NotFound,
    StoreUnavailable,
    UnknownTransaction,
)
from assetledger.asset import Asset, decode_record
from assetledger.store import KeyModification, KeyValue, StateQueryIterator, StateStore, WorldStateBackend
from assetledger.ledger import InMemoryLedger, LedgerTransaction
from assetledger.contract import SEED_ASSETS, TRANSACTIONS, AssetContract, TransactionContext, TransactionSpec
from assetledger.runtime import ContractRuntime

__all__ = [
    "__version__",
    "canonical_digest",
    "canonical_json_bytes",
    "is_canonical_json_bytes",
    "sha256_bytes",
    "write_canonical_json",
    "AlreadyExists",
    "EncodingError",
    "LedgerError",
    "Malformed",
    "NotFound",
    "StoreUnavailable",
    "UnknownTransaction",
    "Asset",
    "decode_record",
    "KeyModification",
    "KeyValue",
    "StateQueryIterator",
    "StateStore",
    "WorldStateBackend",
    "InMemoryLedger",
    "LedgerTransaction",
    "SEED_ASSETS",
    "TRANSACTIONS",
    "AssetContract",
    "TransactionContext",
    "TransactionSpec",
    "ContractRuntime",
]
