"""
Asset Ledger Error Taxonomy

Every failure a contract operation can surface to the invoking transaction.
All errors are terminal for the current operation: nothing is retried inside
the core, and the ledger discards the write set of a failed invocation.

    LedgerError
    ├── AlreadyExists       create on a live key
    ├── NotFound            operate on an absent key
    ├── Malformed           input cannot be parsed into a valid record
    ├── EncodingError       canonical form cannot represent a value
    ├── StoreUnavailable    collaborator-level fault
    └── UnknownTransaction  no handler registered under a name
"""

from __future__ import annotations

from typing import Any, List, Optional


class LedgerError(Exception):
    """Base exception for asset ledger failures."""

    error_code = "LEDGER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class AlreadyExists(LedgerError):
    """An asset with the given ID is already live in the world state."""

    error_code = "ASSET_ALREADY_EXISTS"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"The asset {asset_id} already exists")


class NotFound(LedgerError):
    """No asset is stored under the given ID."""

    error_code = "ASSET_NOT_FOUND"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"The asset {asset_id} does not exist")


class FieldError:
    """A single field-level validation failure."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value

    def __repr__(self) -> str:
        return f"FieldError({self.field!r}, {self.message!r})"

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class Malformed(LedgerError):
    """Input could not be parsed into a valid asset record."""

    error_code = "MALFORMED_INPUT"

    def __init__(self, message: str, errors: Optional[List[FieldError]] = None):
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: " + "; ".join(str(e) for e in self.errors)
        super().__init__(message)


class EncodingError(LedgerError, ValueError):
    """A value has no canonical encoding (floats, cycles, unsupported types)."""

    error_code = "ENCODING_ERROR"

    def __init__(self, message: str, path: str = ""):
        self.path = path
        if path:
            message = f"{message} at {path}"
        super().__init__(message)


class StoreUnavailable(LedgerError):
    """The world-state collaborator failed to serve a request."""

    error_code = "STORE_UNAVAILABLE"

    def __init__(self, operation: str, key: str = "", cause: Optional[BaseException] = None):
        self.operation = operation
        self.key = key
        detail = f"world state {operation} failed"
        if key:
            detail += f" for key {key!r}"
        if cause is not None:
            detail += f": {cause}"
        super().__init__(detail)


class UnknownTransaction(LedgerError):
    """No transaction is registered under the requested name."""

    error_code = "UNKNOWN_TRANSACTION"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown transaction: {name}")
