"""
Contract runtime.

Dispatches named transactions from the registration table to the contract,
one invocation at a time:

    submit(name, *args)    read-write: commit the write set on success
    evaluate(name, *args)  read-only: the write set is always discarded
    invoke(name, *args)    pick submit/evaluate from the table's flag

A failed invocation discards its write set, so no partial writes survive.
"""

from __future__ import annotations

import inspect
import time
from typing import Any, Dict, Optional

from assetledger.contract import TRANSACTIONS, AssetContract, TransactionContext, TransactionSpec
from assetledger.errors import LedgerError, Malformed, UnknownTransaction
from assetledger.ledger import InMemoryLedger
from assetledger.observability import (
    generate_correlation_id,
    get_logger,
    reset_correlation_id,
    set_correlation_id,
)
from assetledger.store import StateStore

log = get_logger("runtime")


class ContractRuntime:
    """Executes contract transactions against a ledger."""

    def __init__(
        self,
        contract: Optional[AssetContract] = None,
        ledger: Optional[InMemoryLedger] = None,
        transactions: Optional[Dict[str, TransactionSpec]] = None,
    ):
        self.contract = contract or AssetContract()
        self.ledger = ledger if ledger is not None else InMemoryLedger()
        self.transactions = transactions if transactions is not None else TRANSACTIONS

    def lookup(self, name: str) -> TransactionSpec:
        spec = self.transactions.get(name)
        if spec is None:
            raise UnknownTransaction(name)
        return spec

    def submit(self, name: str, *args: Any, tx_id: Optional[str] = None, timestamp: Optional[str] = None) -> Any:
        """Run a transaction and commit its writes."""
        return self._execute(self.lookup(name), args, True, tx_id, timestamp)

    def evaluate(self, name: str, *args: Any, tx_id: Optional[str] = None, timestamp: Optional[str] = None) -> Any:
        """Run a read-only transaction without committing."""
        spec = self.lookup(name)
        if not spec.read_only:
            raise LedgerError(f"Transaction {name} is not read-only; submit it instead")
        return self._execute(spec, args, False, tx_id, timestamp)

    def invoke(self, name: str, *args: Any, tx_id: Optional[str] = None, timestamp: Optional[str] = None) -> Any:
        spec = self.lookup(name)
        return self._execute(spec, args, not spec.read_only, tx_id, timestamp)

    def _execute(
        self,
        spec: TransactionSpec,
        args: tuple,
        commit: bool,
        tx_id: Optional[str],
        timestamp: Optional[str],
    ) -> Any:
        handler = spec.bind(self.contract)
        txn = self.ledger.begin(tx_id, timestamp)
        ctx = TransactionContext(stub=StateStore(txn), tx_id=txn.tx_id, timestamp=txn.timestamp)

        token = set_correlation_id(generate_correlation_id())
        start = time.monotonic()
        try:
            try:
                try:
                    inspect.signature(handler).bind(ctx, *args)
                except TypeError as e:
                    raise Malformed(f"{spec.name}: {e}") from e
                result = handler(ctx, *args)
            except Exception as e:
                txn.discard()
                log.operation(
                    spec.name,
                    (time.monotonic() - start) * 1000,
                    success=False,
                    error_code=getattr(e, "error_code", type(e).__name__),
                    tx_id=txn.tx_id,
                    error=str(e),
                )
                raise

            if commit:
                txn.commit()
            else:
                txn.discard()
            log.operation(
                spec.name,
                (time.monotonic() - start) * 1000,
                success=True,
                tx_id=txn.tx_id,
                committed=commit,
            )
            return result
        finally:
            reset_correlation_id(token)
