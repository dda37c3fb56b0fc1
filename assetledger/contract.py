"""
Asset Contract

Create, read, update, delete and transfer asset records in the world state.

Per-asset state machine:

    Absent ──create──▶ Exists ──delete──▶ Absent
                       │    ▲
                       └────┘  update / transfer (full overwrite)

Every write goes through ``Asset.to_bytes()`` (the canonical encoder), so
all nodes executing a transaction commit identical bytes. The contract holds
no locks; concurrent writers on the same key are resolved by the ledger's
conflict detection. Operations are exposed through the ``TRANSACTIONS``
registration table, which also records whether each one is read-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from assetledger.asset import Asset, decode_record
from assetledger.errors import AlreadyExists, Malformed, NotFound
from assetledger.observability import get_logger
from assetledger.store import StateStore

log = get_logger("contract")

Record = Union[Asset, str]

SEED_ASSETS = (
    Asset(
        id="assetcar1",
        model="Honda Accord",
        color="Silver",
        owner="Ajith",
        year=2023,
        vin="AB12CD345671",
        engine_type="4-cylinder Diesel",
        mileage=10,
    ),
    Asset(
        id="assetcar2",
        model="Toyota Camry",
        color="White",
        owner="Emma",
        year=2019,
        vin="AB12CD345678",
        engine_type="6-cylinder Petrol",
        mileage=11,
    ),
)


@dataclass
class TransactionContext:
    """What a contract operation sees of its enclosing transaction."""
    stub: StateStore
    tx_id: str = ""
    timestamp: str = ""


@dataclass
class HistoryEntry:
    """One modification of an asset key."""
    tx_id: str
    timestamp: str
    is_delete: bool
    record: Optional[Record] = None

    def to_dict(self) -> Dict[str, Any]:
        record = self.record.to_dict() if isinstance(self.record, Asset) else self.record
        return {
            "tx_id": self.tx_id,
            "timestamp": self.timestamp,
            "is_delete": self.is_delete,
            "record": record,
        }


def _require_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise Malformed(f"{name} must be a string, got {type(value).__name__}")
    return value


class AssetContract:
    """Smart contract for trading assets."""

    def __init__(
        self,
        name: str = "AssetContract",
        title: str = "AssetLedger",
        description: str = "Smart contract for trading assets",
    ):
        self.name = name
        self.title = title
        self.description = description

    def info(self) -> Dict[str, Any]:
        """Contract metadata and its transaction table."""
        return {
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "transactions": [
                {"name": t.name, "read_only": t.read_only, "description": t.description}
                for t in TRANSACTIONS.values()
            ],
        }

    def _put_asset(self, ctx: TransactionContext, asset: Asset) -> None:
        ctx.stub.put(asset.id, asset.to_bytes())

    def init_ledger(self, ctx: TransactionContext) -> None:
        """Write the seed assets. Overwrites them if already present."""
        for asset in SEED_ASSETS:
            self._put_asset(ctx, asset)
            log.info(f"Asset {asset.id} initialized", operation="InitLedger", asset_id=asset.id)

    def create_asset(self, ctx: TransactionContext, payload: Any) -> None:
        """Issue a new asset to the world state."""
        asset = Asset.parse(payload)
        if self.asset_exists(ctx, asset.id):
            raise AlreadyExists(asset.id)
        self._put_asset(ctx, asset)
        log.info(f"Asset {asset.id} created", operation="CreateAsset", asset_id=asset.id)

    def read_asset(self, ctx: TransactionContext, asset_id: str) -> Record:
        """Return the stored asset, or its raw text when it does not decode."""
        asset_id = _require_str("asset_id", asset_id)
        raw = ctx.stub.get(asset_id)
        if raw is None:
            raise NotFound(asset_id)
        log.debug(f"Asset {asset_id} read", operation="ReadAsset", asset_id=asset_id)
        return decode_record(raw)

    def asset_exists(self, ctx: TransactionContext, asset_id: str) -> bool:
        asset_id = _require_str("asset_id", asset_id)
        return ctx.stub.get(asset_id) is not None

    def update_asset(self, ctx: TransactionContext, payload: Any) -> None:
        """Overwrite an existing asset with the supplied record (no merge)."""
        asset = Asset.parse(payload)
        if not self.asset_exists(ctx, asset.id):
            raise NotFound(asset.id)
        self._put_asset(ctx, asset)
        log.info(f"Asset {asset.id} updated", operation="UpdateAsset", asset_id=asset.id)

    def delete_asset(self, ctx: TransactionContext, asset_id: str) -> None:
        if not self.asset_exists(ctx, asset_id):
            raise NotFound(asset_id)
        ctx.stub.delete(asset_id)
        log.info(f"Asset {asset_id} deleted", operation="DeleteAsset", asset_id=asset_id)

    def transfer_asset(self, ctx: TransactionContext, asset_id: str, new_owner: str) -> str:
        """Set a new owner and return the previous one."""
        new_owner = _require_str("new_owner", new_owner)
        record = self.read_asset(ctx, asset_id)
        if not isinstance(record, Asset):
            raise Malformed(f"stored value for {asset_id} is not an asset record")
        old_owner = record.owner
        self._put_asset(ctx, record.with_owner(new_owner))
        log.info(
            f"Asset {asset_id} transferred",
            operation="TransferAsset",
            asset_id=asset_id,
            old_owner=old_owner,
            new_owner=new_owner,
        )
        return old_owner

    def get_all_assets(self, ctx: TransactionContext) -> List[Record]:
        """All entries of the namespace in key order.

        Entries that do not decode as assets are returned as raw text.
        """
        results: List[Record] = []
        with ctx.stub.range_scan("", "") as entries:
            for kv in entries:
                record = decode_record(kv.value)
                if not isinstance(record, Asset):
                    log.warning(
                        "World-state entry is not a decodable asset; returning raw text",
                        operation="GetAllAssets",
                        key=kv.key,
                    )
                results.append(record)
        return results

    def get_asset_history(self, ctx: TransactionContext, asset_id: str) -> List[HistoryEntry]:
        """Modification history of an asset key, newest first."""
        asset_id = _require_str("asset_id", asset_id)
        entries: List[HistoryEntry] = []
        with ctx.stub.history(asset_id) as mods:
            for mod in mods:
                entries.append(HistoryEntry(
                    tx_id=mod.tx_id,
                    timestamp=mod.timestamp,
                    is_delete=mod.is_delete,
                    record=None if mod.is_delete else decode_record(mod.value),
                ))
        if not entries:
            raise NotFound(asset_id)
        return entries


# =============================================================================
# TRANSACTION REGISTRATION TABLE
# =============================================================================

@dataclass(frozen=True)
class TransactionSpec:
    """An externally invocable contract operation."""
    name: str
    method: str
    read_only: bool
    description: str = ""

    def bind(self, contract: AssetContract) -> Callable[..., Any]:
        return getattr(contract, self.method)


def _build_table(*specs: TransactionSpec) -> Dict[str, TransactionSpec]:
    table: Dict[str, TransactionSpec] = {}
    for spec in specs:
        if spec.name in table:
            raise ValueError(f"duplicate transaction name: {spec.name}")
        if not callable(getattr(AssetContract, spec.method, None)):
            raise ValueError(f"transaction {spec.name} has no handler {spec.method}")
        table[spec.name] = spec
    return table


TRANSACTIONS: Dict[str, TransactionSpec] = _build_table(
    TransactionSpec("InitLedger", "init_ledger", False, "Populate the ledger with seed assets"),
    TransactionSpec("CreateAsset", "create_asset", False, "Issue a new asset"),
    TransactionSpec("ReadAsset", "read_asset", True, "Read an asset by ID"),
    TransactionSpec("UpdateAsset", "update_asset", False, "Overwrite an existing asset"),
    TransactionSpec("DeleteAsset", "delete_asset", False, "Delete an asset"),
    TransactionSpec("AssetExists", "asset_exists", True, "Check whether an asset exists"),
    TransactionSpec("TransferAsset", "transfer_asset", False, "Change an asset's owner"),
    TransactionSpec("GetAllAssets", "get_all_assets", True, "List all assets"),
    TransactionSpec("GetAssetHistory", "get_asset_history", True, "Modification history of an asset"),
)
