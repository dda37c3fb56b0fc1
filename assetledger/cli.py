#!/usr/bin/env python3
"""
Asset Ledger CLI

Runs contract transactions against a world-state snapshot file.

Usage:
    python -m assetledger [--state PATH] <command> [options]

Commands:
    init        Populate the ledger with the seed assets
    create      Issue a new asset (--json TEXT | --file PATH)
    read        Read an asset by ID
    update      Overwrite an existing asset (--json TEXT | --file PATH)
    delete      Delete an asset
    exists      Check whether an asset exists
    transfer    Change an asset's owner
    list        List all assets
    history     Modification history of an asset
    digest      Print the world-state digest
    info        Contract metadata and transaction table
    config      Show the effective configuration

Exit codes: 0 success, 1 rejected by the contract, 2 usage/store error.
"""

from __future__ import annotations

import argparse
import json
import pathlib
import sys
from typing import Any, List, Optional

import yaml

from assetledger import __version__
from assetledger.asset import Asset
from assetledger.config import LOG_LEVELS, ConfigError, ConfigManager
from assetledger.contract import AssetContract, HistoryEntry
from assetledger.errors import AlreadyExists, EncodingError, LedgerError, Malformed, NotFound
from assetledger.ledger import InMemoryLedger
from assetledger.observability import configure_logging
from assetledger.runtime import ContractRuntime


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 2):
        super().__init__(message)
        self.exit_code = exit_code


def to_wire(result: Any) -> Any:
    """Convert contract results into JSON-compatible data."""
    if isinstance(result, (Asset, HistoryEntry)):
        return result.to_dict()
    if isinstance(result, list):
        return [to_wire(r) for r in result]
    return result


def format_output(data: Any, fmt: str = "json") -> str:
    if fmt == "yaml":
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=True, allow_unicode=True).rstrip("\n")
    return json.dumps(data, indent=2, ensure_ascii=False)


def _emit(args: argparse.Namespace, data: Any) -> None:
    print(format_output(to_wire(data), getattr(args, "format", "json")))


def _config_manager(args: argparse.Namespace) -> ConfigManager:
    manager = getattr(args, "config_manager", None)
    if manager is None:
        manager = ConfigManager()
        config_path = getattr(args, "config", "") or ""
        if config_path:
            manager.load_from_file(config_path)
        else:
            manager.load_defaults()
        args.config_manager = manager
    return manager


def _state_path(args: argparse.Namespace) -> pathlib.Path:
    path = getattr(args, "state", "") or _config_manager(args).get("store.state_path")
    return pathlib.Path(path)


def _open_runtime(args: argparse.Namespace) -> ContractRuntime:
    manager = _config_manager(args)
    ledger = InMemoryLedger.load(
        _state_path(args),
        check_canonical=bool(manager.get("store.check_canonical")),
    )
    contract = AssetContract(
        name=manager.get("contract.name"),
        title=manager.get("contract.title"),
        description=manager.get("contract.description"),
    )
    return ContractRuntime(contract, ledger)


def _save(args: argparse.Namespace, runtime: ContractRuntime) -> None:
    runtime.ledger.save(_state_path(args))


def _read_payload(args: argparse.Namespace) -> str:
    if getattr(args, "json", ""):
        return args.json
    if getattr(args, "file", ""):
        return pathlib.Path(args.file).read_text(encoding="utf-8")
    raise CLIError("provide an asset with --json TEXT or --file PATH")


def cmd_init(args: argparse.Namespace) -> int:
    runtime = _open_runtime(args)
    runtime.submit("InitLedger")
    _save(args, runtime)
    _emit(args, {"initialized": runtime.ledger.keys(), "state_digest": runtime.ledger.state_digest()})
    return 0


def cmd_create(args: argparse.Namespace) -> int:
    runtime = _open_runtime(args)
    asset = Asset.parse(_read_payload(args))
    runtime.submit("CreateAsset", asset)
    _save(args, runtime)
    _emit(args, {"created": asset.id})
    return 0


def cmd_read(args: argparse.Namespace) -> int:
    runtime = _open_runtime(args)
    _emit(args, runtime.evaluate("ReadAsset", args.id))
    return 0


def cmd_update(args: argparse.Namespace) -> int:
    runtime = _open_runtime(args)
    asset = Asset.parse(_read_payload(args))
    runtime.submit("UpdateAsset", asset)
    _save(args, runtime)
    _emit(args, {"updated": asset.id})
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    runtime = _open_runtime(args)
    runtime.submit("DeleteAsset", args.id)
    _save(args, runtime)
    _emit(args, {"deleted": args.id})
    return 0


def cmd_exists(args: argparse.Namespace) -> int:
    runtime = _open_runtime(args)
    _emit(args, {"id": args.id, "exists": runtime.evaluate("AssetExists", args.id)})
    return 0


def cmd_transfer(args: argparse.Namespace) -> int:
    runtime = _open_runtime(args)
    old_owner = runtime.submit("TransferAsset", args.id, args.new_owner)
    _save(args, runtime)
    _emit(args, {"id": args.id, "old_owner": old_owner, "new_owner": args.new_owner})
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    runtime = _open_runtime(args)
    _emit(args, runtime.evaluate("GetAllAssets"))
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    runtime = _open_runtime(args)
    _emit(args, runtime.evaluate("GetAssetHistory", args.id))
    return 0


def cmd_digest(args: argparse.Namespace) -> int:
    runtime = _open_runtime(args)
    _emit(args, {"state_digest": runtime.ledger.state_digest(), "keys": len(runtime.ledger)})
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    _emit(args, _open_runtime(args).contract.info())
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    manager = _config_manager(args)
    errors = manager.validate()
    if errors:
        for e in errors:
            print(f"CONFIG ERROR: {e}", file=sys.stderr)
        return 2
    _emit(args, manager.config.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="assetledger",
        description="Ledger-backed asset registry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    ap.add_argument("--version", "-V", action="version", version=f"assetledger {__version__}")
    ap.add_argument("--state", default="", help="World-state snapshot file (default: store.state_path)")
    ap.add_argument("--config", default="", help="YAML configuration file")
    ap.add_argument("--format", "-f", choices=["json", "yaml"], default="json", help="Output format")
    ap.add_argument("--log-level", default="", choices=("",) + LOG_LEVELS, help="Override observability.log_level")

    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init", help="Populate the ledger with the seed assets").set_defaults(func=cmd_init)

    for name, func, help_text in (
        ("create", cmd_create, "Issue a new asset"),
        ("update", cmd_update, "Overwrite an existing asset"),
    ):
        p = sub.add_parser(name, help=help_text)
        src = p.add_mutually_exclusive_group(required=True)
        src.add_argument("--json", default="", help="Asset record as JSON text")
        src.add_argument("--file", default="", help="Path of a JSON file holding the asset record")
        p.set_defaults(func=func)

    for name, func, help_text in (
        ("read", cmd_read, "Read an asset by ID"),
        ("delete", cmd_delete, "Delete an asset"),
        ("exists", cmd_exists, "Check whether an asset exists"),
        ("history", cmd_history, "Modification history of an asset"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("id")
        p.set_defaults(func=func)

    t = sub.add_parser("transfer", help="Change an asset's owner")
    t.add_argument("id")
    t.add_argument("new_owner")
    t.set_defaults(func=cmd_transfer)

    sub.add_parser("list", help="List all assets").set_defaults(func=cmd_list)
    sub.add_parser("digest", help="Print the world-state digest").set_defaults(func=cmd_digest)
    sub.add_parser("info", help="Contract metadata").set_defaults(func=cmd_info)
    sub.add_parser("config", help="Show the effective configuration").set_defaults(func=cmd_config)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        manager = _config_manager(args)
        configure_logging(
            args.log_level or manager.get("observability.log_level"),
            manager.get("observability.log_format"),
        )
        return args.func(args)
    except (NotFound, AlreadyExists, Malformed, EncodingError) as e:
        print(f"ERROR [{e.error_code}]: {e}", file=sys.stderr)
        return 1
    except LedgerError as e:
        print(f"ERROR [{e.error_code}]: {e}", file=sys.stderr)
        return 2
    except (CLIError, ConfigError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return getattr(e, "exit_code", 2)
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
