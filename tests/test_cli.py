"""
CLI tests. Each command runs against a snapshot file in a temporary
directory; exit codes and JSON/YAML output are checked.
"""

import json
import logging
import pathlib

import pytest
import yaml

from assetledger.cli import build_parser, format_output, main
from assetledger.core import is_canonical_json_bytes
from assetledger.ledger import InMemoryLedger
from assetledger.observability import ROOT_LOGGER_NAME

CAR = {
    "ID": "assetcar9",
    "Model": "Mazda 3",
    "Color": "Red",
    "Owner": "Ajith",
    "Year": 2021,
    "VIN": "JM1BL1SF0A1234567",
    "EngineType": "4-cylinder Petrol",
    "Mileage": 3200,
}


@pytest.fixture(autouse=True)
def _isolated(tmp_path: pathlib.Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("ASSETLEDGER_STATE_PATH", "ASSETLEDGER_LOG_LEVEL", "ASSETLEDGER_LOG_FORMAT",
                 "ASSETLEDGER_CHECK_CANONICAL", "ASSETLEDGER_CONTRACT_NAME"):
        monkeypatch.delenv(name, raising=False)
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        if getattr(handler, "_assetledger", False):
            root.removeHandler(handler)


@pytest.fixture
def state(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "world-state.json"


def run(capsys, state, *argv):
    rc = main(["--state", str(state), *argv])
    out, err = capsys.readouterr()
    return rc, out, err


def run_json(capsys, state, *argv):
    rc, out, err = run(capsys, state, *argv)
    assert rc == 0, err
    return json.loads(out)


class TestLifecycle:

    def test_init(self, capsys, state):
        result = run_json(capsys, state, "init")
        assert result["initialized"] == ["assetcar1", "assetcar2"]
        assert is_canonical_json_bytes(state.read_bytes())
        assert result["state_digest"] == InMemoryLedger.load(state).state_digest()

    def test_create_read_transfer_delete(self, capsys, state):
        assert run_json(capsys, state, "create", "--json", json.dumps(CAR)) == {"created": "assetcar9"}
        assert run_json(capsys, state, "read", "assetcar9") == CAR

        moved = run_json(capsys, state, "transfer", "assetcar9", "Emma")
        assert moved == {"id": "assetcar9", "old_owner": "Ajith", "new_owner": "Emma"}
        assert run_json(capsys, state, "read", "assetcar9")["Owner"] == "Emma"

        assert run_json(capsys, state, "delete", "assetcar9") == {"deleted": "assetcar9"}
        assert run_json(capsys, state, "exists", "assetcar9") == {"id": "assetcar9", "exists": False}

        history = run_json(capsys, state, "history", "assetcar9")
        assert [h["is_delete"] for h in history] == [True, False, False]
        assert history[1]["record"]["Owner"] == "Emma"

    def test_create_from_file(self, capsys, state, tmp_path: pathlib.Path):
        payload = tmp_path / "car.json"
        payload.write_text(json.dumps(CAR), encoding="utf-8")
        run_json(capsys, state, "create", "--file", str(payload))
        assert run_json(capsys, state, "exists", "assetcar9")["exists"] is True

    def test_update(self, capsys, state):
        run_json(capsys, state, "create", "--json", json.dumps(CAR))
        updated = dict(CAR, Mileage=5000)
        assert run_json(capsys, state, "update", "--json", json.dumps(updated)) == {"updated": "assetcar9"}
        assert run_json(capsys, state, "read", "assetcar9")["Mileage"] == 5000

    def test_list(self, capsys, state):
        run_json(capsys, state, "init")
        assets = run_json(capsys, state, "list")
        assert [a["ID"] for a in assets] == ["assetcar1", "assetcar2"]
        assert assets[0]["EngineType"] == "4-cylinder Diesel"

    def test_digest(self, capsys, state):
        run_json(capsys, state, "init")
        result = run_json(capsys, state, "digest")
        assert result["keys"] == 2
        assert result["state_digest"] == InMemoryLedger.load(state).state_digest()

    def test_reads_do_not_rewrite_state(self, capsys, state):
        run_json(capsys, state, "init")
        before = state.read_bytes()
        run_json(capsys, state, "list")
        run_json(capsys, state, "read", "assetcar1")
        assert state.read_bytes() == before


class TestExitCodes:

    def test_not_found(self, capsys, state):
        rc, out, err = run(capsys, state, "read", "ghost")
        assert rc == 1
        assert "ERROR [ASSET_NOT_FOUND]: The asset ghost does not exist" in err

    def test_already_exists(self, capsys, state):
        run_json(capsys, state, "create", "--json", json.dumps(CAR))
        rc, _, err = run(capsys, state, "create", "--json", json.dumps(CAR))
        assert rc == 1
        assert "ASSET_ALREADY_EXISTS" in err

    def test_malformed(self, capsys, state):
        rc, _, err = run(capsys, state, "create", "--json", json.dumps(dict(CAR, Year="2021")))
        assert rc == 1
        assert "MALFORMED_INPUT" in err
        assert not state.exists()

    def test_non_canonical_state_file(self, capsys, state):
        state.write_text(json.dumps({"format": "assetledger.world-state.v1", "state": {}}, indent=2))
        rc, _, err = run(capsys, state, "list")
        assert rc == 2
        assert "not canonical" in err

    def test_missing_config_file(self, capsys, state, tmp_path: pathlib.Path):
        rc, _, err = run(capsys, state, "--config", str(tmp_path / "nope.yaml"), "info")
        assert rc == 2
        assert "Configuration file not found" in err

    def test_payload_required(self, capsys, state):
        with pytest.raises(SystemExit) as exc_info:
            main(["--state", str(state), "create"])
        assert exc_info.value.code == 2


class TestConfigAndOutput:

    def test_state_path_from_env(self, capsys, tmp_path: pathlib.Path, monkeypatch):
        target = tmp_path / "env" / "state.json"
        monkeypatch.setenv("ASSETLEDGER_STATE_PATH", str(target))
        assert main(["init"]) == 0
        assert target.exists()

    def test_state_path_from_config_file(self, capsys, tmp_path: pathlib.Path):
        (tmp_path / "assetledger.yaml").write_text(
            "store:\n  state_path: from-config.json\ncontract:\n  name: fleet\n", encoding="utf-8"
        )
        assert main(["init"]) == 0
        assert (tmp_path / "from-config.json").exists()
        capsys.readouterr()
        assert main(["info"]) == 0
        assert json.loads(capsys.readouterr().out)["name"] == "fleet"

    def test_info(self, capsys, state):
        info = run_json(capsys, state, "info")
        assert info["title"] == "AssetLedger"
        assert len(info["transactions"]) == 9

    def test_config(self, capsys, state):
        result = run_json(capsys, state, "config")
        assert result["store"]["check_canonical"] is True

    def test_config_invalid_env(self, capsys, state, monkeypatch):
        monkeypatch.setenv("ASSETLEDGER_LOG_FORMAT", "xml")
        assert main(["--log-level", "error", "config"]) == 2
        assert "CONFIG ERROR" in capsys.readouterr().err

    def test_yaml_output(self, capsys, state):
        run_json(capsys, state, "init")
        rc, out, _ = run(capsys, state, "--format", "yaml", "read", "assetcar2")
        assert rc == 0
        assert yaml.safe_load(out)["Owner"] == "Emma"

    def test_format_output(self):
        assert format_output({"b": 1, "a": "é"}) == '{\n  "b": 1,\n  "a": "é"\n}'
        assert format_output({"b": 1, "a": 2}, "yaml") == "a: 2\nb: 1"

    def test_parser_commands(self):
        parser = build_parser()
        args = parser.parse_args(["transfer", "assetcar1", "Emma"])
        assert (args.id, args.new_owner) == ("assetcar1", "Emma")
        args = parser.parse_args(["--format", "yaml", "list"])
        assert args.format == "yaml"
