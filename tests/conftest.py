import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import assetledger`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from assetledger.contract import AssetContract, TransactionContext  # noqa: E402
from assetledger.ledger import InMemoryLedger, LedgerTransaction  # noqa: E402
from assetledger.runtime import ContractRuntime  # noqa: E402
from assetledger.store import StateStore  # noqa: E402


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless ASSETLEDGER_RUN_SLOW=1)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    run_slow = _env_flag('ASSETLEDGER_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set ASSETLEDGER_RUN_SLOW=1 to enable'))


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def runtime(ledger: InMemoryLedger) -> ContractRuntime:
    return ContractRuntime(AssetContract(), ledger)


@pytest.fixture
def txn(ledger: InMemoryLedger) -> LedgerTransaction:
    return ledger.begin("tx-fixture", "2025-01-01T00:00:00Z")


@pytest.fixture
def stub(txn: LedgerTransaction) -> StateStore:
    return StateStore(txn)


@pytest.fixture
def ctx(stub: StateStore) -> TransactionContext:
    return TransactionContext(stub=stub, tx_id="tx-fixture", timestamp="2025-01-01T00:00:00Z")
