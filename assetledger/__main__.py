"""Asset Ledger CLI entry point: python -m assetledger"""

from __future__ import annotations

import sys

from assetledger.cli import main

if __name__ == "__main__":
    sys.exit(main())
