#!/usr/bin/env python3
"""Generate test vectors for canonical world-state encoding.

This script computes canonical bytes and SHA-256 digests using
assetledger.core.canonical_json_bytes(). Other node implementations can
compare their output against these values to verify byte-identical
behavior; the seed assets are included so the stored form of InitLedger's
writes is pinned as well.

Usage:
    python3 scripts/generate_vectors.py
"""
from __future__ import annotations

import json
import os
import sys

# Ensure assetledger/ is importable when run from a checkout
repo_root = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..")
sys.path.insert(0, repo_root)

from assetledger.contract import SEED_ASSETS  # noqa: E402
from assetledger.core import canonical_json_bytes, sha256_bytes  # noqa: E402
from assetledger.errors import EncodingError  # noqa: E402


TEST_VECTORS = [
    '{"b":2,"a":1,"c":"hello"}',
    '{"z":26,"a":1}',
    '{}',
    '[]',
    '{"nested":{"z":1,"a":2},"top":true}',
    '{"arr":[3,2,1],"key":"value"}',
    '{"n":null,"b":false,"t":true,"i":42,"s":"text"}',
    '{"big":999999999999}',
    '{"neg":-42}',
    '{"empty":""}',
    '{"Owner":"Zoë","ID":"asset-ü"}',
]


def main() -> None:
    print("Canonical world-state encoding test vectors")
    print("=" * 60)
    print()

    inputs = [(s, json.loads(s)) for s in TEST_VECTORS]
    inputs += [(f"seed asset {a.id}", a.to_dict()) for a in SEED_ASSETS]

    for i, (label, data) in enumerate(inputs):
        canonical = canonical_json_bytes(data)
        print(f"Vector {i}:")
        print(f"  Input:     {label}")
        print(f"  Canonical: {canonical.decode('utf-8')}")
        print(f"  SHA-256:   {sha256_bytes(canonical)}")
        print()

    print("=" * 60)
    print(f"Generated {len(inputs)} test vectors.")

    all_pass = True
    print()
    print("Float rejection tests:")
    float_inputs = [
        '{"x":1.5}',
        '{"Year":2023.0}',
        '{"Mileage":0.1}',
    ]
    for inp in float_inputs:
        data = json.loads(inp)
        try:
            canonical_json_bytes(data)
            print(f"  FAIL: {inp} was NOT rejected (expected EncodingError)")
            all_pass = False
        except EncodingError:
            print(f"  OK:   {inp} correctly rejected")

    if not all_pass:
        sys.exit(1)


if __name__ == "__main__":
    main()
