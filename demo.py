#!/usr/bin/env python3
"""One-shot demo: reconciles hardcoded sample chunks and optionally whole files."""

import argparse
import json
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from switchrecon.correlate import join_by_reference
from switchrecon.models import Channel, transaction_to_dict
from switchrecon.session import ReconcileSession

SAMPLE_FIXED_CHUNKS = [
    """[15 Jan 2024 10:00:00.123] <0200>
Field 003: [401000]
Field 004: [000000100000]
Field 011: [123456]
Field 037: [REF000000001]
""",
    """[15 Jan 2024 10:00:01.456] <0210>
Field 003: [401000]
Field 011: [123456]
Field 037: [REF000000001]
Field 039: [00]
[15 Jan 2024 10:00:02.000] <0200>
Field 003: [301000]
Field 011: [654321]
""",
]

SAMPLE_JSON_CHUNKS = [
    """[2024-01-15 10:00:00.200] REQ {"mti": "0200", "referenceNumber": "REF000000001", "pcode": "401000", "traceNumber": "123456"}
[2024-01-15 10:00:00.300] REQ {"mti": "0800", "traceNumber": "000777"}
""",
    """[2024-01-15 10:00:01.500] RSP {"responseStatus": "00", "data": {"transactionInfo": {"referenceNumber": "REF000000001"}}}
[2024-01-15 10:00:01.600] RSP {"responseStatus": "00", "data": {"traceNumber": "000777"}}
[2024-01-15 10:00:02.100] REQ {"mti": "0200", "referenceNumber": "REF000000002", "pcode": "011000"}
[2024-01-15 10:00:02.900] RSP {"responseStatus": "96", "responseMessage": "System malfunction"}
""",
]


def _print_transactions(label: str, transactions):
    for tx in transactions:
        d = transaction_to_dict(tx)
        d.pop("request", None)
        d.pop("response", None)
        d.pop("raw_content", None)
        print(f"\n--- [{label}] {tx.status} ---")
        print(json.dumps(d, indent=2, default=str))


def demo_hardcoded():
    """Feed the sample chunks one at a time, then drain."""
    print("=" * 60)
    print("Switch Log Reconciler - Demo")
    print("=" * 60)

    session = ReconcileSession()
    fixed_txs = []
    json_txs = []
    for i, (fixed_chunk, json_chunk) in enumerate(zip(SAMPLE_FIXED_CHUNKS, SAMPLE_JSON_CHUNKS), 1):
        fixed = session.ingest(Channel.FIXED_FIELD, fixed_chunk)
        js = session.ingest(Channel.JSON, json_chunk)
        _print_transactions(f"chunk {i} fixed", fixed)
        _print_transactions(f"chunk {i} json", js)
        fixed_txs.extend(fixed)
        json_txs.extend(js)

    drained = session.finish()
    _print_transactions("drain", drained)
    for tx in drained:
        (fixed_txs if tx.channel == Channel.FIXED_FIELD.value else json_txs).append(tx)

    groups = join_by_reference(fixed_txs, json_txs)
    matched = sum(1 for g in groups if g.is_matched)

    print("\n" + "=" * 60)
    print(f"Summary: {len(fixed_txs)} fixed-field, {len(json_txs)} JSON, "
          f"{matched} reference(s) seen on both channels")
    print(f"Counters: {session.stats.get_all()['counters']}")
    print("=" * 60)


def demo_file(filepath: str, channel: Channel):
    """Reconcile an entire file as a single chunk and print results."""
    print(f"\n{'=' * 60}")
    print(f"Reconciling file ({channel.value}): {filepath}")
    print("=" * 60)

    with open(filepath, "r", encoding="utf-8") as f:
        text = f.read()

    session = ReconcileSession()
    transactions = session.ingest(channel, text) + session.finish()
    _print_transactions(channel.value, transactions)

    statuses: dict[str, int] = {}
    for tx in transactions:
        statuses[tx.status] = statuses.get(tx.status, 0) + 1

    print(f"\n{'=' * 60}")
    print(f"File summary: {len(transactions)} transactions")
    print(f"Statuses: {statuses}")
    print("=" * 60)


def main():
    parser = argparse.ArgumentParser(description="Switch Log Reconciler Demo")
    parser.add_argument("--fixed-file", help="Path to a fixed-field channel log")
    parser.add_argument("--json-file", help="Path to a JSON channel log")
    args = parser.parse_args()

    demo_hardcoded()

    if args.fixed_file:
        demo_file(args.fixed_file, Channel.FIXED_FIELD)
    if args.json_file:
        demo_file(args.json_file, Channel.JSON)


if __name__ == "__main__":
    main()
