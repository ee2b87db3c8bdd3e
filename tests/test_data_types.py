"""
Tests for block and bundle models: wire format and invariants
"""

import json

import pytest
from pydantic import ValidationError

from tips_explorer.data_types import (
    BlockRecord,
    BundleEvent,
    BundleEventKind,
    BundleHistory,
    DocumentType,
    TransactionIndexEntry,
)


def _block(**overrides) -> BlockRecord:
    fields = dict(
        hash="0xblock",
        number=12,
        timestamp=1_700_000_000,
        gas_used=42_000,
        gas_limit=30_000_000,
        cached_at=1_700_000_000_000,
        transactions=[
            {"hash": "0xa", "from": "0x1", "to": None, "gasUsed": 21000, "index": 0},
            {"hash": "0xb", "from": "0x2", "to": "0x3", "gasUsed": 21000, "index": 1, "bundleId": "B", "executionTimeUs": 9},
        ],
    )
    fields.update(overrides)
    return BlockRecord(**fields)


def test_large_integers_survive_json_round_trip():
    record = _block(gas_limit=30000000000000000000, number=2**70)

    payload = json.loads(record.to_json())
    assert payload["gasLimit"] == "30000000000000000000"
    assert payload["number"] == str(2**70)

    restored = BlockRecord.model_validate_json(record.to_json())
    assert restored.gas_limit == 30000000000000000000
    assert restored.number == 2**70
    assert restored.transactions[1].bundle_id == "B"


def test_wire_format_uses_camel_case_and_decimal_strings():
    payload = json.loads(_block().to_json())

    assert set(payload) == {"hash", "number", "timestamp", "transactions", "gasUsed", "gasLimit", "cachedAt"}
    assert payload["timestamp"] == "1700000000"
    assert payload["cachedAt"] == 1_700_000_000_000
    assert payload["transactions"][0] == {
        "hash": "0xa",
        "from": "0x1",
        "to": None,
        "gasUsed": "21000",
        "index": 0,
        "bundleId": None,
        "executionTimeUs": None,
    }


def test_hex_quantities_are_accepted():
    record = _block(gas_used="0x5208")
    assert record.gas_used == 21000


def test_transaction_order_must_be_contiguous():
    with pytest.raises(ValidationError):
        _block(transactions=[
            {"hash": "0xa", "from": "0x1", "gasUsed": 1, "index": 0},
            {"hash": "0xb", "from": "0x1", "gasUsed": 1, "index": 2},
        ])


def test_boolean_is_not_an_integer():
    with pytest.raises(ValidationError):
        _block(gas_used=True)


def test_transactions_needing_enrichment_skip_system_transaction():
    record = _block(transactions=[
        {"hash": "0xa", "from": "0x1", "gasUsed": 1, "index": 0},
        {"hash": "0xb", "from": "0x1", "gasUsed": 1, "index": 1},
        {"hash": "0xc", "from": "0x1", "gasUsed": 1, "index": 2, "bundleId": "B"},
    ])

    assert [tx.hash for tx in record.transactions_needing_enrichment()] == ["0xb"]


def test_unknown_event_kind_is_preserved():
    event = BundleEvent.model_validate({"event": "Cancelled", "data": {"timestamp": 5, "extra": 1}})

    assert event.kind is None
    assert event.simulation_results is None
    assert event.to_view() == {"event": "Cancelled", "data": {"timestamp": 5, "extra": 1}}


def test_dropped_event_has_no_simulation():
    event = BundleEvent.model_validate({"event": "Dropped", "data": {"timestamp": 5, "reason": "expired"}})

    assert event.kind is BundleEventKind.DROPPED
    assert event.data.reason == "expired"
    assert event.simulation_results is None


def test_history_sorted_by_timestamp():
    history = BundleHistory.model_validate({"history": [
        {"event": "BlockIncluded", "data": {"timestamp": 30}},
        {"event": "Received", "data": {"timestamp": 10}},
        {"event": "BuilderIncluded", "data": {"timestamp": 20}},
    ]})

    assert [event.event for event in history.sorted_events()] == ["Received", "BuilderIncluded", "BlockIncluded"]
    assert [event.event for event in history.history][0] == "BlockIncluded"


def test_transaction_index_entry_defaults():
    entry = TransactionIndexEntry.model_validate({"bundle_ids": ["B1"], "sender": "0xs", "nonce": "0x1"})
    assert entry.bundle_ids == ["B1"]
    assert TransactionIndexEntry.model_validate({}).bundle_ids == []


def test_document_keys():
    assert DocumentType.BLOCK.key("0xabc") == "blocks/0xabc"
    assert DocumentType.BUNDLE.key("uuid") == "bundles/uuid"
    assert DocumentType.TRANSACTION.key("0xdef") == "transactions/by_hash/0xdef"
