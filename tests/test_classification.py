"""
Operation Classification Tests.

============================================================
PURPOSE
============================================================
Tests for the operation kind taxonomy and record extraction.

TEST PRINCIPLES:
- Every known kind classifies into a record
- Filters are validated before anything is fetched
- Absent amounts and fees stay absent, never zero

============================================================
"""

import pytest
from decimal import Decimal

from block_inspection import (
    KNOWN_KINDS,
    OPERATION_TITLES,
    ResolvedBlock,
    classify,
    classify_content,
    filter_raw_operations,
    mutez_to_tez,
    parse_kind_filter,
)
from node_adapters import CONTENT_TYPES, ConfigurationError, OperationKind, parse_content

from tests.builders import (
    activation,
    ballot,
    delegation,
    double_baking_evidence,
    double_endorsement_evidence,
    endorsement,
    make_block,
    op_hash,
    operation,
    origination,
    proposals,
    reveal,
    seed_nonce_revelation,
    transaction,
)


ALL_CONTENT_SAMPLES = [
    endorsement(1),
    seed_nonce_revelation(),
    double_endorsement_evidence(),
    double_baking_evidence(),
    activation(),
    proposals(),
    ballot(),
    reveal(),
    transaction(),
    origination(),
    delegation(),
]


@pytest.fixture
def mixed_block():
    """Block with one transaction, one delegation and one endorsement."""
    block = make_block(20, operations=[
        [operation(1, endorsement(19))],
        [],
        [],
        [
            operation(2, transaction(amount=1_000_000, fee=1_000)),
            operation(3, delegation()),
        ],
    ])
    return ResolvedBlock(block=block)


# ============================================================
# TAXONOMY TESTS
# ============================================================

class TestKindFilter:
    """Tests for parse_kind_filter."""

    def test_names_and_aliases(self):
        kinds = parse_kind_filter(["tx", "delegation"])
        assert kinds == frozenset({OperationKind.TRANSACTION, OperationKind.DELEGATION})

    def test_comma_separated(self):
        assert parse_kind_filter(["tx,del"]) == parse_kind_filter(["tx", "del"])

    def test_all_means_no_filter(self):
        assert parse_kind_filter(["all"]) is None
        assert parse_kind_filter(["tx", "all"]) is None

    def test_empty_means_no_filter(self):
        assert parse_kind_filter(None) is None
        assert parse_kind_filter([]) is None

    def test_unknown_kind(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_kind_filter(["tx", "xyz"])

        assert exc_info.value.config_key == "kind"
        assert "xyz" in str(exc_info.value)

    def test_every_alias_maps_to_known_kind(self):
        assert set(KNOWN_KINDS.values()) == set(OperationKind)

    def test_every_kind_has_title(self):
        assert set(OPERATION_TITLES) == set(OperationKind)


# ============================================================
# CLASSIFICATION TESTS
# ============================================================

class TestClassify:
    """Tests for classify and classify_content."""

    def test_every_content_type_is_classified(self):
        samples = [parse_content(data) for data in ALL_CONTENT_SAMPLES]

        assert {type(s) for s in samples} == set(CONTENT_TYPES.values())
        for content in samples:
            record = classify_content(content, op_hash(1))
            assert record.kind == content.kind.value
            assert record.title == OPERATION_TITLES[content.kind]

    def test_filter_tx_and_delegation(self, mixed_block):
        records = classify(mixed_block, parse_kind_filter(["tx", "del"]))

        assert [r.kind for r in records] == ["transaction", "delegation"]

    def test_no_filter_keeps_block_order(self, mixed_block):
        records = classify(mixed_block)

        assert [r.kind for r in records] == ["endorsement", "transaction", "delegation"]
        assert all(r.level == 20 for r in records)

    def test_transaction_record(self, mixed_block):
        record = classify(mixed_block, parse_kind_filter(["tx"]))[0]

        assert record.source == "tz1Source"
        assert record.destination == "tz1Destination"
        assert record.amount == Decimal("1")
        assert record.fee == Decimal("0.001")
        assert record.hash == op_hash(2)
        assert record.block is mixed_block

    def test_endorsement_has_delegate_only(self, mixed_block):
        record = classify(mixed_block, parse_kind_filter(["end"]))[0]

        assert record.source == "tz1Endorser"
        assert record.destination is None
        assert record.amount is None
        assert record.fee is None

    def test_transaction_without_amount(self):
        content = parse_content(transaction(amount=None, fee=None))
        record = classify_content(content, op_hash(1))

        assert record.amount is None
        assert record.fee is None

    def test_delegation_targets_delegate(self):
        record = classify_content(parse_content(delegation(delegate="tz1New")), op_hash(1))

        assert record.source == "tz1Delegator"
        assert record.destination == "tz1New"
        assert record.fee == Decimal("0.001257")

    def test_activation_amount_is_credited_balance(self):
        record = classify_content(parse_content(activation(credited=5_250_000)), op_hash(1))

        assert record.source == "tz1Activated"
        assert record.amount == Decimal("5.25")
        assert record.fee is None

    def test_multi_content_operation_shares_hash(self):
        block = make_block(3, operations=[[operation(9, reveal(), transaction())]])
        records = classify(ResolvedBlock(block=block))

        assert [r.kind for r in records] == ["reveal", "transaction"]
        assert {r.hash for r in records} == {op_hash(9)}

    def test_to_dict_stringifies_amounts(self, mixed_block):
        data = classify(mixed_block, parse_kind_filter(["tx"]))[0].to_dict()

        assert data["amount"] == "1"
        assert data["fee"] == "0.001"
        assert data["level"] == 20


# ============================================================
# RAW FILTER TESTS
# ============================================================

class TestFilterRawOperations:
    """Tests for structured-output operation filtering."""

    def test_whole_operation_kept_on_any_match(self):
        block = make_block(3, operations=[
            [operation(1, endorsement(2))],
            [operation(2, reveal(), transaction())],
        ])

        raw = filter_raw_operations(block, parse_kind_filter(["tx"]))

        assert [op["hash"] for op in raw] == [op_hash(2)]
        assert len(raw[0]["contents"]) == 2

    def test_no_filter_returns_everything(self):
        block = make_block(3, operations=[[operation(1, endorsement(2))], [operation(2, ballot())]])
        assert len(filter_raw_operations(block)) == 2


class TestUnits:
    """Tests for base unit scaling."""

    def test_mutez_to_tez(self):
        assert mutez_to_tez(1_000_000) == Decimal("1")
        assert mutez_to_tez(1_000) == Decimal("0.001")
        assert mutez_to_tez(0) == Decimal("0")
