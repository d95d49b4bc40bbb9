"""
Block Aggregation Tests.

Checks the per-block totals: operation count, volume, fees and rewards.
"""

import pytest
from decimal import Decimal

from block_inspection import BlockAggregate, ResolvedBlock, aggregate

from tests.builders import (
    ballot,
    delegation,
    endorsement,
    make_block,
    operation,
    reveal,
    transaction,
)


class TestAggregate:
    """Tests for aggregate()."""

    def test_single_transaction(self):
        block = make_block(5, operations=[[], [], [], [operation(1, transaction(1_000_000, 1_000))]])

        result = aggregate(block)

        assert result == BlockAggregate(
            operations_num=1,
            volume=Decimal("1"),
            fees=Decimal("0.001"),
            rewards=Decimal("0"),
        )

    def test_empty_block(self):
        result = aggregate(make_block(5))

        assert result.operations_num == 0
        assert result.volume == 0
        assert result.fees == 0
        assert result.rewards == 0

    def test_counts_contents_not_operations(self):
        block = make_block(5, operations=[
            [operation(1, endorsement(4)), operation(2, endorsement(4))],
            [operation(3, ballot())],
            [],
            [operation(4, reveal(fee=1_000), transaction(amount=500_000, fee=2_000))],
        ])

        result = aggregate(block)

        assert result.operations_num == 5
        assert result.fees == Decimal("0.003")
        assert result.volume == Decimal("0.5")

    def test_delegation_fee_without_volume(self):
        block = make_block(5, operations=[[operation(1, delegation(fee=1_257))]])

        result = aggregate(block)

        assert result.fees == Decimal("0.001257")
        assert result.volume == 0

    def test_rewards_from_block_and_endorsements(self):
        baker_updates = [
            {"kind": "contract", "contract": "tz1Baker", "change": "-512000000"},
            {"kind": "freezer", "category": "deposits", "delegate": "tz1Baker", "change": "512000000"},
            {"kind": "freezer", "category": "rewards", "delegate": "tz1Baker", "change": "16000000"},
        ]
        block = make_block(
            5,
            balance_updates=baker_updates,
            operations=[[operation(1, endorsement(4, reward=1_250_000))]],
        )

        result = aggregate(block)

        assert result.rewards == Decimal("17.25")

    def test_debited_rewards_are_ignored(self):
        updates = [
            {"kind": "freezer", "category": "rewards", "delegate": "tz1Baker", "change": "-3000000"},
            {"kind": "freezer", "category": "rewards", "delegate": "tz1Baker", "change": "2000000"},
        ]

        assert aggregate(make_block(5, balance_updates=updates)).rewards == Decimal("2")

    def test_resolved_block_accepted(self):
        block = make_block(5, operations=[[operation(1, transaction(3_000_000, 0))]])

        assert aggregate(ResolvedBlock(block=block)) == aggregate(block)

    def test_idempotent(self):
        block = make_block(5, operations=[[operation(1, transaction(), delegation())]])

        assert aggregate(block) == aggregate(block)

    def test_to_dict(self):
        block = make_block(5, operations=[[operation(1, transaction(1_000_000, 1_000))]])

        assert aggregate(block).to_dict() == {
            "operations_num": 1,
            "volume": "1",
            "fees": "0.001",
            "rewards": "0",
        }

    @pytest.mark.parametrize("fee", [0, 1, 999_999])
    def test_fees_are_exact(self, fee):
        block = make_block(5, operations=[[operation(1, transaction(fee=fee))]])
        assert aggregate(block).fees * 1_000_000 == fee
