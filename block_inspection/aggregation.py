"""
Block Inspection - Block Aggregates.

============================================================
RESPONSIBILITY
============================================================
Computes per-block totals from the operation and balance
update lists of a block.

- operations_num: content elements across all operation groups
- fees:           sum of fees of fee-bearing contents
- volume:         sum of transferred transaction amounts
- rewards:        credited "rewards" balance updates, from the
                  block metadata and from endorsement metadata

Sums are kept in integer mutez and scaled once at the end.
Aggregates are never stored; recompute them when needed.

============================================================
"""

from typing import Iterable, Union

from node_adapters import BalanceUpdate, Block, EndorsementContent, TransactionContent

from block_inspection.classification import mutez_to_tez
from block_inspection.models import BlockAggregate, ResolvedBlock


REWARDS_CATEGORY = "rewards"


def _credited_rewards(updates: Iterable[BalanceUpdate]) -> int:
    return sum(
        update.change
        for update in updates
        if update.category == REWARDS_CATEGORY and update.change > 0
    )


def aggregate(block: Union[ResolvedBlock, Block]) -> BlockAggregate:
    """
    Compute the aggregate of a block.

    Pure function of the block; calling it twice on the same block
    gives identical results.
    """
    if isinstance(block, ResolvedBlock):
        block = block.block

    operations_num = 0
    fees = 0
    volume = 0
    rewards = _credited_rewards(block.metadata.balance_updates)

    for operation in block.iter_operations():
        operations_num += len(operation.contents)

        for content in operation.contents:
            if content.fee is not None:
                fees += content.fee

            if isinstance(content, TransactionContent) and content.amount is not None:
                volume += content.amount

            if isinstance(content, EndorsementContent):
                rewards += _credited_rewards(content.balance_updates)

    return BlockAggregate(
        operations_num=operations_num,
        volume=mutez_to_tez(volume),
        fees=mutez_to_tez(fees),
        rewards=mutez_to_tez(rewards),
    )
