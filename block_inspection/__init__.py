"""
Block Inspection Package - Resolve, classify and summarize blocks.

Flow:
    reference string -> BlockResolver -> ResolvedBlock
    ResolvedBlock    -> classify()    -> [OperationRecord]
    ResolvedBlock    -> aggregate()   -> BlockAggregate

Quick Start:
    from block_inspection import (
        BlockResolver,
        InspectionContext,
        aggregate,
        classify,
        parse_kind_filter,
    )

    async def show(service):
        kinds = parse_kind_filter(["tx", "del"])  # fails fast on typos
        resolver = BlockResolver(InspectionContext(service, "main"))
        resolved = await resolver.resolve("head~3", want_successor=True)

        summary = aggregate(resolved)
        print(f"Volume: {summary.volume} / Fees: {summary.fees}")
        for record in classify(resolved, kinds):
            print(record.kind, record.source, record.amount)
"""

from block_inspection.aggregation import aggregate
from block_inspection.classification import (
    ALL_KINDS,
    KNOWN_KINDS,
    MUTEZ_PER_TEZ,
    OPERATION_TITLES,
    KindFilter,
    classify,
    classify_content,
    filter_raw_operations,
    mutez_to_tez,
    parse_kind_filter,
)
from block_inspection.models import (
    BlockAggregate,
    BlockReference,
    InspectionContext,
    OperationRecord,
    ResolvedBlock,
)
from block_inspection.resolver import BlockResolver, parse_reference


__all__ = [
    # Models
    "BlockAggregate",
    "BlockReference",
    "InspectionContext",
    "OperationRecord",
    "ResolvedBlock",

    # Resolver
    "BlockResolver",
    "parse_reference",

    # Classification
    "ALL_KINDS",
    "KNOWN_KINDS",
    "MUTEZ_PER_TEZ",
    "OPERATION_TITLES",
    "KindFilter",
    "classify",
    "classify_content",
    "filter_raw_operations",
    "mutez_to_tez",
    "parse_kind_filter",

    # Aggregation
    "aggregate",
]
