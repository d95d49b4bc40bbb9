"""
Block Inspection - Data Models.

============================================================
RESPONSIBILITY
============================================================
Value types shared by the resolver, the classifier and the
aggregator.

- BlockReference: a parsed reference string (anchor + offset)
- ResolvedBlock: a block plus its best-effort successor
- OperationRecord: uniform view of one operation content element
- BlockAggregate: per-block totals derived on demand
- InspectionContext: explicit node handle + chain, threaded
  through every call instead of living in module globals

============================================================
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from node_adapters import BaseNodeService, Block


# ============================================================
# CONTEXT
# ============================================================

@dataclass(frozen=True)
class InspectionContext:
    """Node service and chain shared by one command invocation."""

    service: BaseNodeService
    """Node service used for every lookup."""

    chain_id: str = "main"
    """Chain identifier passed to the node."""


# ============================================================
# BLOCK REFERENCES
# ============================================================

@dataclass(frozen=True)
class BlockReference:
    """A reference string split into its anchor and offset."""

    text: str
    """Original reference as typed by the caller."""

    anchor: str
    """Hash, symbolic name or level digits; may be empty."""

    offset: int = 0
    """Relative offset applied after resolving the anchor."""

    @property
    def is_level(self) -> bool:
        """Empty anchors and anchors starting with a digit denote levels."""
        return not self.anchor or self.anchor[0].isdigit()


@dataclass(frozen=True)
class ResolvedBlock:
    """A block plus the block right after it, when one could be fetched."""

    block: Block
    successor: Optional[Block] = None

    def __post_init__(self) -> None:
        if self.successor is not None and self.successor.level != self.block.level + 1:
            raise ValueError(
                f"Successor level {self.successor.level} does not follow "
                f"block level {self.block.level}"
            )

    @property
    def level(self) -> int:
        return self.block.level

    @property
    def hash(self) -> str:
        return self.block.hash


# ============================================================
# OPERATION RECORDS
# ============================================================

@dataclass(frozen=True)
class OperationRecord:
    """
    Normalized view of one operation content element.

    Amount and fee are in the display unit (tez). Either is None when
    the kind carries no such value.
    """

    kind: str
    hash: str
    title: Optional[str] = None
    source: Optional[str] = None
    destination: Optional[str] = None
    amount: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    block: Optional[ResolvedBlock] = field(default=None, compare=False, repr=False)

    @property
    def level(self) -> Optional[int]:
        return self.block.level if self.block is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind,
            "title": self.title,
            "source": self.source,
            "destination": self.destination,
            "amount": str(self.amount) if self.amount is not None else None,
            "fee": str(self.fee) if self.fee is not None else None,
            "hash": self.hash,
            "level": self.level,
        }


# ============================================================
# AGGREGATES
# ============================================================

@dataclass(frozen=True)
class BlockAggregate:
    """Per-block totals in the display unit."""

    operations_num: int
    volume: Decimal
    fees: Decimal
    rewards: Decimal

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "operations_num": self.operations_num,
            "volume": str(self.volume),
            "fees": str(self.fees),
            "rewards": str(self.rewards),
        }
