"""
Node Data Models - Typed view of the Tezos RPC block structure.

Blocks are parsed once from the node's JSON into immutable dataclasses.
Operation contents form a closed set of variants, one per operation kind,
each carrying only the fields relevant to that kind. Amounts stay in the
chain's integer base unit (mutez) here; scaling to the display unit is
the job of the inspection layer.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional


logger = logging.getLogger(__name__)


class AdapterStatus(Enum):
    """Health status of a node adapter."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class OperationKind(Enum):
    """Operation content kinds understood by the adapter."""
    ENDORSEMENT = "endorsement"
    SEED_NONCE_REVELATION = "seed_nonce_revelation"
    DOUBLE_ENDORSEMENT_EVIDENCE = "double_endorsement_evidence"
    DOUBLE_BAKING_EVIDENCE = "double_baking_evidence"
    ACTIVATE_ACCOUNT = "activate_account"
    PROPOSALS = "proposals"
    BALLOT = "ballot"
    REVEAL = "reveal"
    TRANSACTION = "transaction"
    ORIGINATION = "origination"
    DELEGATION = "delegation"


def _int(value: Any) -> Optional[int]:
    """RPC encodes big numbers as decimal strings."""
    if value is None:
        return None
    return int(value)


# =============================================================
# BALANCE UPDATES
# =============================================================


@dataclass(frozen=True)
class BalanceUpdate:
    """A ledger side effect recorded on a block or an operation."""
    kind: str
    change: int
    category: Optional[str] = None
    contract: Optional[str] = None
    delegate: Optional[str] = None
    cycle: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BalanceUpdate":
        """Create from an RPC balance update object."""
        return cls(
            kind=data.get("kind", ""),
            change=int(data.get("change", 0)),
            category=data.get("category"),
            contract=data.get("contract"),
            delegate=data.get("delegate"),
            # Older protocols report the freezer cycle as "level"
            cycle=_int(data.get("cycle", data.get("level"))),
        )

    @property
    def is_contract(self) -> bool:
        return self.kind == "contract"


def _balance_updates(metadata: Optional[dict[str, Any]]) -> tuple[BalanceUpdate, ...]:
    if not metadata:
        return ()
    return tuple(BalanceUpdate.from_dict(u) for u in metadata.get("balance_updates", []))


# =============================================================
# OPERATION CONTENTS
# =============================================================


@dataclass(frozen=True)
class OperationContent:
    """Base class for one element of an operation's contents list."""
    kind: ClassVar[OperationKind]

    @property
    def fee(self) -> Optional[int]:
        """Fee in mutez; None for kinds that carry no fee."""
        return None


@dataclass(frozen=True)
class EndorsementContent(OperationContent):
    kind: ClassVar[OperationKind] = OperationKind.ENDORSEMENT

    level: int = 0
    delegate: Optional[str] = None
    slots: tuple[int, ...] = ()
    balance_updates: tuple[BalanceUpdate, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EndorsementContent":
        metadata = data.get("metadata") or {}
        return cls(
            level=int(data.get("level", 0)),
            delegate=metadata.get("delegate"),
            slots=tuple(metadata.get("slots", [])),
            balance_updates=_balance_updates(metadata),
        )


@dataclass(frozen=True)
class SeedNonceRevelationContent(OperationContent):
    kind: ClassVar[OperationKind] = OperationKind.SEED_NONCE_REVELATION

    level: int = 0
    nonce: str = ""
    balance_updates: tuple[BalanceUpdate, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SeedNonceRevelationContent":
        return cls(
            level=int(data.get("level", 0)),
            nonce=data.get("nonce", ""),
            balance_updates=_balance_updates(data.get("metadata")),
        )


@dataclass(frozen=True)
class DoubleEndorsementEvidenceContent(OperationContent):
    kind: ClassVar[OperationKind] = OperationKind.DOUBLE_ENDORSEMENT_EVIDENCE

    op1: dict[str, Any] = field(default_factory=dict)
    op2: dict[str, Any] = field(default_factory=dict)
    balance_updates: tuple[BalanceUpdate, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DoubleEndorsementEvidenceContent":
        return cls(
            op1=data.get("op1") or {},
            op2=data.get("op2") or {},
            balance_updates=_balance_updates(data.get("metadata")),
        )


@dataclass(frozen=True)
class DoubleBakingEvidenceContent(OperationContent):
    kind: ClassVar[OperationKind] = OperationKind.DOUBLE_BAKING_EVIDENCE

    bh1: dict[str, Any] = field(default_factory=dict)
    bh2: dict[str, Any] = field(default_factory=dict)
    balance_updates: tuple[BalanceUpdate, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DoubleBakingEvidenceContent":
        return cls(
            bh1=data.get("bh1") or {},
            bh2=data.get("bh2") or {},
            balance_updates=_balance_updates(data.get("metadata")),
        )


@dataclass(frozen=True)
class ActivateAccountContent(OperationContent):
    kind: ClassVar[OperationKind] = OperationKind.ACTIVATE_ACCOUNT

    pkh: str = ""
    secret: str = ""
    balance_updates: tuple[BalanceUpdate, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivateAccountContent":
        return cls(
            pkh=data.get("pkh", ""),
            secret=data.get("secret", ""),
            balance_updates=_balance_updates(data.get("metadata")),
        )


@dataclass(frozen=True)
class ProposalsContent(OperationContent):
    kind: ClassVar[OperationKind] = OperationKind.PROPOSALS

    source: str = ""
    period: int = 0
    proposals: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProposalsContent":
        return cls(
            source=data.get("source", ""),
            period=int(data.get("period", 0)),
            proposals=tuple(data.get("proposals", [])),
        )


@dataclass(frozen=True)
class BallotContent(OperationContent):
    kind: ClassVar[OperationKind] = OperationKind.BALLOT

    source: str = ""
    period: int = 0
    proposal: str = ""
    ballot: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BallotContent":
        return cls(
            source=data.get("source", ""),
            period=int(data.get("period", 0)),
            proposal=data.get("proposal", ""),
            ballot=data.get("ballot", ""),
        )


@dataclass(frozen=True)
class ManagerContent(OperationContent):
    """Manager operations are signed by an account and pay a fee."""

    source: str = ""
    fee_mutez: Optional[int] = None
    counter: Optional[int] = None
    gas_limit: Optional[int] = None
    storage_limit: Optional[int] = None
    balance_updates: tuple[BalanceUpdate, ...] = ()

    @property
    def fee(self) -> Optional[int]:
        return self.fee_mutez

    @staticmethod
    def _manager_fields(data: dict[str, Any]) -> dict[str, Any]:
        return {
            "source": data.get("source", ""),
            "fee_mutez": _int(data.get("fee")),
            "counter": _int(data.get("counter")),
            "gas_limit": _int(data.get("gas_limit")),
            "storage_limit": _int(data.get("storage_limit")),
            "balance_updates": _balance_updates(data.get("metadata")),
        }


@dataclass(frozen=True)
class RevealContent(ManagerContent):
    kind: ClassVar[OperationKind] = OperationKind.REVEAL

    public_key: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RevealContent":
        return cls(public_key=data.get("public_key", ""), **cls._manager_fields(data))


@dataclass(frozen=True)
class TransactionContent(ManagerContent):
    kind: ClassVar[OperationKind] = OperationKind.TRANSACTION

    amount: Optional[int] = None
    destination: str = ""
    parameters: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransactionContent":
        return cls(
            amount=_int(data.get("amount")),
            destination=data.get("destination", ""),
            parameters=data.get("parameters"),
            **cls._manager_fields(data),
        )


@dataclass(frozen=True)
class OriginationContent(ManagerContent):
    kind: ClassVar[OperationKind] = OperationKind.ORIGINATION

    balance: Optional[int] = None
    delegate: Optional[str] = None
    script: Optional[dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OriginationContent":
        return cls(
            balance=_int(data.get("balance")),
            delegate=data.get("delegate"),
            script=data.get("script"),
            **cls._manager_fields(data),
        )


@dataclass(frozen=True)
class DelegationContent(ManagerContent):
    kind: ClassVar[OperationKind] = OperationKind.DELEGATION

    delegate: Optional[str] = None
    balance: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DelegationContent":
        return cls(
            delegate=data.get("delegate"),
            balance=_int(data.get("balance")),
            **cls._manager_fields(data),
        )


CONTENT_TYPES: dict[str, type] = {
    cls.kind.value: cls
    for cls in (
        EndorsementContent,
        SeedNonceRevelationContent,
        DoubleEndorsementEvidenceContent,
        DoubleBakingEvidenceContent,
        ActivateAccountContent,
        ProposalsContent,
        BallotContent,
        RevealContent,
        TransactionContent,
        OriginationContent,
        DelegationContent,
    )
}


def parse_content(data: dict[str, Any]) -> Optional[OperationContent]:
    """
    Parse one operation content element.

    Returns None for kinds outside the known set; the caller decides how
    to account for them.
    """
    content_type = CONTENT_TYPES.get(data.get("kind", ""))
    if content_type is None:
        return None
    return content_type.from_dict(data)


# =============================================================
# OPERATIONS AND BLOCKS
# =============================================================


@dataclass(frozen=True)
class Operation:
    """A signed operation group: one hash, one or more contents."""
    hash: str
    branch: str = ""
    protocol: str = ""
    chain_id: str = ""
    contents: tuple[OperationContent, ...] = ()
    signature: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Operation":
        """Create from an RPC operation object, dropping unknown content kinds."""
        contents = []
        for item in data.get("contents", []):
            content = parse_content(item)
            if content is None:
                logger.debug(
                    f"Skipping unsupported content kind {item.get('kind')!r} "
                    f"in operation {data.get('hash')}"
                )
                continue
            contents.append(content)

        return cls(
            hash=data.get("hash", ""),
            branch=data.get("branch", ""),
            protocol=data.get("protocol", ""),
            chain_id=data.get("chain_id", ""),
            contents=tuple(contents),
            signature=data.get("signature"),
            raw=data,
        )


@dataclass(frozen=True)
class BlockHeader:
    """Shell and protocol header fields."""
    level: int
    predecessor: str
    timestamp: Optional[datetime] = None
    proto: int = 0
    validation_pass: int = 0
    operations_hash: str = ""
    fitness: tuple[str, ...] = ()
    context: str = ""
    priority: int = 0
    signature: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlockHeader":
        """Create from an RPC header object."""
        timestamp = data.get("timestamp")
        return cls(
            level=int(data["level"]),
            predecessor=data.get("predecessor", ""),
            timestamp=_parse_timestamp(timestamp) if timestamp else None,
            proto=int(data.get("proto", 0)),
            validation_pass=int(data.get("validation_pass", 0)),
            operations_hash=data.get("operations_hash", ""),
            fitness=tuple(data.get("fitness", [])),
            context=data.get("context", ""),
            priority=int(data.get("priority", data.get("payload_round", 0))),
            signature=data.get("signature"),
        )


def _parse_timestamp(value: str) -> datetime:
    # fromisoformat() before 3.11 does not accept the trailing "Z"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class LevelInfo:
    """Position of a block within cycles and voting periods."""
    level: int
    cycle: int = 0
    cycle_position: int = 0
    voting_period: Optional[int] = None
    voting_period_position: Optional[int] = None
    expected_commitment: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LevelInfo":
        return cls(
            level=int(data.get("level", 0)),
            cycle=int(data.get("cycle", 0)),
            cycle_position=int(data.get("cycle_position", 0)),
            voting_period=_int(data.get("voting_period")),
            voting_period_position=_int(data.get("voting_period_position")),
            expected_commitment=bool(data.get("expected_commitment", False)),
        )


@dataclass(frozen=True)
class BlockMetadata:
    """Protocol-level metadata attached to a block."""
    baker: Optional[str] = None
    level: Optional[LevelInfo] = None
    max_operations_ttl: int = 0
    consumed_gas: int = 0
    voting_period_kind: Optional[str] = None
    balance_updates: tuple[BalanceUpdate, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BlockMetadata":
        level = data.get("level") or data.get("level_info")
        return cls(
            baker=data.get("baker"),
            level=LevelInfo.from_dict(level) if level else None,
            max_operations_ttl=int(data.get("max_operations_ttl", 0)),
            consumed_gas=int(data.get("consumed_gas", 0)),
            voting_period_kind=data.get("voting_period_kind"),
            balance_updates=_balance_updates(data),
        )


@dataclass(frozen=True)
class Block:
    """
    A full block as returned by /chains/<chain>/blocks/<id>.

    `operations` is a list of validation passes, each a list of operation
    groups. The original JSON is kept in `raw` for structured output.
    """
    hash: str
    header: BlockHeader
    metadata: BlockMetadata = field(default_factory=BlockMetadata)
    protocol: str = ""
    chain_id: str = ""
    operations: tuple[tuple[Operation, ...], ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def level(self) -> int:
        return self.header.level

    def iter_operations(self):
        """Yield every operation group across all validation passes."""
        for validation_pass in self.operations:
            yield from validation_pass

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Block":
        """Create from an RPC block object."""
        return cls(
            hash=data["hash"],
            header=BlockHeader.from_dict(data["header"]),
            metadata=BlockMetadata.from_dict(data.get("metadata") or {}),
            protocol=data.get("protocol", ""),
            chain_id=data.get("chain_id", ""),
            operations=tuple(
                tuple(Operation.from_dict(op) for op in validation_pass)
                for validation_pass in data.get("operations", [])
            ),
            raw=data,
        )


@dataclass(frozen=True)
class HeadNotification:
    """A new head announced by the node's monitor stream."""
    hash: str
    level: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HeadNotification":
        return cls(hash=data["hash"], level=int(data["level"]))


# =============================================================
# ADAPTER HEALTH
# =============================================================


@dataclass
class AdapterHealth:
    """Health status of a node adapter."""
    status: AdapterStatus
    last_check: datetime
    latency_ms: Optional[float] = None
    error_count: int = 0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None
    consecutive_failures: int = 0
    requests_total: int = 0

    def is_healthy(self) -> bool:
        """Check if adapter is operational."""
        return self.status == AdapterStatus.HEALTHY

    def is_usable(self) -> bool:
        """Check if adapter can still be used."""
        return self.status in (AdapterStatus.HEALTHY, AdapterStatus.DEGRADED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "last_check": self.last_check.isoformat(),
            "latency_ms": self.latency_ms,
            "error_count": self.error_count,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "consecutive_failures": self.consecutive_failures,
            "requests_total": self.requests_total,
        }
