"""
Block Inspection - Operation Classification.

============================================================
RESPONSIBILITY
============================================================
Turns the typed operation contents of a block into uniform
OperationRecord values.

- Closed kind taxonomy with short aliases
- Allow-set filtering, validated before any network access
- Per-kind extraction of source / destination / amount
- Fees scaled to the display unit for every fee-bearing kind

============================================================
EXTRACTION RULES
============================================================
endorsement                  endorsing delegate
transaction                  sender -> recipient, amount
ballot / proposals / reveal  acting account
activate_account             activated pkh, sum of credited
                             contract balance updates
origination / delegation     acting account -> delegate, balance
evidence / nonce kinds       no parties, no amount

============================================================
"""

from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from node_adapters import (
    ActivateAccountContent,
    BallotContent,
    Block,
    ConfigurationError,
    DelegationContent,
    DoubleBakingEvidenceContent,
    DoubleEndorsementEvidenceContent,
    EndorsementContent,
    OperationContent,
    OperationKind,
    OriginationContent,
    ProposalsContent,
    RevealContent,
    SeedNonceRevelationContent,
    TransactionContent,
)

from block_inspection.models import OperationRecord, ResolvedBlock


MUTEZ_PER_TEZ = Decimal(1_000_000)

KindFilter = Optional[frozenset]


# ============================================================
# TAXONOMY
# ============================================================

KNOWN_KINDS: dict[str, OperationKind] = {
    "endorsement": OperationKind.ENDORSEMENT,
    "end": OperationKind.ENDORSEMENT,
    "seed_nonce_revelation": OperationKind.SEED_NONCE_REVELATION,
    "double_endorsement_evidence": OperationKind.DOUBLE_ENDORSEMENT_EVIDENCE,
    "double_baking_evidence": OperationKind.DOUBLE_BAKING_EVIDENCE,
    "activate_account": OperationKind.ACTIVATE_ACCOUNT,
    "act": OperationKind.ACTIVATE_ACCOUNT,
    "proposals": OperationKind.PROPOSALS,
    "prop": OperationKind.PROPOSALS,
    "ballot": OperationKind.BALLOT,
    "bal": OperationKind.BALLOT,
    "reveal": OperationKind.REVEAL,
    "rev": OperationKind.REVEAL,
    "transaction": OperationKind.TRANSACTION,
    "tx": OperationKind.TRANSACTION,
    "origination": OperationKind.ORIGINATION,
    "orig": OperationKind.ORIGINATION,
    "delegation": OperationKind.DELEGATION,
    "del": OperationKind.DELEGATION,
}

OPERATION_TITLES: dict[OperationKind, str] = {
    OperationKind.ENDORSEMENT: "Endorsement",
    OperationKind.SEED_NONCE_REVELATION: "Nonce",
    OperationKind.DOUBLE_ENDORSEMENT_EVIDENCE: "Double Endorsement Evidence",
    OperationKind.DOUBLE_BAKING_EVIDENCE: "Double Baking Evidence",
    OperationKind.ACTIVATE_ACCOUNT: "Activation",
    OperationKind.PROPOSALS: "Proposals",
    OperationKind.BALLOT: "Ballot",
    OperationKind.REVEAL: "Reveal",
    OperationKind.TRANSACTION: "Transaction",
    OperationKind.ORIGINATION: "Origination",
    OperationKind.DELEGATION: "Delegation",
}

ALL_KINDS = "all"


def parse_kind_filter(kinds: Optional[Iterable[str]]) -> KindFilter:
    """
    Validate a list of kind names and aliases.

    Items may themselves be comma separated. "all", or an empty list,
    means no filtering and returns None.

    Raises:
        ConfigurationError: On any name outside the taxonomy
    """
    if not kinds:
        return None

    selected = set()
    wants_all = False
    for item in kinds:
        for name in item.split(","):
            name = name.strip()
            if not name:
                continue
            if name == ALL_KINDS:
                wants_all = True
                continue
            kind = KNOWN_KINDS.get(name)
            if kind is None:
                raise ConfigurationError(
                    message=f"Unknown operation kind: {name!r}",
                    config_key="kind",
                    context={"known": sorted(KNOWN_KINDS) + [ALL_KINDS]},
                )
            selected.add(kind)

    if wants_all or not selected:
        return None
    return frozenset(selected)


def mutez_to_tez(value: int) -> Decimal:
    """Scale an integer base-unit value to the display unit."""
    return Decimal(value) / MUTEZ_PER_TEZ


def _scaled(value: Optional[int]) -> Optional[Decimal]:
    return mutez_to_tez(value) if value is not None else None


# ============================================================
# PER-KIND EXTRACTION
# ============================================================

Parties = tuple[Optional[str], Optional[str], Optional[Decimal]]


def _endorsement(content: EndorsementContent) -> Parties:
    return content.delegate, None, None


def _transaction(content: TransactionContent) -> Parties:
    return content.source or None, content.destination or None, _scaled(content.amount)


def _acting_account(content: Any) -> Parties:
    return content.source or None, None, None


def _activation(content: ActivateAccountContent) -> Parties:
    credited = sum(
        update.change
        for update in content.balance_updates
        if update.is_contract and update.change > 0
    )
    return content.pkh or None, None, mutez_to_tez(credited)


def _with_delegate(content: Any) -> Parties:
    return content.source or None, content.delegate or None, _scaled(content.balance)


def _no_parties(content: OperationContent) -> Parties:
    return None, None, None


_EXTRACTORS: dict[type, Callable[[Any], Parties]] = {
    EndorsementContent: _endorsement,
    SeedNonceRevelationContent: _no_parties,
    DoubleEndorsementEvidenceContent: _no_parties,
    DoubleBakingEvidenceContent: _no_parties,
    ActivateAccountContent: _activation,
    ProposalsContent: _acting_account,
    BallotContent: _acting_account,
    RevealContent: _acting_account,
    TransactionContent: _transaction,
    OriginationContent: _with_delegate,
    DelegationContent: _with_delegate,
}


def classify_content(
    content: OperationContent,
    operation_hash: str,
    block: Optional[ResolvedBlock] = None,
) -> OperationRecord:
    """Build the record for a single content element."""
    source, destination, amount = _EXTRACTORS[type(content)](content)
    return OperationRecord(
        kind=content.kind.value,
        hash=operation_hash,
        title=OPERATION_TITLES[content.kind],
        source=source,
        destination=destination,
        amount=amount,
        fee=_scaled(content.fee),
        block=block,
    )


def classify(resolved: ResolvedBlock, kinds: KindFilter = None) -> list[OperationRecord]:
    """
    Classify every operation content element of a block.

    Args:
        resolved: Block to walk
        kinds: Allow-set from parse_kind_filter(); None keeps all kinds

    Returns:
        Records in block order
    """
    records = []
    for operation in resolved.block.iter_operations():
        for content in operation.contents:
            if kinds is not None and content.kind not in kinds:
                continue
            records.append(classify_content(content, operation.hash, resolved))
    return records


def filter_raw_operations(block: Block, kinds: KindFilter = None) -> list[dict[str, Any]]:
    """
    Raw RPC operations having at least one content of an allowed kind.

    Used for structured output, where whole operations are emitted
    rather than individual records.
    """
    selected = []
    for operation in block.iter_operations():
        if kinds is None or any(c.kind in kinds for c in operation.contents):
            selected.append(operation.raw)
    return selected
