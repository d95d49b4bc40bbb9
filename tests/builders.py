"""
RPC-shaped test data.

Builders return dictionaries in the layout the node RPC serves, so tests
go through the same parsing path as real responses.
"""

from typing import Any, Optional

from node_adapters import Block, HeadNotification


GENESIS_LEVEL = 0


def block_hash(level: int, fork: str = "L") -> str:
    """Deterministic 51-character block hash for a level."""
    return f"B{fork}{level:049d}"


def op_hash(n: int) -> str:
    return f"oo{n:049d}"


def transaction(
    amount: Optional[int] = 1_000_000,
    fee: Optional[int] = 1_000,
    source: str = "tz1Source",
    destination: str = "tz1Destination",
) -> dict[str, Any]:
    data = {
        "kind": "transaction",
        "source": source,
        "counter": "10",
        "gas_limit": "10300",
        "storage_limit": "0",
        "destination": destination,
    }
    if amount is not None:
        data["amount"] = str(amount)
    if fee is not None:
        data["fee"] = str(fee)
    return data


def delegation(delegate: str = "tz1Baker", fee: int = 1_257, source: str = "tz1Delegator") -> dict[str, Any]:
    return {
        "kind": "delegation",
        "source": source,
        "fee": str(fee),
        "counter": "11",
        "gas_limit": "10000",
        "storage_limit": "0",
        "delegate": delegate,
    }


def reveal(fee: int = 1_268, source: str = "tz1Revealer") -> dict[str, Any]:
    return {
        "kind": "reveal",
        "source": source,
        "fee": str(fee),
        "counter": "12",
        "gas_limit": "10000",
        "storage_limit": "0",
        "public_key": "edpkExample",
    }


def origination(balance: int = 0, fee: int = 2_000, source: str = "tz1Originator") -> dict[str, Any]:
    return {
        "kind": "origination",
        "source": source,
        "fee": str(fee),
        "counter": "13",
        "gas_limit": "20000",
        "storage_limit": "500",
        "balance": str(balance),
        "script": {"code": [], "storage": {"int": "0"}},
    }


def endorsement(level: int, delegate: str = "tz1Endorser", reward: int = 0) -> dict[str, Any]:
    updates = []
    if reward:
        updates = [
            {"kind": "contract", "contract": delegate, "change": str(-reward * 8)},
            {"kind": "freezer", "category": "deposits", "delegate": delegate, "change": str(reward * 8)},
            {"kind": "freezer", "category": "rewards", "delegate": delegate, "change": str(reward)},
        ]
    return {
        "kind": "endorsement",
        "level": level,
        "metadata": {"delegate": delegate, "slots": [1, 5], "balance_updates": updates},
    }


def activation(pkh: str = "tz1Activated", credited: int = 5_000_000) -> dict[str, Any]:
    return {
        "kind": "activate_account",
        "pkh": pkh,
        "secret": "0f0f",
        "metadata": {
            "balance_updates": [{"kind": "contract", "contract": pkh, "change": str(credited)}],
        },
    }


def ballot(source: str = "tz1Voter") -> dict[str, Any]:
    return {"kind": "ballot", "source": source, "period": 20, "proposal": "PtProposal", "ballot": "yay"}


def proposals(source: str = "tz1Proposer") -> dict[str, Any]:
    return {"kind": "proposals", "source": source, "period": 19, "proposals": ["PtProposal"]}


def seed_nonce_revelation(level: int = 1) -> dict[str, Any]:
    return {"kind": "seed_nonce_revelation", "level": level, "nonce": "abcd"}


def double_baking_evidence() -> dict[str, Any]:
    return {"kind": "double_baking_evidence", "bh1": {}, "bh2": {}}


def double_endorsement_evidence() -> dict[str, Any]:
    return {"kind": "double_endorsement_evidence", "op1": {}, "op2": {}}


def operation(n: int, *contents: dict[str, Any]) -> dict[str, Any]:
    return {
        "protocol": "PsProto",
        "chain_id": "NetXdQprcVkpaWU",
        "hash": op_hash(n),
        "branch": block_hash(0),
        "contents": list(contents),
        "signature": "sigExample",
    }


def block_dict(
    level: int,
    operations: Optional[list[list[dict[str, Any]]]] = None,
    balance_updates: Optional[list[dict[str, Any]]] = None,
    fork: str = "L",
    baker: str = "tz1Baker",
) -> dict[str, Any]:
    """A full block as served by /chains/main/blocks/<id>."""
    return {
        "protocol": "PsProto",
        "chain_id": "NetXdQprcVkpaWU",
        "hash": block_hash(level, fork),
        "header": {
            "level": level,
            "proto": 5,
            "predecessor": block_hash(level - 1) if level > 0 else block_hash(0),
            "timestamp": "2019-09-01T12:00:00Z",
            "validation_pass": 4,
            "operations_hash": "LLoaExample",
            "fitness": ["00", "0000000000000001"],
            "context": "CoExample",
            "priority": 0,
            "signature": "sigBlock",
        },
        "metadata": {
            "protocol": "PsProto",
            "baker": baker,
            "level": {
                "level": level,
                "cycle": level // 4096,
                "cycle_position": level % 4096,
                "voting_period": 0,
                "voting_period_position": level,
                "expected_commitment": False,
            },
            "max_operations_ttl": 60,
            "consumed_gas": "10200",
            "voting_period_kind": "proposal",
            "balance_updates": balance_updates or [],
        },
        "operations": operations if operations is not None else [[], [], [], []],
    }


def make_block(level: int, **kwargs: Any) -> Block:
    return Block.from_dict(block_dict(level, **kwargs))


def head(level: int, fork: str = "L") -> HeadNotification:
    return HeadNotification(hash=block_hash(level, fork), level=level)
