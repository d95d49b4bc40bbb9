"""
Node Adapters Package - Read-only access to a Tezos node.

The rest of the system only needs three things from a node:
- fetch a block by id (hash, "head" or decimal level)
- fetch a block by level (same call, level as a string)
- subscribe to new block-head notifications

Quick Start:
    from node_adapters import TezosRPCService

    async def show_head():
        async with TezosRPCService("https://api.tez.ie/") as service:
            block = await service.get_block("main", "head")
            print(f"Level: {block.level}")
            print(f"Baker: {block.metadata.baker}")

Adding New Services:
    class NewService(BaseNodeService):
        @property
        def name(self) -> str:
            return "new_service"

        async def fetch_block(self, chain_id, block_id): ...
        def subscribe_heads(self, chain_id): ...
        async def health_check(self, chain_id="main"): ...
"""

from node_adapters.base import BaseNodeService, is_block_hash
from node_adapters.exceptions import (
    BlockNotFoundError,
    ConfigurationError,
    NodeClientError,
    ResolutionError,
    TransportError,
)
from node_adapters.models import (
    AdapterHealth,
    AdapterStatus,
    ActivateAccountContent,
    BalanceUpdate,
    BallotContent,
    Block,
    BlockHeader,
    BlockMetadata,
    CONTENT_TYPES,
    DelegationContent,
    DoubleBakingEvidenceContent,
    DoubleEndorsementEvidenceContent,
    EndorsementContent,
    HeadNotification,
    LevelInfo,
    ManagerContent,
    Operation,
    OperationContent,
    OperationKind,
    OriginationContent,
    ProposalsContent,
    RevealContent,
    SeedNonceRevelationContent,
    TransactionContent,
    parse_content,
)
from node_adapters.providers import MockConfig, MockNodeService, TezosRPCService


__version__ = "1.0.0"

__all__ = [
    # Base
    "BaseNodeService",
    "is_block_hash",

    # Models
    "AdapterHealth",
    "AdapterStatus",
    "BalanceUpdate",
    "Block",
    "BlockHeader",
    "BlockMetadata",
    "HeadNotification",
    "LevelInfo",
    "Operation",
    "OperationKind",
    "CONTENT_TYPES",
    "parse_content",

    # Operation contents
    "OperationContent",
    "ManagerContent",
    "EndorsementContent",
    "SeedNonceRevelationContent",
    "DoubleEndorsementEvidenceContent",
    "DoubleBakingEvidenceContent",
    "ActivateAccountContent",
    "ProposalsContent",
    "BallotContent",
    "RevealContent",
    "TransactionContent",
    "OriginationContent",
    "DelegationContent",

    # Exceptions
    "NodeClientError",
    "TransportError",
    "ResolutionError",
    "BlockNotFoundError",
    "ConfigurationError",

    # Providers
    "MockConfig",
    "MockNodeService",
    "TezosRPCService",
]
