"""
Providers package - Node service implementations.
"""

from node_adapters.providers.mock import MockConfig, MockNodeService
from node_adapters.providers.tezos_rpc import TezosRPCService


__all__ = [
    "MockConfig",
    "MockNodeService",
    "TezosRPCService",
]
