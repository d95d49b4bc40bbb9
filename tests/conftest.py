"""Shared fixtures: an in-memory chain and inspection contexts over it."""

import pytest

from block_inspection import InspectionContext
from node_adapters import MockConfig, MockNodeService

from tests.builders import make_block


CHAIN_LENGTH = 10


@pytest.fixture
def chain():
    """Mock node holding levels 0..10; head is level 10."""
    service = MockNodeService()
    for level in range(CHAIN_LENGTH + 1):
        service.add_block(make_block(level))
    return service


@pytest.fixture
def context(chain):
    return InspectionContext(service=chain, chain_id="main")


@pytest.fixture
def closing_chain():
    """Mock node that refuses new subscriptions once the scripted ones are used."""
    service = MockNodeService(MockConfig(idle_when_exhausted=False))
    for level in range(CHAIN_LENGTH + 1):
        service.add_block(make_block(level))
    return service
