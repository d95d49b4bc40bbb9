"""
Block Resolver Tests.

============================================================
PURPOSE
============================================================
Tests for reference parsing and resolution against a node.

TEST PRINCIPLES:
- Every reference form maps to the expected lookups
- Errors surface unchanged, with no hidden retries
- Successor lookup never fails a resolution

============================================================
"""

import pytest

from block_inspection import BlockReference, BlockResolver, ResolvedBlock, parse_reference
from node_adapters import BlockNotFoundError, ResolutionError, TransportError

from tests.builders import block_hash, make_block


# ============================================================
# PARSING TESTS
# ============================================================

class TestParseReference:
    """Tests for splitting references into anchor and offset."""

    @pytest.mark.parametrize("text,anchor,offset", [
        ("head", "head", 0),
        ("head~", "head", -1),
        ("head~~~", "head", -3),
        ("head~10", "head", -10),
        ("head~~5", "head", -5),
        ("1000", "1000", 0),
        ("1000+5", "1000", 5),
        ("1000-5", "1000", -5),
        ("~2", "", -2),
        ("", "", 0),
    ])
    def test_forms(self, text, anchor, offset):
        assert parse_reference(text) == BlockReference(text=text, anchor=anchor, offset=offset)

    def test_hash_anchor(self):
        ref = parse_reference(block_hash(7) + "~2")

        assert ref.anchor == block_hash(7)
        assert ref.offset == -2
        assert not ref.is_level

    def test_level_anchor(self):
        assert parse_reference("42").is_level
        assert parse_reference("").is_level
        assert not parse_reference("head").is_level

    @pytest.mark.parametrize("text", ["head~x", "head+", "head.1", "10~~-"])
    def test_invalid_offset(self, text):
        with pytest.raises(ResolutionError) as exc_info:
            parse_reference(text)

        assert exc_info.value.reference == text


# ============================================================
# RESOLUTION TESTS
# ============================================================

class TestResolve:
    """Tests for BlockResolver.resolve."""

    @pytest.mark.asyncio
    async def test_plain_head(self, context, chain):
        resolved = await BlockResolver(context).resolve("head")

        assert resolved.level == 10
        assert resolved.successor is None
        assert chain.requests == [("main", "head")]

    @pytest.mark.asyncio
    async def test_head_with_tildes(self, context, chain):
        resolved = await BlockResolver(context).resolve("head~~~")

        assert resolved.level == 7
        assert chain.requests == [("main", "head"), ("main", "7")]

    @pytest.mark.asyncio
    async def test_head_tilde_digits(self, context):
        resolved = await BlockResolver(context).resolve("head~3")
        assert resolved.level == 7

    @pytest.mark.asyncio
    async def test_level_with_positive_offset(self, context, chain):
        resolved = await BlockResolver(context).resolve("3+2")

        assert resolved.level == 5
        assert chain.requests == [("main", "5")]

    @pytest.mark.asyncio
    async def test_bare_level(self, context):
        resolved = await BlockResolver(context).resolve("4")
        assert resolved.hash == block_hash(4)

    @pytest.mark.asyncio
    async def test_hash_with_offset(self, context, chain):
        resolved = await BlockResolver(context).resolve(block_hash(6) + "~2")

        assert resolved.level == 4
        assert chain.requests == [("main", block_hash(6)), ("main", "4")]

    @pytest.mark.asyncio
    async def test_empty_anchor_counts_from_genesis(self, context):
        resolved = await BlockResolver(context).resolve("+3")
        assert resolved.level == 3

    @pytest.mark.asyncio
    async def test_negative_level_fails_before_fetch(self, context, chain):
        with pytest.raises(ResolutionError):
            await BlockResolver(context).resolve("2~5")

        assert chain.requests == []

    @pytest.mark.asyncio
    async def test_offset_past_genesis_from_head(self, context, chain):
        with pytest.raises(ResolutionError):
            await BlockResolver(context).resolve("head~20")

        assert chain.requests == [("main", "head")]

    @pytest.mark.asyncio
    async def test_missing_block(self, context):
        with pytest.raises(BlockNotFoundError):
            await BlockResolver(context).resolve("50")

    @pytest.mark.asyncio
    async def test_transport_error_surfaces_unchanged(self, context, chain):
        error = TransportError(message="connection reset", status_code=502)
        chain.set_block_error("head", error)

        with pytest.raises(TransportError) as exc_info:
            await BlockResolver(context).resolve("head")

        assert exc_info.value is error
        assert chain.requests == [("main", "head")]


# ============================================================
# SUCCESSOR TESTS
# ============================================================

class TestSuccessor:
    """Tests for best-effort successor lookup."""

    @pytest.mark.asyncio
    async def test_successor_fetched(self, context):
        resolved = await BlockResolver(context).resolve("head~", want_successor=True)

        assert resolved.level == 9
        assert resolved.successor.level == 10

    @pytest.mark.asyncio
    async def test_no_successor_for_head(self, context):
        resolved = await BlockResolver(context).resolve("head", want_successor=True)

        assert resolved.level == 10
        assert resolved.successor is None

    @pytest.mark.asyncio
    async def test_successor_transport_error_is_ignored(self, context, chain):
        chain.set_block_error("6", TransportError(message="timeout"))

        resolved = await BlockResolver(context).resolve("5", want_successor=True)

        assert resolved.level == 5
        assert resolved.successor is None

    def test_successor_level_is_checked(self):
        with pytest.raises(ValueError):
            ResolvedBlock(block=make_block(5), successor=make_block(7))


# ============================================================
# MULTIPLE REFERENCES
# ============================================================

class TestResolveMany:
    """Tests for resolving several references in one call."""

    @pytest.mark.asyncio
    async def test_order_is_kept(self, context):
        blocks = await BlockResolver(context).resolve_many(["head", "1", "head~~"])
        assert [b.level for b in blocks] == [10, 1, 8]

    @pytest.mark.asyncio
    async def test_first_failure_aborts(self, context, chain):
        with pytest.raises(BlockNotFoundError):
            await BlockResolver(context).resolve_many(["1", "99", "2"])

        assert ("main", "2") not in chain.requests
