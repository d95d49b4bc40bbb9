"""
Block Inspection - Block Reference Resolver.

============================================================
RESPONSIBILITY
============================================================
Maps a compact reference string onto node lookups.

Syntax:
    <anchor>[<offset>]

    anchor   hash, symbolic id ("head") or level digits; may be empty
    offset   "~" repeated N times      -> N blocks back
             "~" followed by digits    -> that many blocks back
             signed decimal integer    -> relative offset

Examples:
    head          current head
    head~         one before head
    head~~~       three before head
    head~10       ten before head
    1000+5        level 1005
    BLxyz...~2    two before the given block

A digit run after tildes replaces the tilde count instead of adding
to it, so "~~5" is five back, not seven.

============================================================
"""

import logging
import re
import string
from typing import Iterable

from node_adapters import Block, NodeClientError, ResolutionError

from block_inspection.models import BlockReference, InspectionContext, ResolvedBlock


logger = logging.getLogger(__name__)


_ANCHOR_CHARS = frozenset(string.ascii_letters + string.digits)
_SIGNED_INT = re.compile(r"[+-]?[0-9]+")


def parse_reference(reference: str) -> BlockReference:
    """
    Split a reference string into anchor and offset.

    Raises:
        ResolutionError: If the offset specifier is not a valid integer
    """
    end = len(reference)
    i = 0
    while i < end and reference[i] in _ANCHOR_CHARS:
        i += 1

    anchor = reference[:i]
    offset = 0

    if i < end:
        sign = 1
        if reference[i] == "~":
            sign = -1
            while i < end and reference[i] == "~":
                i += 1
                offset += 1

        if i < end:
            rest = reference[i:]
            if not _SIGNED_INT.fullmatch(rest):
                raise ResolutionError(
                    message=f"Invalid block offset {rest!r} in {reference!r}",
                    reference=reference,
                )
            offset = int(rest)

        offset *= sign

    return BlockReference(text=reference, anchor=anchor, offset=offset)


class BlockResolver:
    """
    Resolves block references against a node.

    No retries happen here; lookup errors reach the caller unchanged.
    """

    def __init__(self, context: InspectionContext) -> None:
        self._context = context

    @property
    def context(self) -> InspectionContext:
        return self._context

    async def resolve(self, reference: str, want_successor: bool = False) -> ResolvedBlock:
        """
        Resolve one reference.

        Args:
            reference: Reference string, see module docstring
            want_successor: Also fetch the next block, best effort

        Raises:
            ResolutionError: Unparsable reference, negative target level
                or missing block
            TransportError: Network or protocol failure
        """
        ref = parse_reference(reference)

        if ref.is_level:
            level = self._parse_level(ref)
            block = await self._get(str(self._target_level(ref, level)))
        else:
            block = await self._get(ref.anchor)
            if ref.offset != 0:
                block = await self._get(str(self._target_level(ref, block.level)))

        successor = None
        if want_successor:
            successor = await self._get_successor(block)

        return ResolvedBlock(block=block, successor=successor)

    async def resolve_many(
        self,
        references: Iterable[str],
        want_successor: bool = False,
    ) -> list[ResolvedBlock]:
        """Resolve every reference in order; the first failure aborts."""
        return [await self.resolve(reference, want_successor) for reference in references]

    async def _get(self, block_id: str) -> Block:
        return await self._context.service.get_block(self._context.chain_id, block_id)

    async def _get_successor(self, block: Block):
        try:
            successor = await self._get(str(block.level + 1))
        except NodeClientError as e:
            logger.debug(f"No successor for level {block.level}: {e}")
            return None

        if successor.level != block.level + 1:
            logger.debug(
                f"Ignoring successor at level {successor.level} for block {block.level}"
            )
            return None
        return successor

    def _parse_level(self, ref: BlockReference) -> int:
        if not ref.anchor:
            return 0
        if not ref.anchor.isdigit():
            raise ResolutionError(
                message=f"Invalid block level {ref.anchor!r}",
                reference=ref.text,
                chain=self._context.chain_id,
            )
        return int(ref.anchor)

    def _target_level(self, ref: BlockReference, level: int) -> int:
        target = level + ref.offset
        if target < 0:
            raise ResolutionError(
                message=f"Reference {ref.text!r} points before the genesis block (level {target})",
                reference=ref.text,
                chain=self._context.chain_id,
            )
        return target
