"""
Tez CLI - Text Rendering.

============================================================
RESPONSIBILITY
============================================================
Human-readable output for blocks and operations.

- Block summary: one labelled field per line
- Operations table: fixed-width columns, "--" for absent values
- User templates: Python str.format over the same fields,
  replacing the standard layout

Colours go through rich markup; a console created with
use_colors=False prints the same text without styling.

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from rich.console import Console
from rich.markup import escape

from block_inspection import OperationRecord, ResolvedBlock, aggregate
from node_adapters import ConfigurationError


logger = logging.getLogger(__name__)


TEZ_SYMBOL = "ꜩ"
MISSING = "--"

OPERATIONS_HEADER = (
    f"{'BLOCK':>8} {'TYPE':<12} {'FROM':<36} {'TO':<36} "
    f"{'AMOUNT':>14} {'FEE':>14} HASH"
)


def create_console(use_colors: bool = True, file: Any = None) -> Console:
    """Console for standard output; colours off means plain text."""
    return Console(file=file, no_color=not use_colors, highlight=False, emoji=False, soft_wrap=True)


# ============================================================
# FIELD EXTRACTION
# ============================================================

def block_fields(resolved: ResolvedBlock) -> Dict[str, Any]:
    """Summary fields of a block, also exposed to user templates."""
    block = resolved.block
    totals = aggregate(resolved)
    level_info = block.metadata.level

    return {
        "hash": block.hash,
        "predecessor": block.header.predecessor,
        "successor": resolved.successor.hash if resolved.successor is not None else None,
        "timestamp": block.header.timestamp.isoformat() if block.header.timestamp else None,
        "level": block.level,
        "cycle": level_info.cycle if level_info is not None else None,
        "priority": block.header.priority,
        "max_operations_ttl": block.metadata.max_operations_ttl,
        "baker": block.metadata.baker,
        "consumed_gas": block.metadata.consumed_gas,
        "protocol": block.protocol,
        "chain_id": block.chain_id,
        "volume": totals.volume,
        "fees": totals.fees,
        "rewards": totals.rewards,
        "operations_num": totals.operations_num,
    }


def record_fields(record: OperationRecord) -> Dict[str, Any]:
    """Fields of an operation record exposed to user templates."""
    return {
        "level": record.level,
        "kind": record.kind,
        "title": record.title,
        "source": record.source,
        "destination": record.destination,
        "amount": record.amount,
        "fee": record.fee,
        "hash": record.hash,
    }


# ============================================================
# FORMATTING
# ============================================================

def _tez(value: Optional[Decimal]) -> str:
    return f"{value:.6f} {TEZ_SYMBOL}"


def _or_missing(value: Any) -> str:
    return MISSING if value is None or value == "" else str(value)


def format_block_summary(resolved: ResolvedBlock) -> str:
    """Block summary with rich markup."""
    f = block_fields(resolved)
    lines = [
        f"Block:        [bold green]{escape(f['hash'])}[/bold green]",
        f"Predecessor:  [blue]{escape(f['predecessor'])}[/blue]",
        f"Successor:    {escape(_or_missing(f['successor']))}",
        f"Timestamp:    {_or_missing(f['timestamp'])}",
        f"Level:        {f['level']}",
        f"Cycle:        {_or_missing(f['cycle'])}",
        f"Priority:     {f['priority']}",
        f"Max Ops TTL:  {f['max_operations_ttl']}",
        f"Baker:        {escape(_or_missing(f['baker']))}",
        f"Consumed Gas: {f['consumed_gas']}",
        f"Volume:       [green]{_tez(f['volume'])}[/green]",
        f"Fees:         {_tez(f['fees'])}",
        f"Rewards:      {_tez(f['rewards'])}",
        f"Operations:   {f['operations_num']}",
    ]
    return "\n".join(lines) + "\n"


def format_operation_row(record: OperationRecord) -> str:
    """One fixed-width table row, without markup."""
    level = f"{record.level:>8}" if record.level is not None else f"{MISSING:>8}"
    label = (record.title or record.kind)[:12]
    source = _or_missing(record.source)[:36]
    destination = _or_missing(record.destination)[:36]
    amount = _tez(record.amount) if record.amount is not None else MISSING
    fee = _tez(record.fee) if record.fee is not None else MISSING
    return (
        f"{level} {label:<12} {source:<36} {destination:<36} "
        f"{amount:>14} {fee:>14} {record.hash}"
    )


def format_user_template(template: str, values: Dict[str, Any]) -> str:
    """
    Apply a str.format template.

    Raises:
        ConfigurationError: Template refers to an unknown field or is malformed
    """
    try:
        return template.format(**values)
    except KeyError as e:
        raise ConfigurationError(
            message=f"Unknown field {e} in output template; available: {', '.join(values)}",
            config_key="output_fmt",
            original_error=e,
        )
    except (ValueError, IndexError, AttributeError) as e:
        raise ConfigurationError(
            message=f"Invalid output template: {e}",
            config_key="output_fmt",
            original_error=e,
        )


# ============================================================
# RENDERER
# ============================================================

class TextRenderer:
    """Prints blocks and operations to a rich console."""

    def __init__(self, console: Console, user_template: Optional[str] = None) -> None:
        self._console = console
        self._user_template = user_template
        self._header_printed = False

    @property
    def console(self) -> Console:
        return self._console

    def _print_plain(self, text: str) -> None:
        self._console.print(text, markup=False)

    def render_block(self, resolved: ResolvedBlock) -> None:
        if self._user_template is not None:
            self._print_plain(format_user_template(self._user_template, block_fields(resolved)))
            return
        self._console.print(format_block_summary(resolved))

    def render_blocks(self, blocks: Iterable[ResolvedBlock]) -> None:
        for resolved in blocks:
            self.render_block(resolved)

    def render_operations(self, records: Iterable[OperationRecord]) -> None:
        """Print records; the table header is printed once per renderer."""
        for record in records:
            if self._user_template is not None:
                self._print_plain(format_user_template(self._user_template, record_fields(record)))
                continue
            if not self._header_printed:
                self._console.print(f"[bold]{escape(OPERATIONS_HEADER)}[/bold]")
                self._header_printed = True
            self._print_plain(format_operation_row(record))
