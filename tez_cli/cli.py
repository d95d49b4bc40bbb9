"""
Tez CLI - Command Line.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for inspecting Tezos blocks.

- Parses arguments and layers them over file/env configuration
- Resolves every block reference before printing anything
- Follows the chain head with --watch until interrupted
- Maps library errors to exit codes

============================================================
USAGE
============================================================
tez block                        # current head
tez block head~3 1000 BLxyz...   # several blocks
tez block header head~
tez block operations head -k tx,del
tez bl op 1000 head~
tez block --watch -o json
tez --url http://localhost:8732 block operations --watch

============================================================
EXIT CODES
============================================================
0    success
1    configuration, resolution or transport error
130  interrupted

============================================================
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any, List, Optional, TextIO, Tuple

from block_inspection import (
    BlockResolver,
    InspectionContext,
    KindFilter,
    ResolvedBlock,
    classify,
    filter_raw_operations,
    parse_kind_filter,
)
from head_monitor import BlockSink, CallbackSink, EncoderSink, HeadMonitor, MonitorConfig, QueueSink
from node_adapters import BaseNodeService, ConfigurationError, NodeClientError, TezosRPCService

from tez_cli.config import LOG_LEVELS, OUTPUT_ENCODINGS, ClientConfig
from tez_cli.encoders import get_encoder
from tez_cli.rendering import TextRenderer, create_console


logger = logging.getLogger(__name__)


VIEW_BLOCK = "block"
VIEW_OPERATIONS = "operations"

# Leading words of `tez block ...` that select a view instead of naming a block
VIEWS = {
    "header": VIEW_BLOCK,
    "operations": VIEW_OPERATIONS,
    "op": VIEW_OPERATIONS,
}

DEFAULT_REFERENCE = "head"

LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def _add_global_options(parser: argparse.ArgumentParser, suppress: bool) -> None:
    # Repeated on the subcommand so they can follow it; SUPPRESS keeps
    # the subcommand from overwriting values given before it
    default = argparse.SUPPRESS if suppress else None

    group = parser.add_argument_group("Connection Options")
    group.add_argument(
        "--url", "-u",
        type=str,
        default=default,
        metavar="URL",
        help="Node RPC endpoint (default: https://api.tez.ie/)",
    )
    group.add_argument(
        "--chain",
        type=str,
        default=default,
        metavar="CHAIN_ID",
        help="Chain identifier (default: main)",
    )
    group.add_argument(
        "--config",
        type=Path,
        default=default,
        metavar="PATH",
        help="YAML config file (default: ~/.tez.yaml when present)",
    )

    display = parser.add_argument_group("Display Options")
    display.add_argument(
        "--colors",
        action=argparse.BooleanOptionalAction,
        default=default,
        help="Colourise text output (default: on)",
    )
    display.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=default,
        help="Logging level (default: INFO)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="tez",
        description="Inspect blocks and operations of a Tezos node",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Block references:
  head, BLxyz...   block by symbolic id or hash
  1000             block by level
  head~  head~~~   one or three blocks back
  head~10  1000+5  explicit offsets

Examples:
  %(prog)s block head~3 1000
  %(prog)s block operations head -k tx,del
  %(prog)s block --watch -o json
        """,
    )
    _add_global_options(parser, suppress=False)

    parser.add_argument(
        "--version", "-v",
        action="version",
        version="%(prog)s 1.0.0",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    # --------------------------------------------------------
    # block
    # --------------------------------------------------------
    block = subparsers.add_parser(
        "block",
        aliases=["bl"],
        help="Show blocks or their operations",
        description=(
            "Show block summaries. `block header IDS` is the same view; "
            "`block operations IDS` (or `op`) lists operations instead."
        ),
    )
    _add_global_options(block, suppress=True)

    block.add_argument(
        "ids",
        nargs="*",
        metavar="BLOCK_ID",
        help="Optional view (header, operations, op) followed by block references (default: head)",
    )

    output_group = block.add_argument_group("Output Options")
    output_group.add_argument(
        "--output-encoding", "-o",
        type=str,
        choices=OUTPUT_ENCODINGS,
        default=None,
        help="Output encoding (default: text)",
    )
    output_group.add_argument(
        "--output-fmt",
        type=str,
        default=None,
        metavar="TEMPLATE",
        help="Python format template, e.g. '{level} {hash}'",
    )

    block.add_argument(
        "--watch", "-w",
        action="store_true",
        help="Follow the chain head until interrupted",
    )
    block.add_argument(
        "--kind", "-k",
        action="append",
        metavar="KIND",
        help="Operation kinds to show (repeatable or comma separated, 'all' for every kind)",
    )

    return parser


def split_view(ids: List[str]) -> Tuple[str, List[str]]:
    """Separate the optional leading view word from block references."""
    if ids and ids[0] in VIEWS:
        return VIEWS[ids[0]], list(ids[1:])
    return VIEW_BLOCK, list(ids)


# ============================================================
# CLI VALIDATION
# ============================================================

def validate_args(args: argparse.Namespace) -> List[str]:
    """
    Validate CLI arguments.

    Returns:
        List of validation errors
    """
    errors = []
    view, ids = split_view(args.ids)

    if args.kind and view != VIEW_OPERATIONS:
        errors.append("--kind is only valid with `block operations`")

    if args.watch and ids:
        errors.append("--watch follows the chain head and takes no block references")

    return errors


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> ClientConfig:
    """
    Build configuration from file, environment and CLI arguments.

    Raises:
        ConfigurationError: Invalid setting in any layer
    """
    config = ClientConfig.load(getattr(args, "config", None))
    config = config.with_overrides(
        url=getattr(args, "url", None),
        chain_id=getattr(args, "chain", None),
        use_colors=getattr(args, "colors", None),
        log_level=getattr(args, "log_level", None),
        output_encoding=getattr(args, "output_encoding", None),
        output_fmt=getattr(args, "output_fmt", None),
    )
    config.validate()
    return config


def setup_logging(level: str) -> None:
    """Configure root logging on stderr."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stderr,
    )


# ============================================================
# COMMANDS
# ============================================================

async def show_blocks(
    context: InspectionContext,
    view: str,
    references: List[str],
    kinds: KindFilter,
    encoder: Any,
    renderer: TextRenderer,
) -> None:
    """
    Resolve all references, then print them.

    Structured output is a single document: a list of blocks, or the
    operations of every block in one list.
    """
    resolver = BlockResolver(context)
    want_successor = view == VIEW_BLOCK and encoder is None
    blocks = await resolver.resolve_many(references or [DEFAULT_REFERENCE], want_successor)

    if view == VIEW_BLOCK:
        if encoder is not None:
            encoder.encode([resolved.block.raw for resolved in blocks])
        else:
            renderer.render_blocks(blocks)
        return

    if encoder is not None:
        operations = []
        for resolved in blocks:
            operations.extend(filter_raw_operations(resolved.block, kinds))
        encoder.encode(operations)
        return

    records = []
    for resolved in blocks:
        records.extend(classify(resolved, kinds))
    renderer.render_operations(records)


def build_sink(
    view: str,
    kinds: KindFilter,
    encoder: Any,
    renderer: TextRenderer,
    user_template: Optional[str],
    queue_size: int,
) -> BlockSink:
    """Pick the single sink used by a watch run."""
    if view == VIEW_BLOCK:
        if encoder is not None:
            return EncoderSink(encoder)
        render = renderer.render_block
    else:
        if encoder is not None:
            return EncoderSink(
                encoder,
                payload=lambda resolved: filter_raw_operations(resolved.block, kinds),
            )

        def render(resolved: ResolvedBlock) -> None:
            renderer.render_operations(classify(resolved, kinds))

    if user_template is not None:
        return CallbackSink(render)
    return QueueSink(render, maxsize=queue_size)


def _install_signal_handlers(cancel: asyncio.Event) -> List[int]:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, cancel.set)
        except (NotImplementedError, RuntimeError, ValueError):
            # No loop signal support here; Ctrl-C then surfaces as KeyboardInterrupt
            continue
        installed.append(sig)
    return installed


async def watch_blocks(
    context: InspectionContext,
    config: ClientConfig,
    sink: BlockSink,
    cancel: Optional[asyncio.Event] = None,
) -> None:
    """Follow the head until cancelled or a fatal error occurs."""
    own_cancel = cancel is None
    cancel = cancel or asyncio.Event()
    installed = _install_signal_handlers(cancel) if own_cancel else []

    head_monitor = HeadMonitor(
        context,
        MonitorConfig(reconnect_delay_seconds=config.reconnect_delay_seconds),
    )
    try:
        await head_monitor.run(sink, cancel)
    finally:
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)
        logger.info(f"Watch finished: {head_monitor.stats.to_dict()}")


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(
    args: argparse.Namespace,
    config: ClientConfig,
    service: Optional[BaseNodeService] = None,
    stream: Optional[TextIO] = None,
    cancel: Optional[asyncio.Event] = None,
) -> int:
    """
    Async main entry point.

    Args:
        args: Parsed arguments
        config: Validated configuration
        service: Node service; a TezosRPCService for config.url by default
        stream: Output stream (default: stdout)
        cancel: Stops a watch run when set

    Returns:
        Exit code
    """
    view, references = split_view(args.ids)

    try:
        kinds = parse_kind_filter(args.kind) if view == VIEW_OPERATIONS else None
        encoder = get_encoder(config.output_encoding, stream)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if service is None:
        service = TezosRPCService(
            base_url=config.url,
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
        )

    context = InspectionContext(service=service, chain_id=config.chain_id)
    renderer = TextRenderer(create_console(config.use_colors, file=stream), config.output_fmt)

    try:
        async with service:
            if args.watch:
                sink = build_sink(
                    view, kinds, encoder, renderer, config.output_fmt, config.queue_size
                )
                await watch_blocks(context, config, sink, cancel)
            else:
                await show_blocks(context, view, references, kinds, encoder, renderer)
        return 0

    except NodeClientError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    errors = validate_args(args)
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.log_level)

    try:
        return asyncio.run(async_main(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
