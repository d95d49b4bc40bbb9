"""
Tez CLI.

Command-line front end for block inspection and head monitoring.

Quick Start:
    $ tez block head~3
    $ tez block operations head -k tx
    $ tez block --watch -o json
"""

from tez_cli.cli import create_parser, main
from tez_cli.config import ClientConfig
from tez_cli.encoders import JSONEncoder, YAMLEncoder, get_encoder
from tez_cli.rendering import TextRenderer, create_console


__all__ = [
    "ClientConfig",
    "JSONEncoder",
    "YAMLEncoder",
    "get_encoder",
    "TextRenderer",
    "create_console",
    "create_parser",
    "main",
]
