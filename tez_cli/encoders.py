"""
Tez CLI - Structured Output Encoders.

Each encode() call writes one complete document to the stream.
"""

import json
import sys
from typing import Any, Optional, TextIO

import yaml

from node_adapters import ConfigurationError


class JSONEncoder:
    """Writes one indented JSON document per call."""

    def __init__(self, stream: Optional[TextIO] = None, indent: int = 2) -> None:
        self._stream = stream or sys.stdout
        self._indent = indent

    def encode(self, value: Any) -> None:
        self._stream.write(json.dumps(value, indent=self._indent, default=str))
        self._stream.write("\n")
        self._stream.flush()


class YAMLEncoder:
    """Writes one YAML document per call, each starting with ---."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stdout

    def encode(self, value: Any) -> None:
        yaml.safe_dump(
            value,
            self._stream,
            explicit_start=True,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
        self._stream.flush()


ENCODERS = {
    "json": JSONEncoder,
    "yaml": YAMLEncoder,
}


def get_encoder(output_encoding: str, stream: Optional[TextIO] = None):
    """
    Get the encoder for an output encoding.

    Returns None for "text", which is rendered instead of encoded.

    Raises:
        ConfigurationError: Unknown encoding
    """
    if output_encoding == "text":
        return None
    encoder_cls = ENCODERS.get(output_encoding)
    if encoder_cls is None:
        raise ConfigurationError(
            message=f"Unsupported output encoding {output_encoding!r}",
            config_key="output_encoding",
        )
    return encoder_cls(stream)
