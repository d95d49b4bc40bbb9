"""
Node Adapter Exceptions - Custom exception hierarchy.

Every failure surfaced by the node client derives from NodeClientError so
callers can catch the whole family at the command boundary.

NodeClientError (base)
├── TransportError        network / protocol failure talking to the node
├── ResolutionError       reference cannot be parsed or target does not exist
│   └── BlockNotFoundError
└── ConfigurationError    bad configuration or unknown filter alias
"""

from datetime import datetime
from typing import Any, Optional


class NodeClientError(Exception):
    """Base exception for all node client errors."""

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.chain = chain
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "chain": self.chain,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.chain:
            parts.append(f"[chain={self.chain}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class TransportError(NodeClientError):
    """Network or protocol failure while talking to the node."""

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain, original_error, context)
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url

    @property
    def is_client_error(self) -> bool:
        """4xx responses are never worth retrying."""
        return self.status_code is not None and 400 <= self.status_code < 500

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "response_body": self.response_body,
            "request_url": self.request_url,
        })
        return data


class ResolutionError(NodeClientError):
    """Block reference cannot be parsed or does not resolve to a block."""

    def __init__(
        self,
        message: str,
        reference: Optional[str] = None,
        chain: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, chain, original_error, context)
        self.reference = reference

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["reference"] = self.reference
        return data


class BlockNotFoundError(ResolutionError):
    """The node has no block for the requested id."""

    def __init__(
        self,
        message: str,
        block_id: Optional[str] = None,
        chain: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, block_id, chain, original_error, context)
        self.block_id = block_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["block_id"] = self.block_id
        return data


class ConfigurationError(NodeClientError):
    """Invalid configuration, reported before any remote call is made."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, None, original_error, context)
        self.config_key = config_key

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["config_key"] = self.config_key
        return data
