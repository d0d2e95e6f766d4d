# llama_pinecone/errors.py
# SPDX-License-Identifier: Apache-2.0
"""
Normalized errors for the Pinecone vector store.

Every error carries a machine-readable ``code`` (UPPER_SNAKE_CASE), an
optional retry hint and a small, JSON-serializable ``details`` mapping so
callers can log or route failures without parsing messages.

Taxonomy
--------
- ConfigurationError      invalid or mutually exclusive options, missing env
- DimensionMismatchError  embedding length disagrees with the index dimension
- ValidationError         metadata / embedding shape violations
- UnsupportedFilterError  metadata filter that cannot be translated
- TransportError          the remote Pinecone call itself failed
- UnknownNodeTypeError    hydration found an unrecognized node type
- MissingContentError     hydration found no serialized node content
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class PineconeVectorStoreError(Exception):
    """
    Base exception for all vector store errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code
        retry_after_ms: Suggested delay before retry (None if not retryable)
        details: Additional context-specific details (JSON-serializable)
    """

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        retry_after_ms: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.retry_after_ms = retry_after_ms
        self.details = dict(details or {})

    @property
    def retryable(self) -> bool:
        return self.retry_after_ms is not None

    def asdict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization and logging."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "retry_after_ms": self.retry_after_ms,
            "details": {k: self.details[k] for k in sorted(self.details)},
        }


# Subclasses set a default `code` where not explicitly provided.

class ConfigurationError(PineconeVectorStoreError):
    """Invalid combination of options, or required configuration is missing."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "BAD_CONFIG")
        super().__init__(message, **kwargs)

class DimensionMismatchError(PineconeVectorStoreError):
    """Embedding length does not match the index dimension and splitting is off."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "DIMENSION_MISMATCH")
        super().__init__(message, **kwargs)

class ValidationError(PineconeVectorStoreError):
    """Node metadata or embedding violates the shape Pinecone accepts."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "BAD_METADATA")
        super().__init__(message, **kwargs)

class UnsupportedFilterError(PineconeVectorStoreError):
    """Metadata filter cannot be translated into a Pinecone filter."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "UNSUPPORTED_FILTER")
        super().__init__(message, **kwargs)

class TransportError(PineconeVectorStoreError):
    """The Pinecone call failed (network, auth, quota, server)."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "UNAVAILABLE")
        super().__init__(message, **kwargs)

class UnknownNodeTypeError(PineconeVectorStoreError):
    """Stored node type discriminator is not one the hydrator knows."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "UNKNOWN_NODE_TYPE")
        super().__init__(message, **kwargs)

class MissingContentError(PineconeVectorStoreError):
    """Vector metadata carries no serialized node content to hydrate from."""
    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "MISSING_NODE_CONTENT")
        super().__init__(message, **kwargs)


__all__ = [
    "PineconeVectorStoreError",
    "ConfigurationError",
    "DimensionMismatchError",
    "ValidationError",
    "UnsupportedFilterError",
    "TransportError",
    "UnknownNodeTypeError",
    "MissingContentError",
]
