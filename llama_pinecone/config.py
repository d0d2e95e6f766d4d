# llama_pinecone/config.py
# SPDX-License-Identifier: Apache-2.0
"""Environment-based Pinecone connection settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from llama_pinecone.errors import ConfigurationError

PINECONE_API_KEY_ENV = "PINECONE_API_KEY"
PINECONE_ENVIRONMENT_ENV = "PINECONE_API_ENVIRONMENT"


@dataclass(frozen=True)
class PineconeEnv:
    """Credentials used to build a Pinecone client when none is supplied."""

    api_key: str
    environment: str

    def __repr__(self) -> str:
        return f"PineconeEnv(api_key='***', environment={self.environment!r})"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PineconeEnv":
        """
        Read settings from ``environ`` (``os.environ`` when omitted).

        Raises:
            ConfigurationError: a variable is unset or empty.
        """
        getenv = environ.get if environ is not None else os.getenv

        api_key = getenv(PINECONE_API_KEY_ENV)
        if not api_key:
            raise ConfigurationError(
                f"Set the {PINECONE_API_KEY_ENV} environment variable or pass "
                "`pinecone_client` / `pinecone_env` to PineconeVectorStore.",
                details={"variable": PINECONE_API_KEY_ENV},
            )

        environment = getenv(PINECONE_ENVIRONMENT_ENV)
        if not environment:
            raise ConfigurationError(
                f"Set the {PINECONE_ENVIRONMENT_ENV} environment variable or pass "
                "`pinecone_client` / `pinecone_env` to PineconeVectorStore.",
                details={"variable": PINECONE_ENVIRONMENT_ENV},
            )

        return cls(api_key=api_key, environment=environment)


__all__ = [
    "PINECONE_API_KEY_ENV",
    "PINECONE_ENVIRONMENT_ENV",
    "PineconeEnv",
]
