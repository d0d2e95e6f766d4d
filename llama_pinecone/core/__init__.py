# llama_pinecone/core/__init__.py
# SPDX-License-Identifier: Apache-2.0
"""Cross-cutting helpers shared by the store and its components."""

from llama_pinecone.core.async_bridge import AsyncBridge, run_async
from llama_pinecone.core.error_context import attach_context, get_context

__all__ = [
    "AsyncBridge",
    "run_async",
    "attach_context",
    "get_context",
]
