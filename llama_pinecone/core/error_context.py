# llama_pinecone/core/error_context.py
# SPDX-License-Identifier: Apache-2.0

"""
Attach debugging context to exceptions as they leave the vector store.

The context is stored as exception attributes so the original exception type
and message propagate unchanged:

    try:
        await store.aquery(query)
    except PineconeVectorStoreError as exc:
        ctx = get_context(exc)
        logger.error("query failed", extra={"index_name": ctx.get("index_name")})

Two attributes carry the same dict: ``__llama_pinecone_context__`` and
``__<component>_context__`` for the component that attached it. Repeated
calls merge into the existing context rather than replacing it.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping, Optional

logger = logging.getLogger(__name__)

CONTEXT_ATTR = "__llama_pinecone_context__"


def attach_context(
    exc: BaseException,
    component: str,
    **context: Any,
) -> None:
    """
    Merge ``context`` into the exception's attached context.

    ``component`` is recorded once (first writer wins) and also names the
    component-specific attribute, e.g. ``__vector_store_context__``.
    Attachment failures are logged and never mask the original exception.
    """
    try:
        merged_context: MutableMapping[str, Any] = {}

        existing = getattr(exc, CONTEXT_ATTR, None)
        if isinstance(existing, Mapping):
            merged_context.update(existing)

        merged_context.setdefault("component", component)
        merged_context.update(context)

        setattr(exc, CONTEXT_ATTR, merged_context)
        setattr(exc, f"__{component}_context__", merged_context)
    except Exception as attachment_error:  # noqa: BLE001
        # e.g. exceptions with __slots__ reject new attributes
        logger.debug(
            "Failed to attach error context to %s: %s",
            type(exc).__name__,
            attachment_error,
            extra={"component": component},
        )


def get_context(
    exc: BaseException,
    *,
    component: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Return the context attached to ``exc``, or an empty dict.

    When ``component`` is given its specific attribute is checked first.
    """
    if component:
        ctx = getattr(exc, f"__{component}_context__", None)
        if isinstance(ctx, Mapping):
            return ctx

    ctx = getattr(exc, CONTEXT_ATTR, None)
    if isinstance(ctx, Mapping):
        return ctx
    return {}


__all__ = [
    "CONTEXT_ATTR",
    "attach_context",
    "get_context",
]
