# llama_pinecone/pinecone_index.py
# SPDX-License-Identifier: Apache-2.0
"""
Async wrapper around a Pinecone index handle.

The Pinecone SDK is blocking; every call here runs on a worker thread via
``asyncio.to_thread`` so the store stays async-first. Raw SDK errors are
normalized into ``TransportError`` with a category code and a retry hint.

Only the five operations the store needs are exposed:

    upsert(vectors)          -> upserted count
    query(**request)         -> [ScoredVector]
    fetch(ids)               -> {id: WireVector}
    delete(ids | filter)     -> None
    describe_index_stats()   -> IndexStats

Both attribute-style SDK responses and plain dicts are accepted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

from llama_pinecone.errors import ConfigurationError, TransportError
from llama_pinecone.types import IndexStats, ScoredVector, SparseValues, WireVector

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _safe_get(obj: Any, key: str, default: Any = None) -> Any:
    """Support both dict-style and attribute-style access."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _to_mapping(obj: Any) -> Optional[Dict[str, Any]]:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return dict(obj)
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return dict(to_dict())
    return None


def translate_error(err: Exception, *, op: str) -> TransportError:
    """
    Map a raw Pinecone/network exception into a TransportError.

    Status codes are read from ``status`` / ``status_code`` / the response;
    when none is available the message text decides.
    """
    msg = str(err) or f"Pinecone error during {op}"
    logger.debug("Pinecone error in %s: %r", op, err)

    status = (
        getattr(err, "status", None)
        or getattr(err, "status_code", None)
        or getattr(getattr(err, "response", None), "status_code", None)
    )
    status_int: Optional[int] = None
    try:
        if status is not None:
            status_int = int(status)
    except (TypeError, ValueError):
        status_int = None

    lowered = msg.lower()
    details = {"op": op, "status": status_int, "error_type": type(err).__name__}

    if (
        status_int == 429
        or "rate limit" in lowered
        or "too many requests" in lowered
        or "exceeded quota" in lowered
    ):
        return TransportError(
            "Pinecone rate limit exceeded",
            code="RESOURCE_EXHAUSTED",
            retry_after_ms=500,
            details=details,
        )

    if status_int in (401, 403) or "unauthorized" in lowered or "forbidden" in lowered:
        return TransportError(
            "Pinecone authentication/authorization error",
            code="AUTH_ERROR",
            details=details,
        )

    if status_int == 404 or "not found" in lowered or "no such index" in lowered:
        return TransportError(
            "Pinecone index or data not ready",
            code="INDEX_NOT_READY",
            retry_after_ms=1000,
            details=details,
        )

    if status_int in (400, 422) or "invalid" in lowered or "bad request" in lowered:
        return TransportError(msg, code="BAD_REQUEST", details=details)

    if (
        isinstance(err, (ConnectionError, TimeoutError))
        or "timeout" in lowered
        or "timed out" in lowered
        or "connection" in lowered
        or "temporarily unavailable" in lowered
    ):
        return TransportError(
            "Pinecone transient network error",
            code="TRANSIENT_NETWORK",
            retry_after_ms=500,
            details=details,
        )

    if status_int is not None and status_int >= 500:
        return TransportError(
            "Pinecone service unavailable",
            code="UNAVAILABLE",
            retry_after_ms=1000,
            details=details,
        )

    return TransportError(msg, code="UNAVAILABLE", details=details)


class PineconeIndex:
    """
    Async facade over ``pinecone.Index``.

    Args:
        index: A Pinecone index handle (``Pinecone(...).Index(name)``) or
            any object with the same methods.
        request_timeout_s: Optional per-call timeout; exceeding it raises a
            retryable TransportError.
    """

    def __init__(self, index: Any, *, request_timeout_s: Optional[float] = None) -> None:
        if index is None:
            raise ConfigurationError("PineconeIndex requires an index handle")
        if request_timeout_s is not None and request_timeout_s <= 0:
            raise ConfigurationError(
                "request_timeout_s must be positive",
                details={"request_timeout_s": request_timeout_s},
            )
        self.index = index
        self.request_timeout_s = request_timeout_s

    async def _call(self, op: str, func: Callable[..., T], **kwargs: Any) -> T:
        """Run a blocking SDK call on a thread with timeout and error translation."""
        try:
            if self.request_timeout_s is not None:
                return await asyncio.wait_for(
                    asyncio.to_thread(func, **kwargs),
                    timeout=self.request_timeout_s,
                )
            return await asyncio.to_thread(func, **kwargs)
        except asyncio.TimeoutError as exc:
            raise TransportError(
                "Pinecone operation timed out",
                code="TRANSIENT_NETWORK",
                retry_after_ms=500,
                details={"op": op, "timeout_s": self.request_timeout_s},
            ) from exc
        except TransportError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise translate_error(exc, op=op) from exc

    # ------------------------------ upsert --------------------------------- #

    async def upsert(
        self,
        vectors: Sequence[WireVector],
        *,
        namespace: Optional[str] = None,
    ) -> int:
        """Upsert vectors; returns the count Pinecone reports."""
        kwargs: Dict[str, Any] = {"vectors": [v.to_dict() for v in vectors]}
        if namespace:
            kwargs["namespace"] = namespace
        resp = await self._call("upsert", self.index.upsert, **kwargs)
        upserted = _safe_get(resp, "upserted_count", 0) or 0
        return int(upserted)

    # ------------------------------ query ---------------------------------- #

    async def query(self, **request: Any) -> List[ScoredVector]:
        """Run a query built by ``PineconeQueryBuilder.to_query_request``."""
        resp = await self._call("query", self.index.query, **request)
        raw_matches: Sequence[Any] = _safe_get(resp, "matches", None) or []

        matches: List[ScoredVector] = []
        for m in raw_matches:
            vid = str(_safe_get(m, "id", "") or "")
            if not vid:
                continue
            metadata = _safe_get(m, "metadata", None)
            matches.append(
                ScoredVector(
                    id=vid,
                    score=float(_safe_get(m, "score", 0.0) or 0.0),
                    values=[float(x) for x in (_safe_get(m, "values", None) or [])],
                    metadata=dict(metadata) if metadata is not None else None,
                    sparse_values=SparseValues.from_dict(
                        _to_mapping(_safe_get(m, "sparse_values", None))
                    ),
                )
            )
        return matches

    # ------------------------------ fetch ---------------------------------- #

    async def fetch(
        self,
        ids: Sequence[str],
        *,
        namespace: Optional[str] = None,
    ) -> Dict[str, WireVector]:
        kwargs: Dict[str, Any] = {"ids": [str(i) for i in ids]}
        if namespace:
            kwargs["namespace"] = namespace
        resp = await self._call("fetch", self.index.fetch, **kwargs)
        raw_vectors: Mapping[str, Any] = _safe_get(resp, "vectors", None) or {}

        vectors: Dict[str, WireVector] = {}
        for vid, raw in raw_vectors.items():
            metadata = _safe_get(raw, "metadata", None)
            vectors[str(vid)] = WireVector(
                id=str(_safe_get(raw, "id", vid)),
                values=[float(x) for x in (_safe_get(raw, "values", None) or [])],
                metadata=dict(metadata) if metadata is not None else {},
                sparse_values=SparseValues.from_dict(
                    _to_mapping(_safe_get(raw, "sparse_values", None))
                ),
            )
        return vectors

    # ------------------------------ delete --------------------------------- #

    async def delete(
        self,
        *,
        ids: Optional[Sequence[str]] = None,
        filter: Optional[Mapping[str, Any]] = None,
        delete_all: bool = False,
        namespace: Optional[str] = None,
    ) -> None:
        """Delete by ids, by metadata filter, or everything in the namespace."""
        kwargs: Dict[str, Any] = {}
        if ids:
            kwargs["ids"] = [str(i) for i in ids]
        elif filter:
            kwargs["filter"] = dict(filter)
        elif delete_all:
            kwargs["delete_all"] = True
        else:
            raise ConfigurationError("must provide ids, filter or delete_all for deletion")
        if namespace:
            kwargs["namespace"] = namespace
        await self._call("delete", self.index.delete, **kwargs)

    # --------------------------- index stats ------------------------------- #

    async def describe_index_stats(self) -> IndexStats:
        stats = await self._call("describe_index_stats", self.index.describe_index_stats)

        dimension = _safe_get(stats, "dimension", None)
        if dimension is None:
            raise TransportError(
                "Pinecone index stats did not include a dimension",
                code="BAD_RESPONSE",
                details={"op": "describe_index_stats"},
            )

        namespaces: Dict[str, int] = {}
        for ns, info in (_safe_get(stats, "namespaces", None) or {}).items():
            namespaces[str(ns)] = int(_safe_get(info, "vector_count", 0) or 0)

        return IndexStats(
            dimension=int(dimension),
            total_vector_count=int(_safe_get(stats, "total_vector_count", 0) or 0),
            index_fullness=float(_safe_get(stats, "index_fullness", 0.0) or 0.0),
            namespaces=namespaces,
        )


__all__ = [
    "translate_error",
    "PineconeIndex",
]
