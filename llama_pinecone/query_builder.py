# llama_pinecone/query_builder.py
# SPDX-License-Identifier: Apache-2.0
"""
Translate a similarity query into keyword arguments for ``Index.query``.

Supports dense, sparse and hybrid queries. With ``alpha`` set, the dense
vector is scaled by ``alpha`` and the sparse vector by ``1 - alpha``, so
``alpha=1.0`` is pure dense and ``alpha=0.0`` pure sparse.

LlamaIndex metadata filters are translated to Pinecone's filter grammar:

    MetadataFilters(filters=[
        MetadataFilter(key="year", value=2020, operator=FilterOperator.GTE),
        MetadataFilter(key="genre", value=["a", "b"], operator=FilterOperator.IN),
    ])
    -> {"year": {"$gte": 2020}, "genre": {"$in": ["a", "b"]}}

Only AND conjunctions of flat filters are supported. Repeating an operator on
the same key switches to an explicit conjunction:

    tag == "a" AND tag == "b"
    -> {"$and": [{"tag": {"$eq": "a"}}, {"tag": {"$eq": "b"}}]}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from llama_index.core.vector_stores.types import (
    FilterCondition,
    FilterOperator,
    MetadataFilter,
    MetadataFilters,
)

from llama_pinecone.errors import ConfigurationError, UnsupportedFilterError
from llama_pinecone.types import SparseValues

logger = logging.getLogger(__name__)

PINECONE_FILTER_OPERATORS: Dict[str, str] = {
    FilterOperator.EQ.value: "$eq",
    FilterOperator.NE.value: "$ne",
    FilterOperator.GT.value: "$gt",
    FilterOperator.GTE.value: "$gte",
    FilterOperator.LT.value: "$lt",
    FilterOperator.LTE.value: "$lte",
    FilterOperator.IN.value: "$in",
    FilterOperator.NIN.value: "$nin",
}

_SET_OPERATORS = {"$in", "$nin"}


def _combine_clauses(clauses: List[Tuple[str, str, Any]]) -> Dict[str, Any]:
    # A key may carry several distinct operators in one object; a repeated
    # (key, operator) pair would overwrite, so it needs "$and".
    merged: Dict[str, Dict[str, Any]] = {}
    for key, operator, value in clauses:
        if operator in merged.get(key, {}):
            return {"$and": [{k: {o: v}} for k, o, v in clauses]}
        merged.setdefault(key, {})[operator] = value
    return merged


def build_pinecone_filter(filters: Optional[MetadataFilters]) -> Dict[str, Any]:
    """
    Convert LlamaIndex ``MetadataFilters`` into a Pinecone metadata filter.

    Raises:
        UnsupportedFilterError: OR/NOT conditions, nested filter groups, or
            operators outside equality, range and set membership.
    """
    if filters is None or not filters.filters:
        return {}

    condition = filters.condition
    if condition is not None and condition != FilterCondition.AND:
        raise UnsupportedFilterError(
            f"Filter condition {getattr(condition, 'value', condition)!r} is not supported; "
            "only AND conjunctions can be translated",
            details={"condition": str(getattr(condition, "value", condition))},
        )

    clauses: List[Tuple[str, str, Any]] = []
    for metadata_filter in filters.filters:
        if not isinstance(metadata_filter, MetadataFilter):
            raise UnsupportedFilterError(
                f"Nested filter {type(metadata_filter).__name__} is not supported",
                details={"filter_type": type(metadata_filter).__name__},
            )
        operator = getattr(metadata_filter.operator, "value", metadata_filter.operator)

        pinecone_operator = PINECONE_FILTER_OPERATORS.get(str(operator))
        if pinecone_operator is None:
            raise UnsupportedFilterError(
                f"Filter operator {operator!r} on key {metadata_filter.key!r} is not supported",
                details={"key": metadata_filter.key, "operator": str(operator)},
            )

        value = metadata_filter.value
        if pinecone_operator in _SET_OPERATORS and not isinstance(value, (list, tuple)):
            value = [value]
        elif isinstance(value, tuple):
            value = list(value)

        clauses.append((metadata_filter.key, pinecone_operator, value))

    pinecone_filter = _combine_clauses(clauses)
    logger.debug("translated %d metadata filters: %s", len(filters.filters), pinecone_filter)
    return pinecone_filter


class PineconeQueryBuilder:
    """
    Validate query options and render a Pinecone query request.

    Exactly one of ``vector`` or ``id`` must be given; everything else is
    optional. Validation happens in the constructor so bad queries fail
    before any network call.
    """

    # Request keys that are only sent when they carry a value.
    OPTIONAL_QUERY_REQUEST_KEYS = ("namespace", "vector", "id", "sparse_vector", "filter")

    def __init__(
        self,
        top_k: int,
        *,
        vector: Optional[Sequence[float]] = None,
        id: Optional[str] = None,
        sparse_vector: Optional[SparseValues] = None,
        namespace: Optional[str] = None,
        include_values: bool = True,
        include_metadata: bool = True,
        alpha: Optional[float] = None,
        filters: Optional[MetadataFilters] = None,
    ) -> None:
        if id is None and vector is None:
            raise ConfigurationError("One of `id` or `vector` is required.")
        if id is not None and vector is not None:
            raise ConfigurationError("Only one of `id` and `vector` is allowed.")
        if id is not None and not str(id).strip():
            raise ConfigurationError("`id` must be a non-empty string.", details={"id": id})
        if not isinstance(top_k, int) or top_k < 1:
            raise ConfigurationError(
                f"top_k must be a positive integer, got {top_k!r}",
                details={"top_k": repr(top_k)},
            )
        if alpha is not None and not 0.0 <= float(alpha) <= 1.0:
            raise ConfigurationError(
                f"alpha must be between 0.0 and 1.0, got {alpha!r}",
                details={"alpha": alpha},
            )

        self.top_k = top_k
        self.id = id
        self.vector = [float(v) for v in vector] if vector is not None else None
        self.sparse_vector = sparse_vector
        self.namespace = namespace
        self.include_values = include_values
        self.include_metadata = include_metadata
        self.alpha = float(alpha) if alpha is not None else None
        # Built eagerly so an untranslatable filter fails here.
        self.filter = build_pinecone_filter(filters)

    def to_query_request(self) -> Dict[str, Any]:
        """Keyword arguments for ``pinecone.Index.query``."""
        request: Dict[str, Any] = {
            "top_k": self.top_k,
            "include_values": self.include_values,
            "include_metadata": self.include_metadata,
        }
        optional = {
            "namespace": self.namespace,
            "vector": self._weighted_vector(),
            "id": self.id,
            "sparse_vector": self._weighted_sparse_vector(),
            "filter": self.filter,
        }
        for key in self.OPTIONAL_QUERY_REQUEST_KEYS:
            if key in ("vector", "id"):
                if optional[key] is not None:
                    request[key] = optional[key]
            elif optional[key]:
                request[key] = optional[key]
        return request

    def _weighted_vector(self) -> Optional[List[float]]:
        if self.vector is None:
            return None
        if self.alpha is None:
            return list(self.vector)
        return [value * self.alpha for value in self.vector]

    def _weighted_sparse_vector(self) -> Optional[Dict[str, Any]]:
        if self.sparse_vector is None:
            return None
        values = list(self.sparse_vector.values)
        if self.alpha is not None:
            values = [value * (1.0 - self.alpha) for value in values]
        return {"indices": list(self.sparse_vector.indices), "values": values}


__all__ = [
    "PINECONE_FILTER_OPERATORS",
    "build_pinecone_filter",
    "PineconeQueryBuilder",
]
