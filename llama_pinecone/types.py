# llama_pinecone/types.py
# SPDX-License-Identifier: Apache-2.0
"""
Data shapes exchanged between the vector builders, the upsert executor and
the Pinecone index.

Pinecone's wire format is snake_case JSON:

    {
        "id": "<node_id>[-<chunk>]",
        "values": [float, ...],              # exactly `dimension` long
        "sparse_values": {"indices": [int], "values": [float]},
        "metadata": {"node_id": "...", ...}
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

NodeID = str

# =============================================================================
# Vectors
# =============================================================================

@dataclass(frozen=True)
class SparseValues:
    """
    Sparse component of a vector.

    Attributes:
        indices: Unique integer positions
        values: Value for each index; same length as ``indices``
    """
    indices: List[int] = field(default_factory=list)
    values: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"indices": list(self.indices), "values": list(self.values)}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional[SparseValues]:
        if not data:
            return None
        return cls(
            indices=[int(i) for i in data.get("indices", [])],
            values=[float(v) for v in data.get("values", [])],
        )


@dataclass
class WireVector:
    """
    The unit sent to and received from Pinecone.

    Attributes:
        id: Unique within the index + namespace
        values: Dense values; length equals the index dimension after assembly
        metadata: Flat scalar metadata record
        sparse_values: Optional sparse component
    """
    id: str
    values: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)
    sparse_values: Optional[SparseValues] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render the Pinecone upsert payload for this vector."""
        payload: Dict[str, Any] = {
            "id": self.id,
            "values": list(self.values),
            "metadata": dict(self.metadata),
        }
        if self.sparse_values is not None:
            payload["sparse_values"] = self.sparse_values.to_dict()
        return payload


@dataclass(frozen=True)
class ScoredVector:
    """A single query match returned by Pinecone."""
    id: str
    score: float
    values: List[float] = field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None
    sparse_values: Optional[SparseValues] = None


@dataclass(frozen=True)
class IndexStats:
    """
    Summary of ``describe_index_stats``.

    Attributes:
        dimension: Fixed vector width of the index
        total_vector_count: Vectors across all namespaces
        index_fullness: Fraction of capacity used (pod indexes only)
        namespaces: Namespace name -> vector count
    """
    dimension: int
    total_vector_count: int = 0
    index_fullness: float = 0.0
    namespaces: Dict[str, int] = field(default_factory=dict)

# =============================================================================
# Upsert bookkeeping
# =============================================================================

@dataclass
class UpsertVectorsRecord:
    """
    Wire vectors grouped by the node they were built from.

    Created fresh for each upsert call and consumed by the executor.
    """
    vectors_by_node: Dict[NodeID, List[WireVector]] = field(default_factory=dict)
    total_vector_count: int = 0

    def add(self, node_id: NodeID, vectors: List[WireVector]) -> None:
        previous = self.vectors_by_node.get(node_id)
        if previous is not None:
            # Same node twice: the later vectors replace the earlier ones, and
            # their ids collide remotely anyway.
            self.total_vector_count -= len(previous)
        self.vectors_by_node[node_id] = list(vectors)
        self.total_vector_count += len(vectors)


@dataclass
class UpsertResult:
    """
    Aggregate outcome of an upsert.

    A node id can appear in both ``upserted_node_ids`` and ``failed_node_ids``
    when its sub-vectors were split across batches with different outcomes.
    Re-upserting a failed node id is always safe: upserts are idempotent per
    vector id.
    """
    upserted_node_count: int = 0
    upserted_node_ids: List[NodeID] = field(default_factory=list)
    upserted_vector_count: int = 0
    upserted_vector_by_node: Dict[NodeID, List[WireVector]] = field(default_factory=dict)
    failed_node_count: int = 0
    failed_node_ids: List[NodeID] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


__all__ = [
    "NodeID",
    "SparseValues",
    "WireVector",
    "ScoredVector",
    "IndexStats",
    "UpsertVectorsRecord",
    "UpsertResult",
]
