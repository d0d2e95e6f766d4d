# llama_pinecone/vectors_builder.py
# SPDX-License-Identifier: Apache-2.0
"""
Build Pinecone wire vectors from a LlamaIndex node and its embedding.

Pinecone requires every vector in an index to have exactly the index's
dimension. An embedding of that length maps to one vector whose id is the
node id. Longer embeddings (e.g. token ids of a long chunk) can be split into
consecutive sub-vectors when ``split_embeddings_by_dimension`` is on:

    embedding (57 values), dimension 20
        -> "<node_id>-0"  values[0:20]
        -> "<node_id>-1"  values[20:40]
        -> "<node_id>-2"  values[40:57] + [0.0, 0.0, 0.0]

Only the final sub-vector is zero-padded, and sparse values are always
computed from the unpadded slice.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence

from llama_index.core.schema import BaseNode

from llama_pinecone.errors import (
    ConfigurationError,
    DimensionMismatchError,
    ValidationError,
)
from llama_pinecone.metadata_builders import MetadataBuilder, SimpleMetadataBuilder
from llama_pinecone.sparse_values import NaiveSparseValuesBuilder, SparseValuesBuilder
from llama_pinecone.types import WireVector

logger = logging.getLogger(__name__)


def normalize_embedding(embedding: Sequence[Any], *, node_id: Optional[str] = None) -> List[float]:
    """
    Coerce every embedding value to a plain ``float``.

    Tokenizers and array libraries hand back numpy scalars, Decimals or big
    ints, none of which serialize cleanly to Pinecone.
    """
    try:
        return [float(value) for value in embedding]
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"Embedding for node {node_id} contains a non-numeric value: {exc}",
            code="BAD_EMBEDDING",
            details={"node_id": node_id},
        ) from exc


class PineconeVectorsBuilder:
    """
    Assemble the wire vectors for one node at a time.

    Args:
        dimension: The index dimension every vector must match.
        include_sparse_values: Attach sparse values built from each slice.
        split_embeddings_by_dimension: Split long embeddings into several
            vectors instead of failing with DimensionMismatchError.
        sparse_values_builder: Strategy for sparse values (naive histogram
            by default).
        metadata_builder: Strategy for metadata (simple copy by default).
        alpha: Accepted for parity with query options; has no effect on
            assembled vectors.
    """

    def __init__(
        self,
        dimension: int,
        *,
        include_sparse_values: bool = False,
        split_embeddings_by_dimension: bool = False,
        sparse_values_builder: Optional[SparseValuesBuilder] = None,
        metadata_builder: Optional[MetadataBuilder] = None,
        alpha: Optional[float] = None,
    ) -> None:
        if not isinstance(dimension, int) or isinstance(dimension, bool) or dimension < 1:
            raise ConfigurationError(
                f"dimension must be a positive integer, got {dimension!r}",
                details={"dimension": repr(dimension)},
            )
        self.dimension = dimension
        self.include_sparse_values = bool(include_sparse_values)
        self.split_embeddings_by_dimension = bool(split_embeddings_by_dimension)
        self.sparse_values_builder = sparse_values_builder or NaiveSparseValuesBuilder()
        self.metadata_builder = metadata_builder or SimpleMetadataBuilder()
        self.alpha = alpha

    def build_vectors(self, node: BaseNode, embedding: Sequence[Any]) -> List[WireVector]:
        """
        Build every wire vector for ``node``.

        Raises:
            DimensionMismatchError: splitting is off and the embedding length
                differs from the dimension.
            ValidationError: metadata or embedding values are malformed.
        """
        node_id = node.node_id
        values = normalize_embedding(embedding, node_id=node_id)

        if not self.split_embeddings_by_dimension and len(values) != self.dimension:
            raise DimensionMismatchError(
                f"Embedding for node {node_id} has length {len(values)} but the "
                f"index requires dimension {self.dimension}",
                details={
                    "node_id": node_id,
                    "actual": len(values),
                    "expected": self.dimension,
                },
            )

        metadata = self.metadata_builder.build_metadata(node)

        if len(values) <= self.dimension:
            vectors = [self._build_vector(node_id, values, metadata)]
        else:
            vectors = [
                self._build_vector(f"{node_id}-{chunk_index}", chunk, metadata)
                for chunk_index, chunk in enumerate(self.embedding_chunks(values))
            ]
            logger.debug(
                "split embedding of node %s (length %d) into %d vectors",
                node_id,
                len(values),
                len(vectors),
            )

        self._pad_last_vector(vectors)
        return vectors

    def embedding_chunks(self, values: Sequence[float]) -> Iterator[List[float]]:
        """Yield consecutive slices of at most ``dimension`` values."""
        for start in range(0, len(values), self.dimension):
            yield list(values[start:start + self.dimension])

    def _build_vector(
        self,
        vector_id: str,
        values: List[float],
        metadata: Dict[str, Any],
    ) -> WireVector:
        vector = WireVector(id=vector_id, values=list(values), metadata=dict(metadata))
        if self.include_sparse_values:
            # Built before padding so padding zeros never show up as tokens.
            vector.sparse_values = self.sparse_values_builder.build(values)
        return vector

    def _pad_last_vector(self, vectors: List[WireVector]) -> None:
        last = vectors[-1]
        missing = self.dimension - len(last.values)
        if missing > 0:
            last.values.extend([0.0] * missing)


__all__ = [
    "normalize_embedding",
    "PineconeVectorsBuilder",
]
