# llama_pinecone/sparse_values.py
# SPDX-License-Identifier: Apache-2.0
"""
Sparse value builders.

A sparse builder turns a dense embedding into the ``sparse_values`` component
Pinecone uses for hybrid search. Builders are passed to the store as
instances, so any object with a matching ``build`` method works.
"""

from __future__ import annotations

from typing import Dict, Protocol, Sequence, runtime_checkable

from llama_pinecone.types import SparseValues


@runtime_checkable
class SparseValuesBuilder(Protocol):
    """Strategy for deriving sparse values from a dense embedding."""

    def build(self, embedding: Sequence[float]) -> SparseValues: ...


class NaiveSparseValuesBuilder:
    """
    Histogram of embedding values.

    Each distinct value (cast to ``int``) becomes an index and its number of
    occurrences becomes the value. Indices keep the order in which each value
    was first seen; they are not sorted.

    Example:
        >>> NaiveSparseValuesBuilder().build([1, 2, 3, 2, 3, 1, 5, 3, 1])
        SparseValues(indices=[1, 2, 3, 5], values=[3.0, 2.0, 3.0, 1.0])

    BM25 or SPLADE style builders are usually more effective; this one works
    best on token-id "embeddings".
    """

    def build(self, embedding: Sequence[float]) -> SparseValues:
        frequencies: Dict[int, int] = {}
        for value in embedding:
            token = int(value)
            frequencies[token] = frequencies.get(token, 0) + 1

        return SparseValues(
            indices=list(frequencies.keys()),
            values=[float(count) for count in frequencies.values()],
        )


__all__ = [
    "SparseValuesBuilder",
    "NaiveSparseValuesBuilder",
]
