# llama_pinecone/__init__.py
# SPDX-License-Identifier: Apache-2.0
"""
Pinecone vector store for LlamaIndex.

Public surface:

- PineconeVectorStore          the LlamaIndex ``BasePydanticVectorStore``
- PineconeVectorsBuilder       node + embedding -> Pinecone vectors
- PineconeQueryBuilder         query options -> ``Index.query`` request
- PineconeVectorsUpsert        batched upserts with failure accounting
- metadata builders, sparse value builders and node hydrators
"""

from llama_pinecone.config import PineconeEnv
from llama_pinecone.errors import (
    ConfigurationError,
    DimensionMismatchError,
    MissingContentError,
    PineconeVectorStoreError,
    TransportError,
    UnknownNodeTypeError,
    UnsupportedFilterError,
    ValidationError,
)
from llama_pinecone.hydrators import FullContentNodeHydrator, NodeHydrator
from llama_pinecone.metadata_builders import (
    FullContentMetadataBuilder,
    MetadataBuilder,
    SimpleMetadataBuilder,
)
from llama_pinecone.pinecone_index import PineconeIndex
from llama_pinecone.query_builder import PineconeQueryBuilder, build_pinecone_filter
from llama_pinecone.sparse_values import NaiveSparseValuesBuilder, SparseValuesBuilder
from llama_pinecone.types import (
    IndexStats,
    ScoredVector,
    SparseValues,
    UpsertResult,
    UpsertVectorsRecord,
    WireVector,
)
from llama_pinecone.vector_store import PineconeVectorStore
from llama_pinecone.vectors_builder import PineconeVectorsBuilder
from llama_pinecone.vectors_upsert import PineconeVectorsUpsert

__version__ = "0.1.0"

__all__ = [
    "PineconeVectorStore",
    "PineconeVectorsBuilder",
    "PineconeVectorsUpsert",
    "PineconeQueryBuilder",
    "PineconeIndex",
    "PineconeEnv",
    "build_pinecone_filter",
    "MetadataBuilder",
    "SimpleMetadataBuilder",
    "FullContentMetadataBuilder",
    "SparseValuesBuilder",
    "NaiveSparseValuesBuilder",
    "NodeHydrator",
    "FullContentNodeHydrator",
    "SparseValues",
    "WireVector",
    "ScoredVector",
    "IndexStats",
    "UpsertVectorsRecord",
    "UpsertResult",
    "PineconeVectorStoreError",
    "ConfigurationError",
    "DimensionMismatchError",
    "ValidationError",
    "UnsupportedFilterError",
    "TransportError",
    "UnknownNodeTypeError",
    "MissingContentError",
    "__version__",
]
