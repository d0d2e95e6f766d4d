# llama_pinecone/vector_store.py
# SPDX-License-Identifier: Apache-2.0

"""
LlamaIndex vector store backed by a Pinecone index.

``PineconeVectorStore`` is a ``BasePydanticVectorStore`` that wires the
building blocks of this package together:

- nodes -> wire vectors (``PineconeVectorsBuilder``), split and padded to the
  index dimension, optionally with sparse values
- wire vectors -> Pinecone (``PineconeVectorsUpsert``), batched with
  per-batch failure accounting
- ``VectorStoreQuery`` -> query request (``PineconeQueryBuilder``), with
  dense / sparse / hybrid modes and metadata filter translation
- query matches -> ids, similarities and (with a hydrator) nodes

Every operation is async-first; the sync variants run the async
implementation through ``AsyncBridge``.

Example
-------

    from llama_pinecone import FullContentMetadataBuilder, FullContentNodeHydrator
    from llama_pinecone import PineconeVectorStore

    store = PineconeVectorStore(
        index_name="docs",
        namespace="prod",
        metadata_builder=FullContentMetadataBuilder(),
        node_hydrator=FullContentNodeHydrator(),
    )
    store.add(nodes_with_embeddings)
    result = store.query(VectorStoreQuery(query_embedding=emb, similarity_top_k=5))
"""

from __future__ import annotations

import asyncio
import logging
from functools import wraps
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pinecone import Pinecone
from pydantic import Field, field_validator, model_validator

from llama_index.core.schema import BaseNode
from llama_index.core.vector_stores.types import (
    BasePydanticVectorStore,
    FilterOperator,
    MetadataFilter,
    MetadataFilters,
    VectorStoreQuery,
    VectorStoreQueryMode,
    VectorStoreQueryResult,
)

from llama_pinecone.config import PineconeEnv
from llama_pinecone.core.async_bridge import run_async
from llama_pinecone.core.error_context import attach_context
from llama_pinecone.errors import ConfigurationError, ValidationError
from llama_pinecone.hydrators import NodeHydrator
from llama_pinecone.metadata_builders import (
    NODE_ID_KEY,
    REF_DOC_ID_KEY,
    MetadataBuilder,
    SimpleMetadataBuilder,
)
from llama_pinecone.pinecone_index import PineconeIndex, translate_error
from llama_pinecone.query_builder import PineconeQueryBuilder, build_pinecone_filter
from llama_pinecone.sparse_values import NaiveSparseValuesBuilder, SparseValuesBuilder
from llama_pinecone.types import (
    IndexStats,
    ScoredVector,
    UpsertResult,
    UpsertVectorsRecord,
    WireVector,
)
from llama_pinecone.vectors_builder import PineconeVectorsBuilder
from llama_pinecone.vectors_upsert import DEFAULT_UPSERT_BATCH_SIZE, PineconeVectorsUpsert

logger = logging.getLogger(__name__)

_HYBRID_MODES = (VectorStoreQueryMode.SPARSE, VectorStoreQueryMode.HYBRID)


def _with_id_filters(
    filters: Optional[MetadataFilters],
    ids_by_key: Mapping[str, Optional[Sequence[str]]],
) -> Optional[MetadataFilters]:
    """Append an ``IN`` filter per key with ids, keeping the caller's condition."""
    extra = [
        MetadataFilter(key=key, value=list(ids), operator=FilterOperator.IN)
        for key, ids in ids_by_key.items()
        if ids
    ]
    if not extra:
        return filters
    if filters is None:
        return MetadataFilters(filters=extra)
    return MetadataFilters(filters=[*filters.filters, *extra], condition=filters.condition)


# --------------------------------------------------------------------------- #
# Error-context decorators (sync + async)
# --------------------------------------------------------------------------- #


def _store_context(args: Sequence[Any]) -> Dict[str, Any]:
    store = args[0] if args else None
    return {
        "index_name": getattr(store, "index_name", None),
        "namespace": getattr(store, "namespace", None),
    }


def with_error_context(operation: str):
    def decorator(func):
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as exc:  # noqa: BLE001
                attach_context(
                    exc,
                    component="vector_store",
                    operation=operation,
                    **_store_context(args),
                )
                raise

        return wrapper

    return decorator


def with_async_error_context(operation: str):
    def decorator(func):
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except Exception as exc:  # noqa: BLE001
                attach_context(
                    exc,
                    component="vector_store",
                    operation=operation,
                    **_store_context(args),
                )
                raise

        return wrapper

    return decorator


class PineconeVectorStore(BasePydanticVectorStore):
    """
    Pinecone-backed LlamaIndex vector store.

    Nodes must carry embeddings before ``add``/``upsert``. The index
    dimension is read from the index stats (cached; see
    ``get_index_stats(force_refresh=True)``).

    When neither ``pinecone_client`` nor ``pinecone_env`` is given, a client
    is built from ``PINECONE_API_KEY`` / ``PINECONE_API_ENVIRONMENT`` on
    first use.
    """

    stores_text: bool = True
    flat_metadata: bool = True

    index_name: str = Field(..., description="Name of the Pinecone index.")
    namespace: Optional[str] = Field(
        default=None,
        description="Default namespace; None uses the index's default namespace.",
    )
    sparse_vector_builder: SparseValuesBuilder = Field(
        default_factory=NaiveSparseValuesBuilder,
        exclude=True,
        description="Builds sparse values for upserts and sparse/hybrid queries.",
    )
    metadata_builder: MetadataBuilder = Field(
        default_factory=SimpleMetadataBuilder,
        exclude=True,
        description="Builds the metadata stored with every vector.",
    )
    node_hydrator: Optional[NodeHydrator] = Field(
        default=None,
        exclude=True,
        description="Rebuilds nodes from query match metadata; None returns ids only.",
    )
    batch_size: int = Field(
        default=DEFAULT_UPSERT_BATCH_SIZE,
        description="Maximum vectors per upsert request.",
    )
    include_sparse_values: bool = Field(default=False)
    split_embeddings_by_dimension: bool = Field(default=False)
    alpha: Optional[float] = Field(
        default=None,
        description="Default dense weight for hybrid queries (0.0 sparse .. 1.0 dense).",
    )
    max_concurrency: Optional[int] = Field(
        default=None,
        description="Upper bound on concurrent batch upserts; None is unbounded.",
    )
    request_timeout_s: Optional[float] = Field(
        default=None,
        description="Per-request timeout for Pinecone calls.",
    )
    pinecone_client: Optional[Any] = Field(default=None, exclude=True)
    pinecone_env: Optional[PineconeEnv] = Field(default=None, exclude=True)

    # Lazily populated caches
    _client: Optional[Any] = None
    _pinecone_index: Optional[PineconeIndex] = None
    _index_stats: Optional[IndexStats] = None

    model_config = {"arbitrary_types_allowed": True}

    # ------------------------------------------------------------------ #
    # Configuration validation
    # ------------------------------------------------------------------ #

    @field_validator("index_name")
    @classmethod
    def validate_index_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ConfigurationError("index_name must be a non-empty string")
        return v

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if v < 1:
            raise ConfigurationError(
                "batch_size must be at least 1", details={"batch_size": v}
            )
        if v > 1000:
            logger.warning(
                "batch_size %d is unusually large; Pinecone rejects very large upsert requests",
                v,
            )
        return v

    @field_validator("alpha")
    @classmethod
    def validate_alpha(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not 0.0 <= v <= 1.0:
            raise ConfigurationError(
                "alpha must be between 0.0 and 1.0", details={"alpha": v}
            )
        return v

    @field_validator("max_concurrency")
    @classmethod
    def validate_max_concurrency(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ConfigurationError(
                "max_concurrency must be at least 1", details={"max_concurrency": v}
            )
        return v

    @field_validator("request_timeout_s")
    @classmethod
    def validate_request_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ConfigurationError(
                "request_timeout_s must be positive", details={"request_timeout_s": v}
            )
        return v

    @model_validator(mode="after")
    def validate_client_source(self) -> PineconeVectorStore:
        if self.pinecone_client is not None and self.pinecone_env is not None:
            logger.warning(
                "Both pinecone_client and pinecone_env were given; pinecone_env is ignored"
            )
        return self

    # ------------------------------------------------------------------ #
    # Identification / client
    # ------------------------------------------------------------------ #

    @classmethod
    def class_name(cls) -> str:
        return "PineconeVectorStore"

    @property
    def client(self) -> Any:
        """The Pinecone client, created on first access when not supplied."""
        if self.pinecone_client is not None:
            return self.pinecone_client
        if self._client is None:
            env = self.pinecone_env or PineconeEnv.from_env()
            self._client = Pinecone(api_key=env.api_key, environment=env.environment)
        return self._client

    # ------------------------------------------------------------------ #
    # Index handle / stats
    # ------------------------------------------------------------------ #

    @with_async_error_context("get_index_async")
    async def aget_index(self, force_refresh: bool = False) -> PineconeIndex:
        """
        Return the cached async index wrapper, creating it when needed.

        The SDK's ``Index`` constructor may do network I/O, so it runs on a
        worker thread.
        """
        if self._pinecone_index is None or force_refresh:
            client = self.client
            try:
                handle = await asyncio.to_thread(client.Index, self.index_name)
            except Exception as exc:  # noqa: BLE001
                raise translate_error(exc, op="get_index") from exc
            self._pinecone_index = PineconeIndex(
                handle, request_timeout_s=self.request_timeout_s
            )
        return self._pinecone_index

    @with_error_context("get_index_sync")
    def get_index(self, force_refresh: bool = False) -> PineconeIndex:
        return run_async(self.aget_index(force_refresh=force_refresh))

    @with_async_error_context("get_index_stats_async")
    async def aget_index_stats(self, force_refresh: bool = False) -> IndexStats:
        if self._index_stats is None or force_refresh:
            index = await self.aget_index()
            self._index_stats = await index.describe_index_stats()
            logger.debug(
                "index %s: dimension=%d total_vector_count=%d",
                self.index_name,
                self._index_stats.dimension,
                self._index_stats.total_vector_count,
            )
        return self._index_stats

    @with_error_context("get_index_stats_sync")
    def get_index_stats(self, force_refresh: bool = False) -> IndexStats:
        return run_async(self.aget_index_stats(force_refresh=force_refresh))

    def _effective_namespace(self, namespace: Optional[str]) -> Optional[str]:
        return namespace if namespace is not None else self.namespace

    # ------------------------------------------------------------------ #
    # Upsert
    # ------------------------------------------------------------------ #

    @with_async_error_context("upsert_async")
    async def aupsert(
        self,
        nodes: Sequence[BaseNode],
        *,
        namespace: Optional[str] = None,
        batch_size: Optional[int] = None,
        include_sparse_values: Optional[bool] = None,
        split_embeddings_by_dimension: Optional[bool] = None,
        metadata_builder: Optional[MetadataBuilder] = None,
    ) -> UpsertResult:
        """
        Build vectors for ``nodes`` and upsert them.

        Keyword arguments override the store defaults for this call only.

        Returns:
            UpsertResult. With more vectors than ``batch_size``, failed
            batches are reported in the result instead of raised.

        Raises:
            ValidationError: a node has no embedding or invalid metadata.
            DimensionMismatchError: wrong embedding length with splitting off.
            TransportError: a single (unbatched) upsert failed.
        """
        if not nodes:
            return UpsertResult()

        stats = await self.aget_index_stats()
        builder = PineconeVectorsBuilder(
            stats.dimension,
            include_sparse_values=(
                self.include_sparse_values
                if include_sparse_values is None
                else include_sparse_values
            ),
            split_embeddings_by_dimension=(
                self.split_embeddings_by_dimension
                if split_embeddings_by_dimension is None
                else split_embeddings_by_dimension
            ),
            sparse_values_builder=self.sparse_vector_builder,
            metadata_builder=metadata_builder or self.metadata_builder,
            alpha=self.alpha,
        )

        # All vectors are built before the first request is sent.
        record = UpsertVectorsRecord()
        for node in nodes:
            if node.embedding is None:
                raise ValidationError(
                    f"Node {node.node_id} has no embedding",
                    code="NO_EMBEDDING",
                    details={"node_id": node.node_id},
                )
            record.add(node.node_id, builder.build_vectors(node, node.embedding))

        executor = PineconeVectorsUpsert(
            await self.aget_index(),
            batch_size=batch_size or self.batch_size,
            namespace=self._effective_namespace(namespace),
            max_concurrency=self.max_concurrency,
        )
        result = await executor.execute(record)

        if result.failed_node_count:
            logger.warning(
                "upsert into %s: %d node(s) failed in %d batch(es)",
                self.index_name,
                result.failed_node_count,
                len(result.errors),
            )
        return result

    @with_error_context("upsert_sync")
    def upsert(self, nodes: Sequence[BaseNode], **kwargs: Any) -> UpsertResult:
        return run_async(self.aupsert(nodes, **kwargs))

    @with_async_error_context("add_async")
    async def aadd(self, nodes: Sequence[BaseNode], **add_kwargs: Any) -> List[str]:
        """Upsert ``nodes`` and return the ids of those that were written."""
        result = await self.aupsert(nodes, **add_kwargs)
        return list(result.upserted_node_ids)

    async def async_add(self, nodes: Sequence[BaseNode], **add_kwargs: Any) -> List[str]:
        return await self.aadd(nodes, **add_kwargs)

    @with_error_context("add_sync")
    def add(self, nodes: Sequence[BaseNode], **add_kwargs: Any) -> List[str]:
        return run_async(self.aadd(nodes, **add_kwargs))

    # ------------------------------------------------------------------ #
    # Query
    # ------------------------------------------------------------------ #

    def _query_filters(self, query: VectorStoreQuery) -> Optional[MetadataFilters]:
        """Fold ``doc_ids`` / ``node_ids`` into the query's metadata filters."""
        return _with_id_filters(
            query.filters,
            {REF_DOC_ID_KEY: query.doc_ids, NODE_ID_KEY: query.node_ids},
        )

    @with_async_error_context("query_all_async")
    async def aquery_all(
        self,
        query: VectorStoreQuery,
        *,
        namespace: Optional[str] = None,
        vector_id: Optional[str] = None,
        include_values: bool = True,
        include_metadata: bool = True,
    ) -> List[ScoredVector]:
        """
        Query the index and return raw scored vectors.

        ``vector_id`` queries by a stored vector instead of
        ``query.query_embedding``; the two are mutually exclusive.

        ``query.alpha`` (or the store's ``alpha``) only weights SPARSE and
        HYBRID queries. DEFAULT queries send the dense vector unscaled.
        """
        embedding = query.query_embedding
        sparse_vector = None
        alpha = None
        if query.mode in _HYBRID_MODES:
            if embedding is None:
                raise ValidationError(
                    f"{query.mode.value} queries require a query embedding",
                    code="NO_EMBEDDING",
                )
            sparse_vector = self.sparse_vector_builder.build(embedding)
            alpha = query.alpha if query.alpha is not None else self.alpha

        builder = PineconeQueryBuilder(
            query.similarity_top_k,
            vector=embedding,
            id=vector_id,
            sparse_vector=sparse_vector,
            namespace=self._effective_namespace(namespace),
            include_values=include_values,
            include_metadata=include_metadata,
            alpha=alpha,
            filters=self._query_filters(query),
        )
        index = await self.aget_index()
        return await index.query(**builder.to_query_request())

    @with_error_context("query_all_sync")
    def query_all(self, query: VectorStoreQuery, **kwargs: Any) -> List[ScoredVector]:
        return run_async(self.aquery_all(query, **kwargs))

    @with_async_error_context("query_async")
    async def aquery(self, query: VectorStoreQuery, **kwargs: Any) -> VectorStoreQueryResult:
        """
        Query and map matches to ids, similarities and optionally nodes.

        Ids come from the ``node_id`` metadata field, so sub-vectors of a split
        node report their node's id. A hydration failure propagates.
        """
        matches = await self.aquery_all(
            query,
            namespace=kwargs.get("namespace"),
            vector_id=kwargs.get("vector_id"),
            include_values=False,
            include_metadata=True,
        )

        ids: List[str] = []
        similarities: List[float] = []
        nodes: List[BaseNode] = []
        for match in matches:
            metadata: Mapping[str, Any] = match.metadata or {}
            ids.append(str(metadata.get(NODE_ID_KEY, match.id)))
            similarities.append(match.score)
            if self.node_hydrator is not None:
                nodes.append(self.node_hydrator.hydrate(metadata))

        return VectorStoreQueryResult(
            nodes=nodes if self.node_hydrator is not None else None,
            similarities=similarities,
            ids=ids,
        )

    @with_error_context("query_sync")
    def query(self, query: VectorStoreQuery, **kwargs: Any) -> VectorStoreQueryResult:
        return run_async(self.aquery(query, **kwargs))

    # ------------------------------------------------------------------ #
    # Fetch
    # ------------------------------------------------------------------ #

    @with_async_error_context("fetch_async")
    async def afetch(
        self,
        vector_ids: Sequence[str],
        namespace: Optional[str] = None,
    ) -> Dict[str, WireVector]:
        if not vector_ids:
            return {}
        index = await self.aget_index()
        return await index.fetch(
            vector_ids, namespace=self._effective_namespace(namespace)
        )

    @with_error_context("fetch_sync")
    def fetch(
        self,
        vector_ids: Sequence[str],
        namespace: Optional[str] = None,
    ) -> Dict[str, WireVector]:
        return run_async(self.afetch(vector_ids, namespace=namespace))

    # ------------------------------------------------------------------ #
    # Delete
    # ------------------------------------------------------------------ #

    @with_async_error_context("delete_vectors_async")
    async def adelete_vectors(
        self,
        vector_ids: Sequence[str],
        namespace: Optional[str] = None,
    ) -> None:
        """Delete vectors by their Pinecone ids (e.g. ``"<node_id>-1"``)."""
        if not vector_ids:
            return
        index = await self.aget_index()
        await index.delete(
            ids=vector_ids, namespace=self._effective_namespace(namespace)
        )

    @with_error_context("delete_vectors_sync")
    def delete_vectors(
        self,
        vector_ids: Sequence[str],
        namespace: Optional[str] = None,
    ) -> None:
        run_async(self.adelete_vectors(vector_ids, namespace=namespace))

    @with_async_error_context("delete_nodes_async")
    async def adelete_nodes(
        self,
        node_ids: Optional[List[str]] = None,
        filters: Optional[MetadataFilters] = None,
        **delete_kwargs: Any,
    ) -> None:
        """Delete every vector of the given nodes, including split sub-vectors."""
        pinecone_filter = build_pinecone_filter(
            _with_id_filters(filters, {NODE_ID_KEY: node_ids})
        )
        if not pinecone_filter:
            return
        index = await self.aget_index()
        await index.delete(
            filter=pinecone_filter,
            namespace=self._effective_namespace(delete_kwargs.get("namespace")),
        )

    @with_error_context("delete_nodes_sync")
    def delete_nodes(
        self,
        node_ids: Optional[List[str]] = None,
        filters: Optional[MetadataFilters] = None,
        **delete_kwargs: Any,
    ) -> None:
        run_async(self.adelete_nodes(node_ids, filters=filters, **delete_kwargs))

    @with_async_error_context("delete_async")
    async def adelete(self, ref_doc_id: str, **delete_kwargs: Any) -> None:
        """Delete every vector whose node belongs to ``ref_doc_id``."""
        index = await self.aget_index()
        await index.delete(
            filter={REF_DOC_ID_KEY: {"$eq": ref_doc_id}},
            namespace=self._effective_namespace(delete_kwargs.get("namespace")),
        )

    @with_error_context("delete_sync")
    def delete(self, ref_doc_id: str, **delete_kwargs: Any) -> None:
        run_async(self.adelete(ref_doc_id, **delete_kwargs))

    @with_async_error_context("clear_async")
    async def aclear(self, namespace: Optional[str] = None) -> None:
        """Delete every vector in the namespace."""
        index = await self.aget_index()
        await index.delete(
            delete_all=True, namespace=self._effective_namespace(namespace)
        )
        self._index_stats = None

    @with_error_context("clear_sync")
    def clear(self, namespace: Optional[str] = None) -> None:
        run_async(self.aclear(namespace=namespace))


__all__ = [
    "PineconeVectorStore",
    "with_error_context",
    "with_async_error_context",
]
