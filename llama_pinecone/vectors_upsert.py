# llama_pinecone/vectors_upsert.py
# SPDX-License-Identifier: Apache-2.0
"""
Send assembled vectors to Pinecone, batching when needed.

Small upserts (total vectors <= batch size) go out in one call and any
transport error propagates. Larger upserts are partitioned into batches that
are sent concurrently; their outcomes are collected first and then folded in
batch order into a single ``UpsertResult``. Failed batches are recorded, not
raised.

Accounting is per batch: Pinecone reports only a count, so a batch whose
count does not match what was sent marks every node it touched as failed.
A node whose sub-vectors straddle batches may therefore be listed as both
upserted and failed; retrying it is safe because upserts are idempotent.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple, Union

from llama_pinecone.errors import ConfigurationError
from llama_pinecone.pinecone_index import PineconeIndex
from llama_pinecone.types import (
    NodeID,
    UpsertResult,
    UpsertVectorsRecord,
    WireVector,
)

logger = logging.getLogger(__name__)

DEFAULT_UPSERT_BATCH_SIZE = 100

VectorBatch = Dict[NodeID, List[WireVector]]
BatchOutcome = Union[int, BaseException]


def _flatten(vectors_by_node: VectorBatch) -> List[WireVector]:
    return [vector for vectors in vectors_by_node.values() for vector in vectors]


def _append_unique(items: List[NodeID], seen: set, value: NodeID) -> None:
    if value not in seen:
        seen.add(value)
        items.append(value)


class PineconeVectorsUpsert:
    """
    Upsert executor for one ``UpsertVectorsRecord``.

    Args:
        index: Async Pinecone index wrapper.
        batch_size: Maximum vectors per upsert request.
        namespace: Target namespace; None uses the index default.
        max_concurrency: Upper bound on in-flight batch requests; None sends
            every batch at once.
    """

    def __init__(
        self,
        index: PineconeIndex,
        *,
        batch_size: int = DEFAULT_UPSERT_BATCH_SIZE,
        namespace: Optional[str] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        if batch_size < 1:
            raise ConfigurationError(
                "batch_size must be at least 1",
                details={"batch_size": batch_size},
            )
        if max_concurrency is not None and max_concurrency < 1:
            raise ConfigurationError(
                "max_concurrency must be at least 1",
                details={"max_concurrency": max_concurrency},
            )
        self.index = index
        self.batch_size = batch_size
        self.namespace = namespace
        self.max_concurrency = max_concurrency

    async def execute(self, record: UpsertVectorsRecord) -> UpsertResult:
        if record.total_vector_count > self.batch_size:
            return await self.batch_upsert(record.vectors_by_node)
        return await self.single_upsert(record.vectors_by_node)

    # ------------------------------------------------------------------ #
    # Single request
    # ------------------------------------------------------------------ #

    async def single_upsert(self, vectors_by_node: VectorBatch) -> UpsertResult:
        """
        Upsert every vector in one request.

        Raises:
            TransportError: the request failed; nothing can be attributed.
        """
        vectors = _flatten(vectors_by_node)
        upserted_count = await self.index.upsert(vectors, namespace=self.namespace)
        if upserted_count != len(vectors):
            logger.warning(
                "Pinecone reported %d upserted vectors for a request of %d",
                upserted_count,
                len(vectors),
            )

        node_ids = list(vectors_by_node.keys())
        return UpsertResult(
            upserted_node_count=len(node_ids),
            upserted_node_ids=node_ids,
            upserted_vector_count=len(vectors),
            upserted_vector_by_node={k: list(v) for k, v in vectors_by_node.items()},
        )

    # ------------------------------------------------------------------ #
    # Batched requests
    # ------------------------------------------------------------------ #

    def build_vector_batches(
        self,
        vectors_by_node: VectorBatch,
        batch_size: Optional[int] = None,
    ) -> List[VectorBatch]:
        """
        Partition vectors into batches of at most ``batch_size``.

        A node's vectors join the current batch whole when they fit. When
        they do not, they top up the current batch and the rest spill into
        the following batches, so every batch but the last is full.
        """
        batch_size = batch_size or self.batch_size
        batches: List[VectorBatch] = []
        current: VectorBatch = {}
        current_size = 0

        for node_id, vectors in vectors_by_node.items():
            remaining = list(vectors)
            while remaining:
                space = batch_size - current_size
                take = remaining[:space]
                current.setdefault(node_id, []).extend(take)
                current_size += len(take)
                remaining = remaining[space:]

                if current_size == batch_size:
                    batches.append(current)
                    current = {}
                    current_size = 0

        if current_size:
            batches.append(current)
        return batches

    async def batch_upsert(self, vectors_by_node: VectorBatch) -> UpsertResult:
        """Upsert in concurrent batches and fold the outcomes."""
        batches = self.build_vector_batches(vectors_by_node)
        logger.debug(
            "upserting %d vectors in %d batches of up to %d",
            sum(len(v) for v in vectors_by_node.values()),
            len(batches),
            self.batch_size,
        )

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def run_one(batch: VectorBatch) -> int:
            if semaphore is None:
                return await self.index.upsert(_flatten(batch), namespace=self.namespace)
            async with semaphore:
                return await self.index.upsert(_flatten(batch), namespace=self.namespace)

        outcomes: List[BatchOutcome] = await asyncio.gather(
            *(run_one(batch) for batch in batches),
            return_exceptions=True,
        )
        return self.fold_batch_outcomes(list(zip(batches, outcomes)))

    def fold_batch_outcomes(
        self,
        batch_outcomes: List[Tuple[VectorBatch, BatchOutcome]],
    ) -> UpsertResult:
        """Combine per-batch outcomes, in order, into one result."""
        result = UpsertResult()
        upserted_seen: set = set()
        failed_seen: set = set()

        for batch_number, (batch, outcome) in enumerate(batch_outcomes):
            sent = sum(len(v) for v in batch.values())

            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                error = f"Error with call to Pinecone in batch {batch_number}: {outcome}"
            elif outcome != sent:
                error = (
                    f"Pinecone upserted {outcome} of {sent} vectors in batch {batch_number}"
                )
            else:
                error = None

            if error is None:
                for node_id, vectors in batch.items():
                    _append_unique(result.upserted_node_ids, upserted_seen, node_id)
                    result.upserted_vector_by_node.setdefault(node_id, []).extend(vectors)
                    result.upserted_vector_count += len(vectors)
                continue

            logger.warning("%s; marking %d node(s) as failed", error, len(batch))
            result.errors.append(error)
            for node_id in batch:
                _append_unique(result.failed_node_ids, failed_seen, node_id)

        result.upserted_node_count = len(result.upserted_node_ids)
        result.failed_node_count = len(result.failed_node_ids)
        return result


__all__ = [
    "DEFAULT_UPSERT_BATCH_SIZE",
    "PineconeVectorsUpsert",
]
