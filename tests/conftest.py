# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures: an in-memory stand-in for ``pinecone.Index`` plus node and
store factories.

``FakePineconeIndex`` mimics the blocking SDK surface (dict responses) and
records every call. Upserts can be made to fail or under-report per call via
``fail_on_calls`` / ``short_count_on_calls`` (1-based call numbers).
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pytest
from llama_index.core.schema import NodeRelationship, RelatedNodeInfo, TextNode

from llama_pinecone import PineconeVectorStore


class FakePineconeError(Exception):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class FakePineconeIndex:
    def __init__(self, dimension: int = 4) -> None:
        self.dimension = dimension
        self.namespaces: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.upsert_calls: List[Dict[str, Any]] = []
        self.query_calls: List[Dict[str, Any]] = []
        self.delete_calls: List[Dict[str, Any]] = []
        self.fetch_calls: List[Dict[str, Any]] = []
        self.fail_on_calls: set = set()
        self.short_count_on_calls: set = set()
        self.query_response: Optional[Dict[str, Any]] = None
        self._lock = threading.Lock()

    def _ns(self, namespace: Optional[str]) -> Dict[str, Dict[str, Any]]:
        return self.namespaces.setdefault(namespace or "", {})

    def upsert(self, vectors: Sequence[Mapping[str, Any]], namespace: Optional[str] = None):
        with self._lock:
            self.upsert_calls.append({"vectors": list(vectors), "namespace": namespace})
            call_number = len(self.upsert_calls)
        if call_number in self.fail_on_calls:
            raise FakePineconeError("service unavailable", status=503)
        store = self._ns(namespace)
        for vector in vectors:
            store[vector["id"]] = dict(vector)
        count = len(vectors)
        if call_number in self.short_count_on_calls:
            count -= 1
        return {"upserted_count": count}

    def query(self, **request: Any):
        self.query_calls.append(request)
        if self.query_response is not None:
            return self.query_response
        matches = []
        for vector in self._ns(request.get("namespace")).values():
            match = {"id": vector["id"], "score": 1.0}
            if request.get("include_metadata"):
                match["metadata"] = vector.get("metadata", {})
            if request.get("include_values"):
                match["values"] = vector["values"]
            matches.append(match)
        return {"matches": matches[: request["top_k"]]}

    def fetch(self, ids: Sequence[str], namespace: Optional[str] = None):
        self.fetch_calls.append({"ids": list(ids), "namespace": namespace})
        store = self._ns(namespace)
        return {"vectors": {i: store[i] for i in ids if i in store}}

    def delete(self, **kwargs: Any):
        self.delete_calls.append(kwargs)
        store = self._ns(kwargs.get("namespace"))
        if kwargs.get("delete_all"):
            store.clear()
        elif "ids" in kwargs:
            for vector_id in kwargs["ids"]:
                store.pop(vector_id, None)
        return {}

    def describe_index_stats(self):
        return {
            "dimension": self.dimension,
            "total_vector_count": sum(len(v) for v in self.namespaces.values()),
            "index_fullness": 0.0,
            "namespaces": {
                name: {"vector_count": len(vectors)}
                for name, vectors in self.namespaces.items()
            },
        }


class FakePineconeClient:
    def __init__(self, index: FakePineconeIndex) -> None:
        self.index = index
        self.index_names: List[str] = []
        self.index_thread_ids: List[int] = []

    def Index(self, name: str) -> FakePineconeIndex:  # noqa: N802
        self.index_names.append(name)
        self.index_thread_ids.append(threading.get_ident())
        return self.index


def make_node(
    node_id: str = "node-1",
    embedding: Optional[List[float]] = None,
    *,
    text: str = "hello world",
    ref_doc_id: Optional[str] = "doc-1",
    metadata: Optional[Dict[str, Any]] = None,
) -> TextNode:
    relationships = {}
    if ref_doc_id is not None:
        relationships[NodeRelationship.SOURCE] = RelatedNodeInfo(node_id=ref_doc_id)
    return TextNode(
        id_=node_id,
        text=text,
        embedding=embedding,
        metadata=metadata or {},
        relationships=relationships,
    )


@pytest.fixture
def fake_index() -> FakePineconeIndex:
    return FakePineconeIndex(dimension=4)


@pytest.fixture
def fake_client(fake_index: FakePineconeIndex) -> FakePineconeClient:
    return FakePineconeClient(fake_index)


@pytest.fixture
def make_store(fake_client: FakePineconeClient):
    def _make(**kwargs: Any) -> PineconeVectorStore:
        kwargs.setdefault("index_name", "test-index")
        return PineconeVectorStore(pinecone_client=fake_client, **kwargs)

    return _make
