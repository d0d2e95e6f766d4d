# SPDX-License-Identifier: Apache-2.0
"""Sync entry points called without a running event loop."""

import pytest
from llama_index.core.vector_stores.types import VectorStoreQuery

from llama_pinecone import TransportError
from llama_pinecone.core import get_context
from tests.conftest import make_node


def test_add_query_delete_roundtrip(make_store, fake_index):
    store = make_store()

    assert store.add([make_node("a", [1.0, 0.0, 0.0, 0.0])]) == ["a"]
    result = store.query(VectorStoreQuery(query_embedding=[1.0, 0.0, 0.0, 0.0], similarity_top_k=3))
    assert result.ids == ["a"]
    assert result.nodes is None

    store.delete_vectors(["a"])
    assert store.fetch(["a"]) == {}
    assert store.get_index_stats().dimension == 4


def test_transport_errors_carry_store_context(make_store, fake_index):
    fake_index.fail_on_calls = {1}
    store = make_store(namespace="ns")

    with pytest.raises(TransportError) as exc_info:
        store.add([make_node("a", [1.0] * 4)])

    ctx = get_context(exc_info.value, component="vector_store")
    assert ctx["operation"] == "add_sync"
    assert ctx["namespace"] == "ns"
    assert exc_info.value.code == "UNAVAILABLE"
