# SPDX-License-Identifier: Apache-2.0
"""Query request rendering and metadata filter translation."""

import pytest
from llama_index.core.vector_stores.types import (
    ExactMatchFilter,
    FilterCondition,
    FilterOperator,
    MetadataFilter,
    MetadataFilters,
)

from llama_pinecone import (
    ConfigurationError,
    PineconeQueryBuilder,
    SparseValues,
    UnsupportedFilterError,
    build_pinecone_filter,
)


def test_minimal_vector_query():
    request = PineconeQueryBuilder(5, vector=[0.1, 0.2]).to_query_request()

    assert request == {
        "top_k": 5,
        "include_values": True,
        "include_metadata": True,
        "vector": [0.1, 0.2],
    }


def test_id_query_with_namespace():
    request = PineconeQueryBuilder(
        3, id="n1-0", namespace="ns", include_values=False
    ).to_query_request()

    assert request == {
        "top_k": 3,
        "include_values": False,
        "include_metadata": True,
        "namespace": "ns",
        "id": "n1-0",
    }


def test_requires_exactly_one_of_id_and_vector():
    with pytest.raises(ConfigurationError, match="One of `id` or `vector` is required."):
        PineconeQueryBuilder(1)
    with pytest.raises(ConfigurationError, match="Only one of `id` and `vector` is allowed."):
        PineconeQueryBuilder(1, id="a", vector=[1.0])


@pytest.mark.parametrize("top_k", [0, -1, 1.5, None])
def test_invalid_top_k(top_k):
    with pytest.raises(ConfigurationError):
        PineconeQueryBuilder(top_k, vector=[1.0])


@pytest.mark.parametrize("alpha", [-0.1, 1.5])
def test_alpha_out_of_range(alpha):
    with pytest.raises(ConfigurationError):
        PineconeQueryBuilder(1, vector=[1.0], alpha=alpha)


def test_alpha_weights_dense_and_sparse():
    request = PineconeQueryBuilder(
        2,
        vector=[1.0, 2.0],
        sparse_vector=SparseValues(indices=[1, 2], values=[2.0, 4.0]),
        alpha=0.25,
    ).to_query_request()

    assert request["vector"] == [0.25, 0.5]
    assert request["sparse_vector"] == {"indices": [1, 2], "values": [1.5, 3.0]}


def test_alpha_zero_is_pure_sparse():
    request = PineconeQueryBuilder(
        2,
        vector=[1.0, 2.0],
        sparse_vector=SparseValues(indices=[1], values=[2.0]),
        alpha=0.0,
    ).to_query_request()

    assert request["vector"] == [0.0, 0.0]
    assert request["sparse_vector"]["values"] == [2.0]


def test_sparse_without_alpha_is_unweighted():
    request = PineconeQueryBuilder(
        2, vector=[1.0], sparse_vector=SparseValues(indices=[9], values=[3.0])
    ).to_query_request()

    assert request["vector"] == [1.0]
    assert request["sparse_vector"] == {"indices": [9], "values": [3.0]}


def test_filters_are_translated():
    filters = MetadataFilters(
        filters=[
            MetadataFilter(key="year", value=2020, operator=FilterOperator.GTE),
            MetadataFilter(key="year", value=2024, operator=FilterOperator.LT),
            MetadataFilter(key="genre", value=["a", "b"], operator=FilterOperator.IN),
            ExactMatchFilter(key="lang", value="en"),
        ]
    )

    request = PineconeQueryBuilder(1, vector=[1.0], filters=filters).to_query_request()

    assert request["filter"] == {
        "year": {"$gte": 2020, "$lt": 2024},
        "genre": {"$in": ["a", "b"]},
        "lang": {"$eq": "en"},
    }


def test_set_operators_wrap_scalars():
    filters = MetadataFilters(
        filters=[MetadataFilter(key="tag", value="x", operator=FilterOperator.NIN)]
    )

    assert build_pinecone_filter(filters) == {"tag": {"$nin": ["x"]}}


def test_empty_filters_are_omitted():
    assert build_pinecone_filter(None) == {}
    request = PineconeQueryBuilder(
        1, vector=[1.0], filters=MetadataFilters(filters=[])
    ).to_query_request()
    assert "filter" not in request


def test_or_condition_is_unsupported():
    filters = MetadataFilters(
        filters=[MetadataFilter(key="a", value=1)],
        condition=FilterCondition.OR,
    )

    with pytest.raises(UnsupportedFilterError):
        PineconeQueryBuilder(1, vector=[1.0], filters=filters)


def test_text_match_operator_is_unsupported():
    filters = MetadataFilters(
        filters=[MetadataFilter(key="a", value="x", operator=FilterOperator.TEXT_MATCH)]
    )

    with pytest.raises(UnsupportedFilterError) as exc_info:
        build_pinecone_filter(filters)

    assert exc_info.value.details["key"] == "a"


def test_nested_filter_groups_are_unsupported():
    inner = MetadataFilters(filters=[MetadataFilter(key="a", value=1)])
    filters = MetadataFilters(filters=[inner])

    with pytest.raises(UnsupportedFilterError):
        build_pinecone_filter(filters)


@pytest.mark.parametrize(
    "operator, expected",
    [
        (FilterOperator.NE, "$ne"),
        (FilterOperator.GT, "$gt"),
        (FilterOperator.LTE, "$lte"),
        (FilterOperator.IN, "$in"),
    ],
)
def test_filter_operator_is_read_from_each_filter(operator, expected):
    filters = MetadataFilters(
        filters=[MetadataFilter(key="year", value=[2020], operator=operator)]
    )

    assert build_pinecone_filter(filters) == {"year": {expected: [2020]}}


def test_repeated_operator_on_same_key_uses_and():
    filters = MetadataFilters(
        filters=[
            MetadataFilter(key="tag", value="a", operator=FilterOperator.EQ),
            MetadataFilter(key="tag", value="b", operator=FilterOperator.EQ),
        ]
    )

    assert build_pinecone_filter(filters) == {
        "$and": [{"tag": {"$eq": "a"}}, {"tag": {"$eq": "b"}}]
    }


@pytest.mark.parametrize("query_id", ["", "   "])
def test_blank_id_is_rejected(query_id):
    with pytest.raises(ConfigurationError, match="`id` must be a non-empty string."):
        PineconeQueryBuilder(1, id=query_id)


def test_empty_vector_is_still_sent():
    request = PineconeQueryBuilder(1, vector=[]).to_query_request()

    assert request["vector"] == []
