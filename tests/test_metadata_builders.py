# SPDX-License-Identifier: Apache-2.0
"""Metadata builders and metadata validation."""

import json

import pytest
from llama_index.core.schema import Document, ObjectType

from llama_pinecone import (
    FullContentMetadataBuilder,
    SimpleMetadataBuilder,
    ValidationError,
)
from llama_pinecone.metadata_builders import validate_metadata
from tests.conftest import make_node


def test_simple_builder_copies_metadata_and_adds_ids():
    node = make_node("n1", metadata={"title": "Intro", "year": 2020, "tags": ["a", "b"]})

    metadata = SimpleMetadataBuilder().build_metadata(node)

    assert metadata == {
        "title": "Intro",
        "year": 2020,
        "tags": ["a", "b"],
        "node_id": "n1",
        "ref_doc_id": "doc-1",
    }


def test_simple_builder_omits_ref_doc_id_without_source():
    node = make_node("n1", ref_doc_id=None, metadata={"k": "v"})

    metadata = SimpleMetadataBuilder().build_metadata(node)

    assert "ref_doc_id" not in metadata
    assert metadata["node_id"] == "n1"


def test_simple_builder_excluded_keys():
    node = make_node("n1", metadata={"keep": 1, "secret": "x"})

    metadata = SimpleMetadataBuilder(excluded_keys=["secret"]).build_metadata(node)

    assert "secret" not in metadata
    assert metadata["keep"] == 1


def test_simple_builder_reserved_fields_win_over_user_metadata():
    node = make_node("n1", metadata={"node_id": "spoofed"})

    metadata = SimpleMetadataBuilder().build_metadata(node)

    assert metadata["node_id"] == "n1"


def test_simple_builder_rejects_nested_object_naming_key():
    node = make_node("n1", metadata={"author": {"name": "Ada"}})

    with pytest.raises(ValidationError) as exc_info:
        SimpleMetadataBuilder().build_metadata(node)

    assert "author" in str(exc_info.value)
    assert exc_info.value.code == "BAD_METADATA"
    assert exc_info.value.details["key"] == "author"


def test_simple_builder_rejects_object_inside_list():
    node = make_node("n1", metadata={"people": ["a", {"name": "b"}]})

    with pytest.raises(ValidationError, match="member of people"):
        SimpleMetadataBuilder().build_metadata(node)


@pytest.mark.parametrize("value", ["s", 1, 1.5, True, [], ["a", 2, False]])
def test_validate_metadata_accepts_scalars_and_lists(value):
    validate_metadata("k", value)


@pytest.mark.parametrize("value", [None, {"a": 1}, object(), [None]])
def test_validate_metadata_rejects_other_values(value):
    with pytest.raises(ValidationError):
        validate_metadata("k", value)


def test_full_content_builder_serializes_node():
    node = make_node("n1", text="full text", metadata={"nested": {"ok": True}})

    metadata = FullContentMetadataBuilder().build_metadata(node)

    assert metadata["node_id"] == "n1"
    assert metadata["ref_doc_id"] == "doc-1"
    assert metadata["node_type"] == ObjectType.TEXT.value
    content = json.loads(metadata["node_content"])
    assert content["text"] == "full text"
    # Nested values are allowed: they live inside the serialized node.
    assert content["metadata"] == {"nested": {"ok": True}}


def test_full_content_builder_document_type():
    doc = Document(text="a document", id_="d1")

    metadata = FullContentMetadataBuilder().build_metadata(doc)

    assert metadata["node_type"] == ObjectType.DOCUMENT.value


def test_full_content_builder_leaves_out_embedding():
    node = make_node("n1", embedding=[0.5] * 8)

    metadata = FullContentMetadataBuilder().build_metadata(node)

    assert json.loads(metadata["node_content"])["embedding"] is None
    assert node.embedding == [0.5] * 8
