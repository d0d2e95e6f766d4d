# llama_pinecone/metadata_builders.py
# SPDX-License-Identifier: Apache-2.0
"""
Metadata builders: LlamaIndex node -> flat Pinecone metadata record.

Pinecone only accepts strings, numbers, booleans and lists of those as
metadata values. Two strategies are provided:

- SimpleMetadataBuilder copies ``node.metadata`` and validates every value.
- FullContentMetadataBuilder serializes the whole node into ``node_content``
  so it can be rebuilt later by ``FullContentNodeHydrator``.

Both always record the node id (and the ref doc id when there is one) so
results can be mapped back and documents deleted by filter.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Protocol, runtime_checkable

from llama_index.core.schema import BaseNode

from llama_pinecone.errors import ValidationError

logger = logging.getLogger(__name__)

NODE_ID_KEY = "node_id"
REF_DOC_ID_KEY = "ref_doc_id"
NODE_TYPE_KEY = "node_type"
NODE_CONTENT_KEY = "node_content"

_SCALAR_TYPES = (str, int, float, bool)


@runtime_checkable
class MetadataBuilder(Protocol):
    """Strategy for producing a vector's metadata from its node."""

    def build_metadata(self, node: BaseNode) -> Dict[str, Any]: ...


def validate_metadata(key: Any, value: Any) -> None:
    """
    Raise ValidationError unless ``value`` is a scalar or a list of scalars.
    """
    if not isinstance(key, str):
        raise ValidationError(
            f"Metadata key {key!r} must be a string",
            details={"key": repr(key)},
        )

    if isinstance(value, _SCALAR_TYPES):
        return

    if isinstance(value, Mapping):
        raise ValidationError(
            f"Metadata value for {key} cannot be an object",
            details={"key": key, "value_type": type(value).__name__},
        )

    if isinstance(value, (list, tuple, set, frozenset)):
        for member in value:
            if not isinstance(member, _SCALAR_TYPES):
                raise ValidationError(
                    f"Metadata value for member of {key} cannot be an object",
                    details={"key": key, "value_type": type(member).__name__},
                )
        return

    raise ValidationError(
        f"Metadata value for {key} must be a string, number, boolean or list",
        details={"key": key, "value_type": type(value).__name__},
    )


def _base_metadata(node: BaseNode) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {NODE_ID_KEY: node.node_id}
    ref_doc_id = node.ref_doc_id
    if ref_doc_id is not None:
        metadata[REF_DOC_ID_KEY] = ref_doc_id
    return metadata


class SimpleMetadataBuilder:
    """
    Copy the node's metadata verbatim, minus ``excluded_keys``.

    Values are validated; nested objects raise ValidationError naming the key.
    Sets and tuples are sent as lists.
    """

    def __init__(self, excluded_keys: Iterable[str] = ()) -> None:
        self.excluded_keys = frozenset(excluded_keys)

    def build_metadata(self, node: BaseNode) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {}
        for key, value in (node.metadata or {}).items():
            if key in self.excluded_keys:
                continue
            validate_metadata(key, value)
            if isinstance(value, (tuple, set, frozenset)):
                value = list(value)
            metadata[key] = value

        # Reserved fields always reflect the node itself.
        reserved = _base_metadata(node)
        for key, value in reserved.items():
            if key in metadata and metadata[key] != value:
                logger.debug(
                    "node %s metadata key %r shadowed by reserved field",
                    node.node_id,
                    key,
                )
        metadata.update(reserved)
        return metadata


class FullContentMetadataBuilder:
    """
    Store the whole node as JSON so it can be fully reconstructed.

    The embedding is left out of the JSON since it is already the vector
    values. Pinecone caps metadata at 40KB per vector; very long nodes will
    be rejected remotely.
    """

    def build_metadata(self, node: BaseNode) -> Dict[str, Any]:
        metadata = _base_metadata(node)
        metadata[NODE_TYPE_KEY] = str(node.get_type().value)
        metadata[NODE_CONTENT_KEY] = node.model_copy(update={"embedding": None}).to_json()
        return metadata


__all__ = [
    "NODE_ID_KEY",
    "REF_DOC_ID_KEY",
    "NODE_TYPE_KEY",
    "NODE_CONTENT_KEY",
    "MetadataBuilder",
    "validate_metadata",
    "SimpleMetadataBuilder",
    "FullContentMetadataBuilder",
]
