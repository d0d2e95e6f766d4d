# llama_pinecone/hydrators.py
# SPDX-License-Identifier: Apache-2.0
"""
Node hydrators: Pinecone vector metadata -> LlamaIndex node.

Pass a hydrator to ``PineconeVectorStore`` (``node_hydrator=...``) to get
``nodes`` back from ``query``. Without one, query results carry only ids and
similarities.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Protocol, Type, runtime_checkable

from llama_index.core.schema import BaseNode, Document, IndexNode, ObjectType, TextNode

from llama_pinecone.errors import MissingContentError, UnknownNodeTypeError
from llama_pinecone.metadata_builders import (
    NODE_CONTENT_KEY,
    NODE_ID_KEY,
    NODE_TYPE_KEY,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class NodeHydrator(Protocol):
    """Strategy for rebuilding a node from a vector's metadata."""

    def hydrate(self, metadata: Mapping[str, Any]) -> BaseNode: ...


class FullContentNodeHydrator:
    """
    Rebuild nodes written by ``FullContentMetadataBuilder``.

    Expects the node serialized as JSON under ``node_content`` and its
    ``ObjectType`` value under ``node_type``.
    """

    NODE_CLASSES: Dict[str, Type[BaseNode]] = {
        ObjectType.DOCUMENT.value: Document,
        ObjectType.INDEX.value: IndexNode,
        ObjectType.TEXT.value: TextNode,
    }

    def hydrate(self, metadata: Mapping[str, Any]) -> BaseNode:
        node_id = metadata.get(NODE_ID_KEY)
        node_content = metadata.get(NODE_CONTENT_KEY)
        if not node_content:
            raise MissingContentError(
                f"Vector for node {node_id} has no {NODE_CONTENT_KEY} key in its metadata.",
                details={"node_id": node_id},
            )

        node_type = str(metadata.get(NODE_TYPE_KEY))
        node_cls = self.NODE_CLASSES.get(node_type)
        if node_cls is None:
            raise UnknownNodeTypeError(
                f"Unknown node type {metadata.get(NODE_TYPE_KEY)!r}",
                details={"node_id": node_id, "node_type": node_type},
            )

        logger.debug("hydrating node %s as %s", node_id, node_cls.__name__)
        return node_cls.from_json(node_content)


__all__ = [
    "NodeHydrator",
    "FullContentNodeHydrator",
]
