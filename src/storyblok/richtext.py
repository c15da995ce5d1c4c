"""
Plain-text extraction from Storyblok rich text documents.

Storyblok rich text is a ProseMirror-style tree of typed nodes:

    {"type": "doc", "content": [
        {"type": "paragraph", "content": [
            {"type": "text", "text": "Hello", "marks": [{"type": "bold"}]}
        ]}
    ]}

Every node is treated as one of three kinds and handled by the matching
visitor. Anything that is neither a text leaf nor a container (images,
horizontal rules, embedded bloks, malformed values) contributes nothing.
"""
from enum import Enum
from typing import Any


class NodeKind(Enum):
    TEXT = "text"
    CONTAINER = "container"
    UNKNOWN = "unknown"


def classify_node(node: Any) -> NodeKind:
    """Return the kind of a rich text node.

    A text leaf is a mapping with type "text" and a non-empty string "text".
    A container is any other mapping with a list under "content".
    """
    if not isinstance(node, dict):
        return NodeKind.UNKNOWN
    text = node.get("text")
    if node.get("type") == "text" and isinstance(text, str) and text:
        return NodeKind.TEXT
    if isinstance(node.get("content"), list):
        return NodeKind.CONTAINER
    return NodeKind.UNKNOWN


def _visit_text(node: dict) -> str:
    return node["text"]


def _visit_container(node: dict) -> str:
    # Depth-first; empty subtrees are dropped so they don't leave double spaces
    pieces = (visit(child) for child in node["content"])
    return " ".join(piece for piece in pieces if piece)


def _visit_unknown(node: Any) -> str:
    return ""


_VISITORS = {
    NodeKind.TEXT: _visit_text,
    NodeKind.CONTAINER: _visit_container,
    NodeKind.UNKNOWN: _visit_unknown,
}


def visit(node: Any) -> str:
    """Extract the text of a single node and its descendants."""
    return _VISITORS[classify_node(node)](node)


def extract_text(document: Any) -> str:
    """Flatten a rich text document to plain text.

    A document that is already a string is returned unchanged. Otherwise the
    text leaves are collected depth-first and joined with single spaces.

    Example:
        >>> extract_text({"type": "doc", "content": [
        ...     {"type": "paragraph", "content": [{"type": "text", "text": "A"}]},
        ...     {"type": "paragraph", "content": [{"type": "text", "text": "B"}]},
        ... ]})
        'A B'
    """
    if isinstance(document, str):
        return document
    return visit(document)
