"""Canonical text forms for registry schemas.

Schemas are compared by a normalized textual form so that formatting-only
edits in a state file never show up as changes:

- AVRO / JSON: parsed and re-serialized with sorted keys and stable
  separators. Array order (Avro `fields`, enum symbols) is kept.
- PROTOBUF: comments stripped and whitespace collapsed.
"""

from __future__ import annotations

import json
import re

from srgitops.core.errors import StateError

_PROTO_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)
_PROTO_LINE_COMMENT = re.compile(r"//[^\n]*")
_PROTO_WHITESPACE = re.compile(r"\s+")
_PROTO_PUNCTUATION = re.compile(r"\s*([{};=()<>,\[\]])\s*")

_AVRO_PRIMITIVES = {
    "null",
    "boolean",
    "int",
    "long",
    "float",
    "double",
    "bytes",
    "string",
}


def canonical_json(text: str) -> str:
    """Return `text` parsed as JSON and re-serialized with sorted keys and no whitespace."""
    return json.dumps(
        json.loads(text),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def canonical_protobuf(text: str) -> str:
    """Return protobuf source without comments and with collapsed whitespace."""
    text = _PROTO_BLOCK_COMMENT.sub(" ", text)
    text = _PROTO_LINE_COMMENT.sub(" ", text)
    text = _PROTO_WHITESPACE.sub(" ", text)
    return _PROTO_PUNCTUATION.sub(r"\1", text).strip()


def canonical_schema(schema_type: str, text: str) -> str:
    """
    Return the canonical form of a schema.

    Args:
        schema_type: One of AVRO, JSON or PROTOBUF.
        text: Schema source text.

    Raises:
        StateError: If an AVRO or JSON schema is not valid JSON.
    """
    if schema_type == "PROTOBUF":
        return canonical_protobuf(text)

    stripped = text.strip()
    if schema_type == "AVRO" and stripped in _AVRO_PRIMITIVES:
        return json.dumps(stripped)

    try:
        return canonical_json(stripped)
    except json.JSONDecodeError as exc:
        raise StateError(f"Invalid {schema_type} schema: {exc}") from exc
