"""Core domain models for the desired registry state.

These models describe what the schema registry *should* look like. They are
plain immutable values, free of HTTP, YAML and CLI concerns, so they can be
built by the loader, by the registry adapter (for dumps) or directly in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from srgitops.core.canonical import canonical_schema
from srgitops.core.errors import StateError


class Compatibility(str, Enum):
    """
    Compatibility levels understood by the schema registry.

    Values:
        NONE: No compatibility checks.
        BACKWARD: New schema can read data written with the previous one.
        BACKWARD_TRANSITIVE: BACKWARD against all previous versions.
        FORWARD: Previous schema can read data written with the new one.
        FORWARD_TRANSITIVE: FORWARD against all previous versions.
        FULL: Both BACKWARD and FORWARD.
        FULL_TRANSITIVE: Both, against all previous versions.
    """

    NONE = "NONE"
    BACKWARD = "BACKWARD"
    BACKWARD_TRANSITIVE = "BACKWARD_TRANSITIVE"
    FORWARD = "FORWARD"
    FORWARD_TRANSITIVE = "FORWARD_TRANSITIVE"
    FULL = "FULL"
    FULL_TRANSITIVE = "FULL_TRANSITIVE"

    @classmethod
    def parse(cls, value: str) -> Compatibility:
        """Return the level named by `value` (case-insensitive)."""
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            allowed = ", ".join(c.value for c in cls)
            raise StateError(
                f"Unknown compatibility '{value}' (expected one of: {allowed})"
            ) from exc


class SchemaType(str, Enum):
    """Schema formats supported by the registry."""

    AVRO = "AVRO"
    JSON = "JSON"
    PROTOBUF = "PROTOBUF"

    @classmethod
    def parse(cls, value: str | None) -> SchemaType:
        """Return the schema type named by `value`, defaulting to AVRO."""
        if value is None:
            return cls.AVRO
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            allowed = ", ".join(t.value for t in cls)
            raise StateError(
                f"Unknown schema type '{value}' (expected one of: {allowed})"
            ) from exc


@dataclass(frozen=True)
class SchemaReference:
    """Reference from one schema to a schema registered under another subject."""

    name: str
    subject: str
    version: int


@dataclass(frozen=True, eq=False)
class Schema:
    """
    A parsed schema definition.

    Two schemas are equal when their type, references and canonical text are
    equal. The raw `text` is kept for registration and display only.
    """

    text: str
    schema_type: SchemaType = SchemaType.AVRO
    references: tuple[SchemaReference, ...] = ()
    _canonical: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_canonical", canonical_schema(self.schema_type.value, self.text)
        )

    def canonical_string(self) -> str:
        """Return the normalized textual form used for comparisons."""
        return self._canonical

    def _key(self) -> tuple:
        return (self.schema_type, self._canonical, self.references)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())


@dataclass(frozen=True)
class Subject:
    """
    A subject as it should exist in the registry.

    Attributes:
        name: Subject name, unique within a State.
        schema: Desired (latest) schema of the subject.
        compatibility: Desired per-subject compatibility, or None when the
                       subject's compatibility is not managed.
    """

    name: str
    schema: Schema
    compatibility: Compatibility | None = None


@dataclass(frozen=True)
class State:
    """
    The complete desired state of a schema registry.

    `compatibility` and `normalize` are None when the corresponding global
    setting is not managed.
    """

    compatibility: Compatibility | None = None
    normalize: bool | None = None
    subjects: tuple[Subject, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "subjects", tuple(self.subjects))

        seen: set[str] = set()
        for subject in self.subjects:
            if subject.name in seen:
                raise StateError(f"Duplicate subject '{subject.name}' in state")
            seen.add(subject.name)

    def subject_names(self) -> list[str]:
        """Return subject names in declaration order."""
        return [s.name for s in self.subjects]
