"""Loading and dumping of desired-state YAML documents.

A state document looks like::

    compatibility: BACKWARD
    normalize: true
    subjects:
      - name: orders-value
        type: AVRO
        compatibility: FORWARD
        file: schemas/orders.avsc
        references:
          - {name: com.acme.Customer, subject: customer-value, version: 1}

Each subject carries its schema either inline (`schema`) or in a file
(`file`, resolved relative to the YAML document). Several documents can be
loaded at once; they are merged in the given order.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

import yaml

from srgitops.core.errors import StateError
from srgitops.core.state import (
    Compatibility,
    Schema,
    SchemaReference,
    SchemaType,
    State,
    Subject,
)

logger = logging.getLogger(__name__)

_SUBJECT_KEYS = {"name", "type", "compatibility", "schema", "file", "references"}


def _parse_references(raw: Any, where: str) -> tuple[SchemaReference, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise StateError(f"{where}: 'references' must be a list")

    refs: list[SchemaReference] = []
    for item in raw:
        try:
            refs.append(
                SchemaReference(
                    name=str(item["name"]),
                    subject=str(item["subject"]),
                    version=int(item["version"]),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StateError(
                f"{where}: references need 'name', 'subject' and an integer 'version'"
            ) from exc
    return tuple(refs)


def _read_schema_text(raw: dict[str, Any], base_dir: Path, where: str) -> str:
    inline = raw.get("schema")
    file = raw.get("file")

    if inline is not None and file is not None:
        raise StateError(f"{where}: use either 'schema' or 'file', not both")
    if inline is None and file is None:
        raise StateError(f"{where}: missing 'schema' or 'file'")

    if isinstance(inline, (dict, list)):
        # An unquoted JSON schema is decoded by YAML as a mapping or sequence.
        return json.dumps(inline, ensure_ascii=False)
    if inline is not None:
        return str(inline)

    path = Path(str(file))
    if not path.is_absolute():
        path = base_dir / path
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StateError(f"{where}: cannot read schema file '{path}': {exc}") from exc


def parse_subject(raw: Any, base_dir: Path, where: str = "subject") -> Subject:
    """Build a Subject from one entry of a state document's `subjects` list."""
    if not isinstance(raw, dict):
        raise StateError(f"{where}: expected a mapping")

    name = raw.get("name")
    if not name or not isinstance(name, str):
        raise StateError(f"{where}: missing subject 'name'")
    where = f"subject '{name}'"

    unknown = set(raw) - _SUBJECT_KEYS
    if unknown:
        raise StateError(f"{where}: unknown keys {sorted(unknown)}")

    compatibility = raw.get("compatibility")

    return Subject(
        name=name,
        schema=Schema(
            text=_read_schema_text(raw, base_dir, where),
            schema_type=SchemaType.parse(raw.get("type")),
            references=_parse_references(raw.get("references"), where),
        ),
        compatibility=Compatibility.parse(compatibility)
        if compatibility is not None
        else None,
    )


def parse_state(document: Any, base_dir: Path) -> State:
    """Build a State from a decoded YAML document."""
    if document is None:
        return State()
    if not isinstance(document, dict):
        raise StateError("State document must be a mapping")

    compatibility = document.get("compatibility")
    normalize = document.get("normalize")
    if normalize is not None and not isinstance(normalize, bool):
        raise StateError("'normalize' must be true or false")

    raw_subjects = document.get("subjects") or []
    if not isinstance(raw_subjects, list):
        raise StateError("'subjects' must be a list")

    return State(
        compatibility=Compatibility.parse(compatibility)
        if compatibility is not None
        else None,
        normalize=normalize,
        subjects=tuple(
            parse_subject(raw, base_dir, where=f"subjects[{i}]")
            for i, raw in enumerate(raw_subjects)
        ),
    )


def merge_states(states: Iterable[State]) -> State:
    """
    Merge several states in order.

    Later states override global settings they set; subjects are
    concatenated and must stay unique.
    """
    compatibility: Compatibility | None = None
    normalize: bool | None = None
    subjects: list[Subject] = []

    for state in states:
        if state.compatibility is not None:
            compatibility = state.compatibility
        if state.normalize is not None:
            normalize = state.normalize
        subjects.extend(state.subjects)

    return State(compatibility=compatibility, normalize=normalize, subjects=tuple(subjects))


def load_state(*paths: str | Path) -> State:
    """
    Load and merge one or more state files.

    Raises:
        StateError: If no path is given, a file cannot be read or parsed, or
                    the merged state is invalid.
    """
    if not paths:
        raise StateError("At least one state file is required")

    states: list[State] = []
    for p in paths:
        path = Path(p)
        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise StateError(f"Cannot read state file '{path}': {exc}") from exc
        except yaml.YAMLError as exc:
            raise StateError(f"Invalid YAML in '{path}': {exc}") from exc

        state = parse_state(document, path.parent)
        logger.debug("Loaded %d subject(s) from %s", len(state.subjects), path)
        states.append(state)

    return merge_states(states)


def _subject_document(subject: Subject) -> dict[str, Any]:
    doc: dict[str, Any] = {"name": subject.name}
    if subject.schema.schema_type != SchemaType.AVRO:
        doc["type"] = subject.schema.schema_type.value
    if subject.compatibility is not None:
        doc["compatibility"] = subject.compatibility.value
    doc["schema"] = subject.schema.text
    if subject.schema.references:
        doc["references"] = [
            {"name": r.name, "subject": r.subject, "version": r.version}
            for r in subject.schema.references
        ]
    return doc


def dump_state(state: State) -> str:
    """Return `state` as a YAML document with inline schemas."""
    document: dict[str, Any] = {}
    if state.compatibility is not None:
        document["compatibility"] = state.compatibility.value
    if state.normalize is not None:
        document["normalize"] = state.normalize
    document["subjects"] = [_subject_document(s) for s in state.subjects]

    return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
