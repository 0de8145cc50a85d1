from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from srgitops.core.state import Compatibility, Schema, Subject  # noqa: E402

HELLO_WORLD = (
    '{"type": "record","name": "HelloWorld",'
    '"namespace": "dev.srgitops","doc": "this is some docs to be replaced ...",'
    '"fields": [{"name": "greeting","type": "string"}]}'
)


class InMemoryRegistry:
    """Registry double implementing both the reader and the writer side."""

    def __init__(self) -> None:
        self.global_level = Compatibility.BACKWARD
        self.normalize = False
        self.versions: dict[str, list[Schema]] = {}
        self.levels: dict[str, Compatibility] = {}
        self.incompatible: dict[str, list[str]] = {}
        self.calls: list[str] = []

    def seed(self, subject: Subject) -> None:
        self.versions.setdefault(subject.name, []).append(subject.schema)
        if subject.compatibility is not None:
            self.levels[subject.name] = subject.compatibility

    # reader
    def list_subject_names(self) -> list[str]:
        return list(self.versions)

    def test_compatibility(self, subject: Subject) -> list[str]:
        return list(self.incompatible.get(subject.name, []))

    def global_compatibility(self) -> Compatibility:
        return self.global_level

    def normalize_setting(self) -> bool:
        return self.normalize

    def subject_compatibility(self, name: str) -> Compatibility:
        return self.levels.get(name, self.global_level)

    def latest_schema(self, name: str) -> Schema:
        return self.versions[name][-1]

    def existing_version(self, subject: Subject) -> int | None:
        for version, schema in enumerate(self.versions.get(subject.name, []), start=1):
            if schema == subject.schema:
                return version
        return None

    # writer
    def set_global_compatibility(self, compatibility: Compatibility) -> None:
        self.calls.append(f"set_global_compatibility:{compatibility.value}")
        self.global_level = compatibility

    def set_normalize(self, normalize: bool) -> None:
        self.calls.append(f"set_normalize:{normalize}")
        self.normalize = normalize

    def set_subject_compatibility(self, name: str, compatibility: Compatibility) -> None:
        self.calls.append(f"set_subject_compatibility:{name}:{compatibility.value}")
        self.levels[name] = compatibility

    def register(self, subject: Subject) -> int:
        self.calls.append(f"register:{subject.name}")
        versions = self.versions.setdefault(subject.name, [])
        if self.existing_version(subject) is None:
            versions.append(subject.schema)
        return len(versions)

    def delete_subject(self, name: str) -> None:
        self.calls.append(f"delete_subject:{name}")
        del self.versions[name]
        self.levels.pop(name, None)


@pytest.fixture
def registry() -> InMemoryRegistry:
    return InMemoryRegistry()


@pytest.fixture
def hello_schema() -> Schema:
    return Schema(HELLO_WORLD)
