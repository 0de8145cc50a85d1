"""Reconciliation of a desired state against a live schema registry.

This module computes a Plan: every difference between a State and what the
registry currently holds, classified as global setting changes, incompatible
schemas, added, modified and deleted subjects. It performs read calls only;
executing a plan is the job of `srgitops.core.applying`.

Any error raised by the registry reader propagates unchanged. There are no
retries and no partial plans.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Generic, Protocol, Sequence, TypeVar

from srgitops.core.state import Compatibility, Schema, State, Subject

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RegistryReader(Protocol):
    """Read-only view of a live schema registry used for reconciliation."""

    def list_subject_names(self) -> list[str]:
        """Return all subjects currently present in the registry."""
        ...

    def test_compatibility(self, subject: Subject) -> list[str]:
        """Return compatibility errors for `subject.schema` (empty when compatible)."""
        ...

    def global_compatibility(self) -> Compatibility:
        """Return the global default compatibility."""
        ...

    def normalize_setting(self) -> bool:
        """Return the global normalize flag."""
        ...

    def subject_compatibility(self, name: str) -> Compatibility:
        """Return the compatibility in effect for a subject."""
        ...

    def latest_schema(self, name: str) -> Schema:
        """Return the most recently registered schema of a subject."""
        ...

    def existing_version(self, subject: Subject) -> int | None:
        """Return the version already holding `subject.schema`, or None."""
        ...


@dataclass(frozen=True)
class Change(Generic[T]):
    """A live value (`before`) that differs from the desired one (`after`)."""

    before: T
    after: T


@dataclass(frozen=True)
class CompatibilityTestResult:
    """Outcome of testing a subject's schema against the registry rules."""

    subject: Subject
    messages: tuple[str, ...] = ()

    @property
    def is_compatible(self) -> bool:
        return not self.messages


@dataclass(frozen=True)
class Changes:
    """
    Differences detected for a single existing subject.

    At least one of `compatibility` and `schema` is set; subjects without
    differences are never represented.
    """

    subject: Subject
    compatibility: Change[Compatibility] | None = None
    schema: Change[Schema] | None = None


@dataclass(frozen=True)
class Plan:
    """
    The complete set of differences between desired and live state.

    Attributes:
        compatibility: Global compatibility change, if any.
        normalize: Global normalize change, if any.
        incompatible: Subjects whose schema fails the registry's compatibility
                      check. These are excluded from every other bucket.
        added: Subjects missing from the registry.
        modified: Per-subject changes of existing subjects.
        deleted: Registry subjects absent from the desired state (only
                 populated when deletes are enabled).
    """

    compatibility: Change[Compatibility] | None = None
    normalize: Change[bool] | None = None
    incompatible: tuple[CompatibilityTestResult, ...] = ()
    added: tuple[Subject, ...] = ()
    modified: tuple[Changes, ...] = ()
    deleted: tuple[str, ...] = ()

    def is_empty(self) -> bool:
        """
        Return True if the plan contains nothing to review.

        The normalize change is not considered here.
        """
        return (
            self.compatibility is None
            and not self.incompatible
            and not self.added
            and not self.modified
            and not self.deleted
        )


def _setting_change(live: T, desired: T | None) -> Change[T] | None:
    """Return Change(live, desired) unless desired is unset or equal to live."""
    if desired is None or live == desired:
        return None
    return Change(before=live, after=desired)


def global_compatibility_change(
    reader: RegistryReader, state: State
) -> Change[Compatibility] | None:
    """Compare the live global compatibility with the desired one."""
    return _setting_change(reader.global_compatibility(), state.compatibility)


def normalize_change(reader: RegistryReader, state: State) -> Change[bool] | None:
    """Compare the live normalize flag with the desired one."""
    return _setting_change(reader.normalize_setting(), state.normalize)


def screen_compatibility(
    reader: RegistryReader, subjects: Sequence[Subject]
) -> tuple[list[Subject], list[CompatibilityTestResult]]:
    """
    Test every subject's schema against the registry.

    Returns:
        A tuple of (compatible subjects, results for incompatible subjects),
        both in input order.
    """
    compatible: list[Subject] = []
    incompatible: list[CompatibilityTestResult] = []

    for subject in subjects:
        result = CompatibilityTestResult(
            subject=subject,
            messages=tuple(reader.test_compatibility(subject)),
        )
        if result.is_compatible:
            compatible.append(subject)
        else:
            logger.debug("Subject %s is incompatible: %s", subject.name, result.messages)
            incompatible.append(result)

    return compatible, incompatible


def reconcile_subjects(
    compatible: Sequence[Subject],
    desired_names: Sequence[str],
    remote_names: Sequence[str],
    *,
    enable_deletes: bool = False,
) -> tuple[list[Subject], list[Subject], list[str]]:
    """
    Partition subjects into added, modified candidates and deleted names.

    Args:
        compatible: Desired subjects that passed the compatibility screen.
        desired_names: Names of all desired subjects, compatible or not.
        remote_names: Names of all subjects in the registry.
        enable_deletes: If False, nothing is ever marked as deleted.

    Returns:
        A tuple of (added, modified candidates, deleted names).
    """
    remote = set(remote_names)
    desired = set(desired_names)

    deleted = [n for n in remote_names if n not in desired] if enable_deletes else []
    deleted_set = set(deleted)

    added = [s for s in compatible if s.name not in remote]
    candidates = [
        s for s in compatible if s.name in remote and s.name not in deleted_set
    ]
    return added, candidates, deleted


def _subject_compatibility_change(
    reader: RegistryReader, subject: Subject
) -> Change[Compatibility] | None:
    if subject.compatibility is None:
        return None
    return _setting_change(reader.subject_compatibility(subject.name), subject.compatibility)


def _schema_change(reader: RegistryReader, subject: Subject) -> Change[Schema] | None:
    # Unchanged only if latest matches AND the content is a registered version.
    remote = reader.latest_schema(subject.name)

    if (
        remote.canonical_string() != subject.schema.canonical_string()
        or reader.existing_version(subject) is None
    ):
        return Change(before=remote, after=subject.schema)

    return None


def subject_changes(reader: RegistryReader, subject: Subject) -> Changes | None:
    """Return the changes of an existing subject, or None if it is unchanged."""
    compatibility = _subject_compatibility_change(reader, subject)
    schema = _schema_change(reader, subject)

    if compatibility is None and schema is None:
        return None

    return Changes(subject=subject, compatibility=compatibility, schema=schema)


def diff(reader: RegistryReader, state: State, *, enable_deletes: bool = False) -> Plan:
    """
    Compute the plan that would bring the registry to `state`.

    Args:
        reader: Read access to the live registry.
        state: Desired registry state.
        enable_deletes: Report registry subjects missing from `state` as
                        deleted. Off by default; deletes are opt-in.

    Returns:
        The Plan describing every detected difference.
    """
    remote_names = list(reader.list_subject_names())

    compatible, incompatible = screen_compatibility(reader, state.subjects)

    added, candidates, deleted = reconcile_subjects(
        compatible,
        state.subject_names(),
        remote_names,
        enable_deletes=enable_deletes,
    )

    modified: list[Changes] = []
    for subject in candidates:
        changes = subject_changes(reader, subject)
        if changes is None:
            logger.debug("Subject %s is unchanged", subject.name)
            continue
        modified.append(changes)

    plan = Plan(
        compatibility=global_compatibility_change(reader, state),
        normalize=normalize_change(reader, state),
        incompatible=tuple(incompatible),
        added=tuple(added),
        modified=tuple(modified),
        deleted=tuple(deleted),
    )

    logger.info(
        "Plan: %d incompatible, %d added, %d modified, %d deleted",
        len(plan.incompatible),
        len(plan.added),
        len(plan.modified),
        len(plan.deleted),
    )
    return plan
