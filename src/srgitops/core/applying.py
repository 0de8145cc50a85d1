"""Execution of a reconciliation plan against the schema registry.

Actions run in a fixed order: global compatibility, normalize, deletions,
additions, then modifications. For modified subjects the compatibility is
updated before the new schema version is registered. Incompatible subjects
are never applied.

Every action produces an ApplyResult; a failing action is recorded and the
remaining actions still run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from srgitops.core.diffing import Plan
from srgitops.core.state import Compatibility, Subject

logger = logging.getLogger(__name__)


class RegistryWriter(Protocol):
    """Mutating registry operations needed to apply a plan."""

    def set_global_compatibility(self, compatibility: Compatibility) -> None:
        ...

    def set_normalize(self, normalize: bool) -> None:
        ...

    def set_subject_compatibility(self, name: str, compatibility: Compatibility) -> None:
        ...

    def register(self, subject: Subject) -> int:
        """Register the subject's schema and return the schema id."""
        ...

    def delete_subject(self, name: str) -> None:
        ...


@dataclass(frozen=True)
class ApplyResult:
    """Result of a single apply action."""

    action: str
    target: str
    ok: bool
    detail: str | None = None
    error: str | None = None


def _run(
    results: list[ApplyResult],
    action: str,
    target: str,
    fn: Callable[[], object],
    *,
    dry_run: bool,
    detail: str | None = None,
) -> bool:
    if dry_run:
        results.append(ApplyResult(action=action, target=target, ok=True, detail=detail))
        return True

    try:
        fn()
    except Exception as e:  # noqa: BLE001
        logger.warning("%s %s failed: %s", action, target, e)
        results.append(
            ApplyResult(action=action, target=target, ok=False, detail=detail, error=str(e))
        )
        return False

    logger.info("%s %s", action, target)
    results.append(ApplyResult(action=action, target=target, ok=True, detail=detail))
    return True


def apply_plan(
    writer: RegistryWriter,
    plan: Plan,
    *,
    dry_run: bool = False,
) -> list[ApplyResult]:
    """
    Apply every change of `plan` through `writer`.

    Args:
        writer: Registry adapter used to perform the mutations.
        plan: Plan computed by `srgitops.core.diffing.diff`.
        dry_run: If True, no writer method is called and every action is
                 reported as successful.

    Returns:
        One ApplyResult per action, in execution order.
    """
    results: list[ApplyResult] = []

    if plan.compatibility is not None:
        after = plan.compatibility.after
        _run(
            results,
            "set-global-compatibility",
            "(global)",
            lambda: writer.set_global_compatibility(after),
            dry_run=dry_run,
            detail=f"{plan.compatibility.before.value} -> {after.value}",
        )

    if plan.normalize is not None:
        normalize = plan.normalize.after
        _run(
            results,
            "set-normalize",
            "(global)",
            lambda: writer.set_normalize(normalize),
            dry_run=dry_run,
            detail=f"{plan.normalize.before} -> {normalize}",
        )

    for name in plan.deleted:
        _run(
            results,
            "delete",
            name,
            lambda name=name: writer.delete_subject(name),
            dry_run=dry_run,
        )

    for subject in plan.added:
        registered = _run(
            results,
            "register",
            subject.name,
            lambda subject=subject: writer.register(subject),
            dry_run=dry_run,
        )
        if registered and subject.compatibility is not None:
            _run(
                results,
                "set-compatibility",
                subject.name,
                lambda subject=subject: writer.set_subject_compatibility(
                    subject.name, subject.compatibility
                ),
                dry_run=dry_run,
                detail=subject.compatibility.value,
            )

    for changes in plan.modified:
        subject = changes.subject
        if changes.compatibility is not None:
            after = changes.compatibility.after
            _run(
                results,
                "set-compatibility",
                subject.name,
                lambda subject=subject, after=after: writer.set_subject_compatibility(
                    subject.name, after
                ),
                dry_run=dry_run,
                detail=f"{changes.compatibility.before.value} -> {after.value}",
            )
        if changes.schema is not None:
            _run(
                results,
                "register",
                subject.name,
                lambda subject=subject: writer.register(subject),
                dry_run=dry_run,
            )

    return results
