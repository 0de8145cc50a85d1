"""Commands for validating, planning, applying and dumping registry state."""

from __future__ import annotations

from pathlib import Path

import typer

from srgitops.cli.common.context import RegistryAppContext, build_registry_context
from srgitops.cli.common.exits import die, exit_from_exc, ok_exit, warn_exit
from srgitops.cli.common.options import (
    BearerTokenOpt,
    ConfirmOpt,
    DryRunOpt,
    EnableDeletesOpt,
    FilesArg,
    OutputOpt,
    RegistryOpt,
    UserInfoOpt,
)
from srgitops.cli.common.output import out
from srgitops.core.applying import apply_plan
from srgitops.core.diffing import Plan, diff
from srgitops.core.errors import RegistryError, StateError
from srgitops.core.loader import dump_state, load_state
from srgitops.core.state import State


def _load_state_or_exit(files: list[Path]) -> State:
    """Load the state files and convert invalid input into CLI input errors."""
    try:
        return load_state(*files)
    except StateError as exc:
        exit_from_exc(exc, message=str(exc), code=2)


def _plan_or_exit(
    files: list[Path],
    *,
    registry: str | None,
    user_info: str | None,
    bearer_token: str | None,
    enable_deletes: bool,
) -> tuple[RegistryAppContext, Plan]:
    state = _load_state_or_exit(files)
    appctx = build_registry_context(
        registry,
        user_info=user_info,
        bearer_token=bearer_token,
        normalize=bool(state.normalize),
    )

    try:
        with out.status("Comparing state with registry..."):
            plan = diff(appctx.adapter, state, enable_deletes=enable_deletes)
    except RegistryError as exc:
        exit_from_exc(exc, message=f"Registry request failed: {exc}", code=1)

    return appctx, plan


def _nothing_to_do(plan: Plan) -> bool:
    return plan.is_empty() and plan.normalize is None


def validate(files: list[Path] = FilesArg):
    """
    Validate state files without contacting the registry.
    """
    state = _load_state_or_exit(files)
    out.success(f"State is valid: {len(state.subjects)} subject(s)")


def plan(
    files: list[Path] = FilesArg,
    registry: str | None = RegistryOpt,
    user_info: str | None = UserInfoOpt,
    bearer_token: str | None = BearerTokenOpt,
    enable_deletes: bool = EnableDeletesOpt,
):
    """
    Show what would change in the registry.
    """
    _, result = _plan_or_exit(
        files,
        registry=registry,
        user_info=user_info,
        bearer_token=bearer_token,
        enable_deletes=enable_deletes,
    )

    if _nothing_to_do(result):
        ok_exit("No changes. The registry matches the state files.")

    out.plan(result)

    if result.incompatible:
        die(f"{len(result.incompatible)} subject(s) are incompatible", code=1)


def apply(
    files: list[Path] = FilesArg,
    registry: str | None = RegistryOpt,
    user_info: str | None = UserInfoOpt,
    bearer_token: str | None = BearerTokenOpt,
    enable_deletes: bool = EnableDeletesOpt,
    confirm: bool = ConfirmOpt,
    dry_run: bool = DryRunOpt,
):
    """
    Apply the state files to the registry.
    """
    appctx, result = _plan_or_exit(
        files,
        registry=registry,
        user_info=user_info,
        bearer_token=bearer_token,
        enable_deletes=enable_deletes,
    )

    if _nothing_to_do(result):
        ok_exit("No changes. The registry matches the state files.")

    out.plan(result)

    if result.incompatible:
        die("Refusing to apply: fix the incompatible subjects first", code=1)

    if dry_run:
        results = apply_plan(appctx.adapter, result, dry_run=True)
        out.apply_results_table(results, title="Would apply")
        warn_exit("Dry-run enabled: nothing was changed", code=0)

    if confirm and not out.confirm("Apply these changes?"):
        ok_exit("Cancelled")

    with out.status("Applying changes..."):
        results = apply_plan(appctx.adapter, result)

    out.apply_results_table(results)

    failed = [r for r in results if not r.ok]
    if failed:
        die(f"{len(failed)} of {len(results)} action(s) failed", code=1)

    out.success(f"Applied {len(results)} action(s)")


def dump(
    output: Path | None = OutputOpt,
    registry: str | None = RegistryOpt,
    user_info: str | None = UserInfoOpt,
    bearer_token: str | None = BearerTokenOpt,
):
    """
    Dump the current registry state as a YAML state file.
    """
    appctx = build_registry_context(
        registry, user_info=user_info, bearer_token=bearer_token
    )

    try:
        with out.status("Reading registry..."):
            state = appctx.adapter.get_state()
    except RegistryError as exc:
        exit_from_exc(exc, message=f"Registry request failed: {exc}", code=1)

    text = dump_state(state)

    if output is None:
        typer.echo(text, nl=False)
        return

    output.write_text(text, encoding="utf-8")
    out.success(f"Wrote {len(state.subjects)} subject(s) to {output}")
