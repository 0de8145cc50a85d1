"""Output formatting utilities for the CLI."""

from __future__ import annotations

import difflib
import json
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import questionary
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from srgitops.cli.common.tui_style import QUESTIONARY_STYLE_CONFIRM
from srgitops.core.diffing import Changes, CompatibilityTestResult, Plan
from srgitops.core.state import Schema, SchemaType, Subject

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
        "add": "green",
        "del": "red",
    }
)

console = Console(theme=_THEME)


def _pretty_schema(schema: Schema) -> list[str]:
    """Return schema text as lines suitable for a line-based diff."""
    if schema.schema_type == SchemaType.PROTOBUF:
        return schema.text.strip().splitlines()
    try:
        return json.dumps(json.loads(schema.canonical_string()), indent=2).splitlines()
    except ValueError:
        return schema.text.strip().splitlines()


def schema_diff(before: Schema, after: Schema) -> list[str]:
    """Return a unified diff (without file headers) between two schemas."""
    lines = difflib.unified_diff(
        _pretty_schema(before), _pretty_schema(after), lineterm="", n=2
    )
    return [line for line in lines if not line.startswith(("---", "+++"))]


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def _q_try(self, fn, *args, **kwargs):
        """Call questionary prompts and drop unsupported kwargs on older versions."""
        try:
            return fn(*args, **kwargs)
        except TypeError:
            for k in ("auto_enter",):
                kwargs.pop(k, None)
            return fn(*args, **kwargs)

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        """Print a success message."""
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        """Print a header message."""
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """
        Ask the user for confirmation using a standardized Questionary prompt.

        Args:
            message: Confirmation question shown to the user.
            default: Default answer if the user just presses enter.

        Returns:
            True if the user confirms, False otherwise (including Ctrl-C).
        """
        prompt = self._q_try(
            questionary.confirm,
            message,
            default=default,
            style=QUESTIONARY_STYLE_CONFIRM,
            qmark="?",
            auto_enter=False,
        )
        return bool(prompt.ask())

    def incompatible_table(
        self, results: Iterable[CompatibilityTestResult], title: str = "Incompatible"
    ) -> None:
        """Render subjects whose schema failed the registry compatibility check."""
        t = Table(title=title, show_lines=True)
        t.add_column("Subject", style="err", no_wrap=True)
        t.add_column("Messages")

        for r in results:
            t.add_row(escape(r.subject.name), escape("\n".join(r.messages)))

        console.print(t)

    def subjects_table(self, subjects: Iterable[Subject], title: str = "Subjects") -> None:
        """Render a table of desired subjects."""
        t = Table(title=title, show_lines=False)
        t.add_column("Subject", style="ok")
        t.add_column("Type", style="meta")
        t.add_column("Compatibility", style="meta")

        for s in subjects:
            t.add_row(
                escape(s.name),
                s.schema.schema_type.value,
                s.compatibility.value if s.compatibility else "",
            )

        console.print(t)

    def changes(self, changes: Changes) -> None:
        """Render the changes of one modified subject, including a schema diff."""
        console.print(f"[warn]~[/] [bold]{escape(changes.subject.name)}[/]")

        if changes.compatibility is not None:
            console.print(
                f"    compatibility: [del]{changes.compatibility.before.value}[/]"
                f" → [add]{changes.compatibility.after.value}[/]"
            )

        if changes.schema is not None:
            lines = schema_diff(changes.schema.before, changes.schema.after)
            if not lines:
                console.print(
                    "    schema: [meta]content matches latest version, "
                    "but is not registered as a version yet[/]"
                )
            for line in lines:
                style = "add" if line.startswith("+") else "del" if line.startswith("-") else "meta"
                console.print(f"    [{style}]{escape(line)}[/]")

    def plan(self, plan: Plan) -> None:
        """Render a complete plan for review."""
        if plan.compatibility is not None:
            self.kv(
                {
                    "global compatibility": f"[del]{plan.compatibility.before.value}[/]"
                    f" → [add]{plan.compatibility.after.value}[/]"
                }
            )
        if plan.normalize is not None:
            self.kv(
                {
                    "normalize": f"[del]{plan.normalize.before}[/]"
                    f" → [add]{plan.normalize.after}[/]"
                }
            )

        if plan.incompatible:
            self.incompatible_table(plan.incompatible)

        if plan.added:
            self.subjects_table(plan.added, title="Added")

        if plan.modified:
            self.header("Modified")
            for changes in plan.modified:
                self.changes(changes)

        if plan.deleted:
            t = Table(title="Deleted", show_lines=False)
            t.add_column("Subject", style="del")
            for name in plan.deleted:
                t.add_row(escape(name))
            console.print(t)

        self.info(
            f"{len(plan.added)} to add, {len(plan.modified)} to modify, "
            f"{len(plan.deleted)} to delete, {len(plan.incompatible)} incompatible"
        )

    def apply_results_table(self, results: Iterable[Any], title: str = "Apply results") -> None:
        """
        Render results of applying a plan.

        Expects objects with `.action`, `.target`, `.ok`, optional `.detail`
        and optional `.error` (like srgitops.core.applying.ApplyResult).
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Action", style="meta")
        t.add_column("Target", style="ok")
        t.add_column("Detail", style="meta")
        t.add_column("Result")

        for r in results:
            ok = bool(getattr(r, "ok", False))
            err = getattr(r, "error", None)
            t.add_row(
                str(getattr(r, "action", "")),
                escape(str(getattr(r, "target", ""))),
                str(getattr(r, "detail", "") or ""),
                "[ok]OK[/]" if ok else f"[err]FAIL[/] {escape(str(err))}",
            )

        console.print(t)


out = Out()
