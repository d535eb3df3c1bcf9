"""Operator-facing capabilities the drivers ask for decisions.

The drivers never talk to a terminal or a menu directly; they call a
``Prompter``. The CLI supplies an interactive one, tests and ``--yes`` runs
supply ``AutoPrompter``.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from scriptsync.models.script_record import ScriptType
from scriptsync.sync.reconciler import ReconcileReport, ScriptStatus
from scriptsync.sync.versions import BumpKind


class Prompter(Protocol):
    def select(self, report: ReconcileReport) -> list[str] | None:
        """Pick which auto-eligible scripts to act on; ``None`` cancels the batch."""

    def resolve_conflicts(self, conflicts: list[ScriptStatus]) -> list[str]:
        """Names of conflicting scripts the operator chooses to overwrite anyway."""

    def choose_type(self, name: str) -> ScriptType | None:
        """Type for a script published for the first time; ``None`` skips it."""

    def choose_bump(self, name: str, current_version: str) -> BumpKind | None:
        """Version bump for a script being pushed; ``None`` skips it."""


class AutoPrompter:
    """Non-interactive prompter that answers every question up front.

    Args:
        names: Restrict selection to these names (default: every eligible one).
        overwrite: Conflicting names that should be overwritten.
        bump: Bump kind for every pushed script.
        script_type: Type for never-published scripts; ``None`` skips them.
    """

    def __init__(
        self,
        names: Iterable[str] | None = None,
        overwrite: Iterable[str] = (),
        bump: BumpKind = BumpKind.PATCH,
        script_type: ScriptType | None = None,
    ):
        self.names = set(names) if names is not None else None
        self.overwrite = set(overwrite)
        self.bump = bump
        self.script_type = script_type

    def select(self, report: ReconcileReport) -> list[str] | None:
        return [
            s.name
            for s in report.auto_eligible
            if self.names is None or s.name in self.names
        ]

    def resolve_conflicts(self, conflicts: list[ScriptStatus]) -> list[str]:
        return [s.name for s in conflicts if s.name in self.overwrite]

    def choose_type(self, name: str) -> ScriptType | None:
        return self.script_type

    def choose_bump(self, name: str, current_version: str) -> BumpKind | None:
        return self.bump


def collect_selection(report: ReconcileReport, prompter: Prompter) -> list[ScriptStatus] | None:
    """Ask the prompter what to act on and return the chosen statuses in report order.

    Conflicts are only included when the prompter resolves them explicitly.
    Names the prompter returns that are not eligible are ignored.
    """
    chosen = prompter.select(report)
    if chosen is None:
        return None
    wanted = set(chosen)

    if report.conflicts:
        wanted.update(prompter.resolve_conflicts(report.conflicts))

    eligible = {s.name for s in report.auto_eligible} | {s.name for s in report.conflicts}
    return [s for s in report.statuses if s.name in wanted and s.name in eligible]
