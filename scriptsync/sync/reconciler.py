"""Reconciler — classify every script by comparing the two replicas.

Each script ends up in exactly one bucket:

1. NEW: the source replica has it, the target has no file for it
2. UPDATE: the source is strictly ahead and the target has no unsynced edits
3. CONFLICT: both sides changed, or versions and contents disagree
4. SKIP: contents are identical, whatever the version labels say
5. LOCAL_ONLY: a local script that was never published (push direction only)

Content equality is checked before any version comparison, so a byte-identical
script is never reported as an update or conflict just because its label differs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

from scriptsync.models.script_record import MetadataDocument, ScriptRecord
from scriptsync.sync.hashing import compute_hash
from scriptsync.sync.versions import INITIAL_VERSION, compare_versions

logger = logging.getLogger(__name__)

ContentReader = Callable[[str], "str | None"]


class Classification(Enum):
    NEW = "new"
    UPDATE = "update"
    CONFLICT = "conflict"
    SKIP = "skip"
    LOCAL_ONLY = "local_only"


@dataclass
class ScriptStatus:
    """Classification of a single script with the reason behind it."""

    name: str
    classification: Classification
    reason: str
    remote_record: ScriptRecord | None = None
    local_record: ScriptRecord | None = None
    local_hash: str | None = None  # Hash of the local file as it is right now
    remote_revision: str | None = None  # Revision of the remote script file at plan time
    revision_error: str = ""

    @property
    def local_version(self) -> str:
        return self.local_record.version if self.local_record else ""

    @property
    def remote_version(self) -> str:
        return self.remote_record.version if self.remote_record else ""


@dataclass
class ReconcileReport:
    """All classifications produced by one reconciliation pass."""

    statuses: list[ScriptStatus] = field(default_factory=list)

    def by_classification(self, classification: Classification) -> list[ScriptStatus]:
        return [s for s in self.statuses if s.classification == classification]

    @property
    def new(self) -> list[ScriptStatus]:
        return self.by_classification(Classification.NEW)

    @property
    def updates(self) -> list[ScriptStatus]:
        return self.by_classification(Classification.UPDATE)

    @property
    def conflicts(self) -> list[ScriptStatus]:
        return self.by_classification(Classification.CONFLICT)

    @property
    def skipped(self) -> list[ScriptStatus]:
        return self.by_classification(Classification.SKIP)

    @property
    def local_only(self) -> list[ScriptStatus]:
        return self.by_classification(Classification.LOCAL_ONLY)

    @property
    def auto_eligible(self) -> list[ScriptStatus]:
        """Statuses that may be applied without resolving a conflict."""
        eligible = {Classification.NEW, Classification.UPDATE, Classification.LOCAL_ONLY}
        return [s for s in self.statuses if s.classification in eligible]

    def get(self, name: str) -> ScriptStatus | None:
        for status in self.statuses:
            if status.name == name:
                return status
        return None

    def summary(self) -> str:
        parts = [
            f"New: {len(self.new)}",
            f"Updates: {len(self.updates)}",
            f"Conflicts: {len(self.conflicts)}",
            f"Skipped: {len(self.skipped)}",
        ]
        if self.local_only:
            parts.append(f"Local only: {len(self.local_only)}")
        return ", ".join(parts)


class Reconciler:
    """Compares local and remote metadata against the live local file contents.

    Args:
        read_local: Returns the current text of a local script, or ``None``
            when no file exists for that name.
    """

    def __init__(self, read_local: ContentReader):
        self.read_local = read_local

    def classify_remote(
        self,
        local_meta: MetadataDocument,
        remote_meta: MetadataDocument,
    ) -> ReconcileReport:
        """Pull direction: classify every script listed in the remote metadata.

        Raises:
            MalformedVersion: a version label on either side cannot be parsed.
        """
        report = ReconcileReport()
        for name, remote_record in remote_meta.items():
            status = self._classify_pull(name, local_meta.get(name), remote_record)
            logger.debug("%s: %s (%s)", name, status.classification.value, status.reason)
            report.statuses.append(status)
        return report

    def classify_local(
        self,
        local_meta: MetadataDocument,
        remote_meta: MetadataDocument,
        names: Iterable[str],
    ) -> ReconcileReport:
        """Push direction: classify every local script in ``names``.

        Names without a local file are ignored.

        Raises:
            MalformedVersion: a version label on either side cannot be parsed.
        """
        report = ReconcileReport()
        for name in names:
            content = self.read_local(name)
            if content is None:
                continue
            status = self._classify_push(name, local_meta.get(name), remote_meta.get(name), content)
            logger.debug("%s: %s (%s)", name, status.classification.value, status.reason)
            report.statuses.append(status)
        return report

    def _classify_pull(
        self,
        name: str,
        local_record: ScriptRecord | None,
        remote_record: ScriptRecord,
    ) -> ScriptStatus:
        content = self.read_local(name)

        def status(classification: Classification, reason: str, local_hash: str | None = None):
            return ScriptStatus(
                name=name,
                classification=classification,
                reason=reason,
                remote_record=remote_record,
                local_record=local_record,
                local_hash=local_hash,
            )

        if content is None:
            return status(Classification.NEW, "missing locally")

        generated = compute_hash(content)
        saved = local_record.hash if local_record else None
        remote_hash = remote_record.hash

        if generated == remote_hash:
            return status(Classification.SKIP, "identical content", generated)

        local_version = local_record.version if local_record else INITIAL_VERSION
        cmp = compare_versions(remote_record.version, local_version)

        if cmp > 0:
            if generated != saved:
                return status(Classification.CONFLICT, "remote newer version + local edits", generated)
            return status(Classification.UPDATE, "remote newer version", generated)

        # Past the identical-content check the hashes always differ here.
        if cmp == 0:
            return status(Classification.CONFLICT, "same version but different content", generated)
        return status(Classification.CONFLICT, "local newer version + content differs", generated)

    def _classify_push(
        self,
        name: str,
        local_record: ScriptRecord | None,
        remote_record: ScriptRecord | None,
        content: str,
    ) -> ScriptStatus:
        generated = compute_hash(content)

        def status(classification: Classification, reason: str):
            return ScriptStatus(
                name=name,
                classification=classification,
                reason=reason,
                remote_record=remote_record,
                local_record=local_record,
                local_hash=generated,
            )

        if remote_record is None:
            return status(Classification.LOCAL_ONLY, "not published yet")

        if generated == remote_record.hash:
            return status(Classification.SKIP, "identical content")

        saved = local_record.hash if local_record else None
        local_version = local_record.version if local_record else INITIAL_VERSION
        cmp = compare_versions(local_version, remote_record.version)
        remote_unchanged = saved is not None and saved == remote_record.hash

        if cmp < 0:
            return status(Classification.CONFLICT, "remote newer version")

        if cmp == 0:
            if remote_unchanged:
                return status(Classification.UPDATE, "local edits since last sync")
            return status(Classification.CONFLICT, "same version but different content")

        if remote_unchanged:
            return status(Classification.UPDATE, "local newer version")
        return status(Classification.CONFLICT, "local newer version + remote edits")
