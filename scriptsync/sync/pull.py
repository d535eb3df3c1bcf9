"""Pull driver — bring remote scripts down into the local folder.

The remote replica is the source of truth. New and updated scripts can be
applied directly; conflicts are only applied when the operator resolves
them. Local metadata is written once, after the batch, and only carries the
scripts that were actually downloaded.
"""

from __future__ import annotations

import logging

from scriptsync.errors import ContentFetchFailed
from scriptsync.models.script_record import (
    MetadataDocument,
    ScriptRecord,
    SyncOutcome,
    SyncResult,
    utc_now,
)
from scriptsync.store.local_store import LocalStore
from scriptsync.store.remote_store import RemoteStore
from scriptsync.sync.hashing import compute_hash
from scriptsync.sync.prompts import Prompter, collect_selection
from scriptsync.sync.reconciler import ReconcileReport, Reconciler, ScriptStatus

logger = logging.getLogger(__name__)


class PullDriver:
    """Downloads selected scripts from the remote repository."""

    def __init__(self, local: LocalStore, remote: RemoteStore):
        self.local = local
        self.remote = remote
        self.reconciler = Reconciler(local.read_script)

    def plan(self) -> tuple[MetadataDocument, ReconcileReport]:
        """Load both metadata documents and classify every remote script.

        Raises:
            MetadataUnavailable: the remote metadata could not be loaded.
            MalformedVersion: a version label could not be compared.
        """
        local_meta = self.local.load_metadata()
        remote_meta = self.remote.load_metadata()
        logger.info("Remote metadata loaded: %d script(s)", len(remote_meta))

        report = self.reconciler.classify_remote(local_meta, remote_meta)
        logger.info(report.summary())
        return local_meta, report

    def run(self, prompter: Prompter) -> SyncResult:
        local_meta, report = self.plan()
        result = SyncResult()

        selected = collect_selection(report, prompter)
        if selected is None:
            result.cancelled = True
            return result

        selected_names = {s.name for s in selected}
        result.skipped = [
            s.name
            for s in report.auto_eligible + report.conflicts
            if s.name not in selected_names
        ]

        for status in selected:
            result.outcomes.append(self._pull_one(status, local_meta))

        if result.succeeded:
            self.local.save_metadata(local_meta)
            result.metadata_saved = True

        return result

    def _pull_one(self, status: ScriptStatus, local_meta: MetadataDocument) -> SyncOutcome:
        record = status.remote_record
        try:
            remote_file = self.remote.read_file(record.remote_path)
            self.local.write_script(status.name, remote_file.content)
        except (ContentFetchFailed, OSError, ValueError) as e:
            logger.error("Failed to download %s: %s", status.name, e)
            return SyncOutcome(name=status.name, succeeded=False, version=record.version, error=str(e))

        local_meta[status.name] = ScriptRecord(
            name=status.name,
            version=record.version,
            type=record.type,
            hash=compute_hash(remote_file.content),
            last_updated=utc_now(),
        )
        logger.info("Updated %s to v%s", status.name, record.version)
        return SyncOutcome(name=status.name, succeeded=True, version=record.version)
