"""Push driver — publish local scripts to the remote repository.

Each script is uploaded with the revision last observed for its path. The
remote metadata document is uploaded last, once, carrying only the scripts
whose upload succeeded. Local metadata is updated only after that upload
is confirmed.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from scriptsync.errors import (
    ContentFetchFailed,
    ContentWriteFailed,
    LocalScriptUnreadable,
    MalformedVersion,
    RevisionConflict,
)
from scriptsync.models.script_record import (
    MetadataDocument,
    ScriptRecord,
    ScriptType,
    SyncOutcome,
    SyncResult,
    remote_script_path,
    utc_now,
)
from scriptsync.store.local_store import LocalStore
from scriptsync.store.remote_store import RemoteStore
from scriptsync.sync.hashing import compute_hash
from scriptsync.sync.prompts import Prompter, collect_selection
from scriptsync.sync.reconciler import ReconcileReport, Reconciler, ScriptStatus
from scriptsync.sync.versions import INITIAL_VERSION, bump_version, max_version

logger = logging.getLogger(__name__)


class PushDriver:
    """Uploads selected local scripts and the updated metadata document."""

    def __init__(self, local: LocalStore, remote: RemoteStore):
        self.local = local
        self.remote = remote
        self.reconciler = Reconciler(local.read_script)

    def plan(self) -> tuple[MetadataDocument, MetadataDocument, str | None, ReconcileReport]:
        """Load both metadata documents and classify every local script.

        Returns:
            (local_meta, remote_meta, remote_meta_revision, report)

        Raises:
            MetadataUnavailable: the remote metadata could not be loaded.
            MalformedVersion: a version label could not be compared.
        """
        remote_meta, meta_revision = self.remote.fetch_metadata(allow_missing=True)
        local_meta = self.local.load_metadata()

        report = self.reconciler.classify_local(local_meta, remote_meta, self.local.list_scripts())
        self._observe_revisions(report.auto_eligible + report.conflicts)
        logger.info(report.summary())
        return local_meta, remote_meta, meta_revision, report

    def _observe_revisions(self, statuses: list[ScriptStatus]) -> None:
        """Record the current revision of each script whose remote path is known.

        Uploads later send this revision, so a remote edit made after planning
        surfaces as a ``RevisionConflict`` instead of being overwritten.
        """
        for status in statuses:
            script_type = _known_type(status)
            if script_type is None:
                continue
            try:
                status.remote_revision = self.remote.revision_of(remote_script_path(script_type, status.name))
            except ContentFetchFailed as e:
                logger.error("Could not read revision of %s: %s", status.name, e)
                status.revision_error = str(e)

    def run(self, prompter: Prompter) -> SyncResult:
        local_meta, remote_meta, meta_revision, report = self.plan()
        result = SyncResult()

        selected = collect_selection(report, prompter)
        if selected is None:
            result.cancelled = True
            return result

        outgoing = {name: replace(record) for name, record in remote_meta.items()}
        pushed: dict[str, ScriptRecord] = {}

        for status in selected:
            outcome = self._push_one(status, prompter, outgoing)
            if outcome is None:
                result.skipped.append(status.name)
                continue
            result.outcomes.append(outcome)
            if outcome.succeeded:
                pushed[status.name] = replace(outgoing[status.name])

        if not pushed:
            return result

        logger.info("Uploading updated %s", self.remote.config.remote_meta_path)
        try:
            self.remote.save_metadata(outgoing, meta_revision)
        except ContentWriteFailed as e:
            logger.error("Failed to upload metadata: %s", e)
            result.metadata_error = str(e)
            return result

        local_meta.update(pushed)
        self.local.save_metadata(local_meta)
        result.metadata_saved = True
        return result

    def _push_one(
        self,
        status: ScriptStatus,
        prompter: Prompter,
        outgoing: MetadataDocument,
    ) -> SyncOutcome | None:
        """Upload one script. Returns ``None`` when the operator skipped it."""
        name = status.name
        remote_record = status.remote_record
        local_record = status.local_record

        if status.revision_error:
            return SyncOutcome(name=name, succeeded=False, error=status.revision_error)

        script_type = _known_type(status)
        if script_type is None:
            script_type = prompter.choose_type(name)
            if script_type is None:
                logger.info("Skipped %s (no type chosen)", name)
                return None

        try:
            current = max_version(
                remote_record.version if remote_record else INITIAL_VERSION,
                local_record.version if local_record else INITIAL_VERSION,
            )
        except MalformedVersion as e:
            logger.error("Cannot push %s: %s", name, e)
            return SyncOutcome(name=name, succeeded=False, error=str(e))

        kind = prompter.choose_bump(name, current)
        if kind is None:
            logger.info("Skipped %s", name)
            return None
        new_version = bump_version(current, kind)

        try:
            content = self.local.read_script(name)
        except LocalScriptUnreadable as e:
            return SyncOutcome(name=name, succeeded=False, version=new_version, error=str(e))
        if content is None:
            return SyncOutcome(name=name, succeeded=False, version=new_version, error="local file disappeared")
        if compute_hash(content) != status.local_hash:
            logger.error("%s changed locally while pushing; skipped upload", name)
            return SyncOutcome(name=name, succeeded=False, version=new_version, error="local file changed since it was classified")

        path = remote_script_path(script_type, name)
        logger.info("Pushing %s (v%s -> v%s)", name, current, new_version)
        try:
            self.remote.put_file(path, content, status.remote_revision, f"Update {name} to v{new_version}")
        except ContentWriteFailed as e:
            logger.error("Failed to upload %s: %s", name, e)
            return SyncOutcome(
                name=name,
                succeeded=False,
                version=new_version,
                error=str(e),
                revision_conflict=isinstance(e, RevisionConflict),
            )

        outgoing[name] = ScriptRecord(
            name=name,
            version=new_version,
            type=script_type,
            hash=compute_hash(content),
            last_updated=utc_now(),
        )
        logger.info("Uploaded %s v%s", name, new_version)
        return SyncOutcome(name=name, succeeded=True, version=new_version)


def _known_type(status: ScriptStatus) -> ScriptType | None:
    """Type already recorded for a script, remote record first."""
    for record in (status.remote_record, status.local_record):
        if record is not None and record.type is not None:
            return record.type
    return None
