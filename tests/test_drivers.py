"""Tests for the pull and push drivers."""

import pytest

from scriptsync.errors import LocalScriptUnreadable, MalformedVersion, MetadataUnavailable
from scriptsync.models.script_record import ScriptRecord, ScriptType
from scriptsync.sync.hashing import compute_hash
from scriptsync.sync.prompts import AutoPrompter
from scriptsync.sync.pull import PullDriver
from scriptsync.sync.push import PushDriver
from scriptsync.sync.versions import BumpKind

V1 = "// v1\nconst w = new ListWidget();\n"
V2 = "// v2\nconst w = new ListWidget();\nw.refreshAfterDate = new Date();\n"
EDITED = "// v1 with local tweaks\n"


def _meta(name, version, content, type="widget", **extra):
    entry = {"version": version, "type": type, "hash": compute_hash(content)}
    entry.update(extra)
    return {name: entry}


class CancelPrompter(AutoPrompter):
    def select(self, report):
        return None


class RecordingPrompter(AutoPrompter):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.type_questions = []
        self.bump_questions = []

    def choose_type(self, name):
        self.type_questions.append(name)
        return super().choose_type(name)

    def choose_bump(self, name, current_version):
        self.bump_questions.append((name, current_version))
        return super().choose_bump(name, current_version)


# --- Pull ---


def test_pull_downloads_new_and_updated(local, remote, github):
    local.write_script("Clock", V1)
    local.save_metadata({"Clock": ScriptRecord(name="Clock", version="1.0.0", type=ScriptType.WIDGET, hash=compute_hash(V1))})

    github.add_meta({**_meta("Clock", "1.1.0", V2), **_meta("Git", "2.0.0", V1, type="helper")})
    github.add("widgets/Clock.js", V2)
    github.add("helpers/Git.js", V1)

    result = PullDriver(local, remote).run(AutoPrompter())

    assert [o.name for o in result.succeeded] == ["Clock", "Git"]
    assert result.metadata_saved
    assert local.read_script("Clock") == V2
    assert local.read_script("Git") == V1

    meta = local.load_metadata()
    assert meta["Clock"].version == "1.1.0"
    assert meta["Clock"].hash == compute_hash(V2)
    assert meta["Git"].type == ScriptType.HELPER
    assert meta["Git"].last_updated


def test_pull_leaves_conflicts_alone(local, remote, github):
    local.write_script("Clock", EDITED)
    local.save_metadata({"Clock": ScriptRecord(name="Clock", version="1.0.0", type=ScriptType.WIDGET, hash=compute_hash(V1))})
    github.add_meta(_meta("Clock", "1.1.0", V2))
    github.add("widgets/Clock.js", V2)

    result = PullDriver(local, remote).run(AutoPrompter())

    assert result.outcomes == []
    assert result.skipped == ["Clock"]
    assert local.read_script("Clock") == EDITED
    assert not result.metadata_saved


def test_pull_applies_explicitly_resolved_conflict(local, remote, github):
    local.write_script("Clock", EDITED)
    github.add_meta(_meta("Clock", "1.0.0", V2))
    github.add("widgets/Clock.js", V2)

    result = PullDriver(local, remote).run(AutoPrompter(overwrite=["Clock"]))

    assert [o.name for o in result.succeeded] == ["Clock"]
    assert local.read_script("Clock") == V2


def test_pull_isolates_per_script_failures(local, remote, github):
    github.add_meta({**_meta("Broken", "1.0.0", V1, type="script"), **_meta("Fine", "1.0.0", V2, type="script")})
    github.fail_paths.add("scripts/Broken.js")
    github.add("scripts/Fine.js", V2)

    result = PullDriver(local, remote).run(AutoPrompter())

    assert [o.name for o in result.failed] == ["Broken"]
    assert [o.name for o in result.succeeded] == ["Fine"]
    meta = local.load_metadata()
    assert "Broken" not in meta
    assert "Fine" in meta


def test_pull_aborts_when_remote_metadata_missing(local, remote, github):
    local.write_script("Clock", V1)

    with pytest.raises(MetadataUnavailable):
        PullDriver(local, remote).run(AutoPrompter())
    assert not local.meta_path.exists()


def test_pull_aborts_on_malformed_version_before_writing(local, remote, github):
    github.add_meta({**_meta("Good", "1.0.0", V1), **_meta("Bad", "1.0", V2)})
    github.add("widgets/Good.js", V1)
    local.write_script("Bad", V1)

    with pytest.raises(MalformedVersion):
        PullDriver(local, remote).run(AutoPrompter())
    assert local.read_script("Good") is None


def test_pull_cancel_writes_nothing(local, remote, github):
    github.add_meta(_meta("Clock", "1.0.0", V1))
    github.add("widgets/Clock.js", V1)

    result = PullDriver(local, remote).run(CancelPrompter())
    assert result.cancelled
    assert local.read_script("Clock") is None


def test_pull_plan_reports_statuses(local, remote, github):
    local.write_script("Same", V1)
    github.add_meta({**_meta("Same", "3.0.0", V1), **_meta("Fresh", "1.0.0", V2)})

    _, report = PullDriver(local, remote).plan()
    assert report.summary() == "New: 1, Updates: 0, Conflicts: 0, Skipped: 1"


# --- Push ---


def test_push_publishes_new_script(local, remote, github):
    local.write_script("Countdown", V1)
    prompter = RecordingPrompter(bump=BumpKind.MINOR, script_type=ScriptType.WIDGET)

    result = PushDriver(local, remote).run(prompter)

    assert [o.version for o in result.succeeded] == ["0.1.0"]
    assert prompter.type_questions == ["Countdown"]
    assert github.content("widgets/Countdown.js") == V1
    assert github.puts() == ["widgets/Countdown.js", "config/scripts-meta.json"]

    remote_entry = github.meta()["Countdown"]
    assert remote_entry["version"] == "0.1.0"
    assert remote_entry["type"] == "widget"
    assert remote_entry["hash"] == compute_hash(V1)

    local_record = local.load_metadata()["Countdown"]
    assert local_record.version == "0.1.0"
    assert local_record.hash == compute_hash(V1)
    assert result.metadata_saved


def test_push_update_keeps_type_and_bumps_from_remote(local, remote, github):
    github.add_meta(_meta("Git", "1.4.2", V1, type="helper"))
    github.add("helpers/Git.js", V1)
    local.write_script("Git", V2)
    local.save_metadata({"Git": ScriptRecord(name="Git", version="1.4.2", type=ScriptType.HELPER, hash=compute_hash(V1))})
    prompter = RecordingPrompter(bump=BumpKind.PATCH, script_type=ScriptType.WIDGET)

    result = PushDriver(local, remote).run(prompter)

    assert prompter.type_questions == []
    assert prompter.bump_questions == [("Git", "1.4.2")]
    assert [o.version for o in result.succeeded] == ["1.4.3"]
    assert github.content("helpers/Git.js") == V2
    assert github.meta()["Git"]["version"] == "1.4.3"
    assert github.meta()["Git"]["type"] == "helper"


def test_push_skips_script_without_type(local, remote, github):
    local.write_script("Draft", V1)

    result = PushDriver(local, remote).run(AutoPrompter(script_type=None))

    assert result.skipped == ["Draft"]
    assert result.outcomes == []
    assert github.puts() == []
    assert not local.meta_path.exists()


def test_push_does_not_offer_identical_scripts(local, remote, github):
    github.add_meta(_meta("Same", "1.0.0", V1))
    local.write_script("Same", V1)

    result = PushDriver(local, remote).run(AutoPrompter(script_type=ScriptType.SCRIPT))
    assert result.outcomes == []
    assert github.puts() == []


def test_push_conflict_requires_force(local, remote, github):
    github.add_meta(_meta("Clock", "2.0.0", V2))
    github.add("widgets/Clock.js", V2)
    local.write_script("Clock", EDITED)

    assert PushDriver(local, remote).run(AutoPrompter()).outcomes == []

    result = PushDriver(local, remote).run(AutoPrompter(overwrite=["Clock"], bump=BumpKind.MAJOR))
    assert [o.version for o in result.succeeded] == ["3.0.0"]
    assert github.content("widgets/Clock.js") == EDITED


def test_push_isolates_failures_and_only_records_successes(local, remote, github):
    local.write_script("Alpha", V1)
    local.write_script("Beta", V2)
    github.fail_paths.add("scripts/Alpha.js")

    result = PushDriver(local, remote).run(AutoPrompter(script_type=ScriptType.SCRIPT))

    assert [o.name for o in result.failed] == ["Alpha"]
    assert [o.name for o in result.succeeded] == ["Beta"]
    assert set(github.meta()) == {"Beta"}
    assert set(local.load_metadata()) == {"Beta"}


def test_push_reports_revision_conflict_on_metadata(local, remote, github):
    local.write_script("Alpha", V1)

    class RacingPrompter(AutoPrompter):
        def choose_bump(self, name, current_version):
            # Someone else publishes the metadata while we are mid-batch
            github.add_meta({})
            return BumpKind.PATCH

    result = PushDriver(local, remote).run(RacingPrompter(script_type=ScriptType.SCRIPT))

    assert [o.name for o in result.succeeded] == ["Alpha"]
    assert not result.metadata_saved
    assert "Revision conflict" in result.metadata_error
    assert not local.meta_path.exists()


def test_push_aborts_on_remote_metadata_error(local, remote, github):
    local.write_script("Alpha", V1)
    github.fail_paths.add("config/scripts-meta.json")

    with pytest.raises(MetadataUnavailable):
        PushDriver(local, remote).run(AutoPrompter(script_type=ScriptType.SCRIPT))
    assert github.puts() == []


def test_push_selected_names_only(local, remote, github):
    local.write_script("Alpha", V1)
    local.write_script("Beta", V2)

    result = PushDriver(local, remote).run(AutoPrompter(names=["Beta"], script_type=ScriptType.SCRIPT))
    assert [o.name for o in result.outcomes] == ["Beta"]
    assert "scripts/Alpha.js" not in github.files


def test_push_remote_edit_after_planning_is_revision_conflict(local, remote, github):
    github.add_meta(_meta("Git", "1.0.0", V1, type="helper"))
    github.add("helpers/Git.js", V1)
    local.write_script("Git", V2)
    local.save_metadata({"Git": ScriptRecord(name="Git", version="1.0.0", type=ScriptType.HELPER, hash=compute_hash(V1))})

    class OtherWriterPrompter(AutoPrompter):
        def choose_bump(self, name, current_version):
            github.add("helpers/Git.js", "theirs")
            return BumpKind.PATCH

    result = PushDriver(local, remote).run(OtherWriterPrompter())

    assert [o.name for o in result.failed] == ["Git"]
    assert result.failed[0].revision_conflict
    assert github.content("helpers/Git.js") == "theirs"
    assert github.meta()["Git"]["version"] == "1.0.0"
    assert not result.metadata_saved


def test_push_local_edit_after_planning_is_not_uploaded(local, remote, github):
    local.write_script("Alpha", V1)

    class EditingPrompter(AutoPrompter):
        def choose_bump(self, name, current_version):
            local.write_script("Alpha", V2)
            return BumpKind.PATCH

    result = PushDriver(local, remote).run(EditingPrompter(script_type=ScriptType.SCRIPT))

    assert [o.name for o in result.failed] == ["Alpha"]
    assert "changed since it was classified" in result.failed[0].error
    assert github.puts() == []


def test_push_revision_read_failure_only_fails_that_script(local, remote, github):
    github.add_meta({**_meta("Alpha", "1.0.0", V1, type="script"), **_meta("Beta", "1.0.0", V1, type="script")})
    github.add("scripts/Beta.js", V1)
    github.fail_paths.add("scripts/Alpha.js")
    synced = {
        name: ScriptRecord(name=name, version="1.0.0", type=ScriptType.SCRIPT, hash=compute_hash(V1))
        for name in ("Alpha", "Beta")
    }
    local.save_metadata(synced)
    local.write_script("Alpha", V2)
    local.write_script("Beta", V2)

    result = PushDriver(local, remote).run(AutoPrompter())

    assert [o.name for o in result.failed] == ["Alpha"]
    assert [o.name for o in result.succeeded] == ["Beta"]
    assert github.meta()["Beta"]["version"] == "1.0.1"
    assert github.meta()["Alpha"]["version"] == "1.0.0"


def test_plan_with_undecodable_local_script_raises_sync_error(local, remote, github):
    github.add_meta(_meta("Bin", "1.0.0", V1))
    (local.scripts_dir / "Bin.js").write_bytes(b"\xff\xfe\x00bad")

    with pytest.raises(LocalScriptUnreadable, match="Bin.js"):
        PullDriver(local, remote).plan()
