"""Script metadata records and the JSON document that maps names to them.

Both replicas store the same shape::

    {
      "Shopping list": {
        "version": "1.2.0",
        "type": "widget",
        "hash": "-3369657c",
        "lastUpdated": "2025-03-01T09:30:00+00:00"
      }
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from scriptsync.sync.versions import INITIAL_VERSION


class ScriptType(Enum):
    """Category of a script; fixed the first time it is published."""

    WIDGET = "widget"
    HELPER = "helper"
    SCRIPT = "script"


# Shared by the push and pull drivers: widgets/Foo.js, helpers/Git.js, scripts/Push.js
SCRIPT_PATH_TEMPLATE = "{type}s/{name}.js"
SCRIPT_SUFFIX = ".js"


def remote_script_path(script_type: ScriptType, name: str) -> str:
    """Repository path where the script ``name`` of ``script_type`` lives."""
    return SCRIPT_PATH_TEMPLATE.format(type=ScriptType(script_type).value, name=name)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ScriptRecord:
    """Version metadata for one script."""

    name: str
    version: str = INITIAL_VERSION
    type: ScriptType | None = None
    hash: str | None = None
    last_updated: str = ""  # ISO 8601

    @property
    def remote_path(self) -> str:
        if self.type is None:
            raise ValueError(f"Script {self.name!r} has no type; cannot resolve its remote path")
        return remote_script_path(self.type, self.name)


MetadataDocument = dict[str, ScriptRecord]


@dataclass
class RemoteFile:
    """Decoded content of a remote file plus the revision it was read at."""

    path: str
    content: str
    revision: str


@dataclass
class SyncOutcome:
    """What happened to one script during a push or pull batch."""

    name: str
    succeeded: bool
    version: str = ""
    error: str = ""
    revision_conflict: bool = False


@dataclass
class SyncResult:
    """Summary of a push or pull batch."""

    outcomes: list[SyncOutcome] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    metadata_saved: bool = False
    metadata_error: str = ""
    cancelled: bool = False

    @property
    def succeeded(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    def summary(self) -> str:
        if self.cancelled:
            return "Cancelled, nothing was written."
        parts = [f"{len(self.succeeded)} succeeded", f"{len(self.failed)} failed"]
        if self.skipped:
            parts.append(f"{len(self.skipped)} skipped")
        return ", ".join(parts)


def record_to_dict(record: ScriptRecord) -> dict:
    data: dict = {"version": record.version}
    if record.type is not None:
        data["type"] = record.type.value
    if record.hash is not None:
        data["hash"] = record.hash
    if record.last_updated:
        data["lastUpdated"] = record.last_updated
    return data


def dict_to_record(name: str, data: dict) -> ScriptRecord:
    """Build a record from its JSON form.

    Raises:
        ValueError: ``data`` is not an object or carries an unknown type.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Metadata for {name!r} is not an object")

    raw_type = data.get("type")
    return ScriptRecord(
        name=name,
        version=str(data.get("version") or INITIAL_VERSION),
        type=ScriptType(raw_type) if raw_type else None,
        hash=data.get("hash") or None,
        last_updated=data.get("lastUpdated", ""),
    )


def document_to_dict(doc: MetadataDocument) -> dict:
    return {name: record_to_dict(record) for name, record in doc.items()}


def dict_to_document(data: dict) -> MetadataDocument:
    """Build a metadata document from its JSON form.

    Raises:
        ValueError: ``data`` is not a mapping of names to record objects.
    """
    if not isinstance(data, dict):
        raise ValueError("Metadata document must be a JSON object")
    return {name: dict_to_record(name, entry) for name, entry in data.items()}
