"""Local file-based store for scripts and their metadata.

Scripts live as ``<name>.js`` directly inside the scripts folder. The metadata
document is a single JSON file (``config/scripts-meta.json`` by default).
Single-writer, last write wins; no locking.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from scriptsync.errors import LocalScriptUnreadable
from scriptsync.models.script_record import (
    SCRIPT_SUFFIX,
    MetadataDocument,
    dict_to_document,
    document_to_dict,
)

logger = logging.getLogger(__name__)

DEFAULT_META_PATH = "config/scripts-meta.json"


class LocalStore:
    """Reads and writes the local replica."""

    def __init__(self, scripts_dir: str | Path, meta_path: str | Path | None = None):
        self.scripts_dir = Path(scripts_dir)
        meta_path = Path(meta_path) if meta_path else Path(DEFAULT_META_PATH)
        self.meta_path = meta_path if meta_path.is_absolute() else self.scripts_dir / meta_path

    def script_path(self, name: str) -> Path:
        return self.scripts_dir / f"{name}{SCRIPT_SUFFIX}"

    def list_scripts(self) -> list[str]:
        """Names of all scripts in the folder, sorted case-insensitively."""
        if not self.scripts_dir.is_dir():
            return []
        names = [
            p.name[: -len(SCRIPT_SUFFIX)]
            for p in self.scripts_dir.iterdir()
            if p.is_file() and p.name.endswith(SCRIPT_SUFFIX)
        ]
        return sorted(names, key=str.lower)

    def read_script(self, name: str) -> str | None:
        """Current text of a script, or ``None`` when no file exists.

        Raises:
            LocalScriptUnreadable: the file exists but cannot be read as UTF-8.
        """
        path = self.script_path(name)
        if not path.is_file():
            return None
        # newline="" keeps \r\n intact so the hash matches the remote bytes
        try:
            with open(path, encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise LocalScriptUnreadable(f"Cannot read {path}: {e}") from e

    def write_script(self, name: str, content: str) -> None:
        path = self.script_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    def load_metadata(self) -> MetadataDocument:
        """Load the local metadata document.

        A missing or malformed file yields an empty document; the problem is
        logged, never raised.
        """
        if not self.meta_path.exists():
            logger.info("No local metadata at %s, starting empty", self.meta_path)
            return {}

        try:
            with open(self.meta_path, encoding="utf-8") as f:
                return dict_to_document(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning("Error reading local metadata at %s: %s", self.meta_path, e)
            return {}

    def save_metadata(self, doc: MetadataDocument) -> None:
        self.meta_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.meta_path, "w", encoding="utf-8") as f:
            json.dump(document_to_dict(doc), f, indent=2)
            f.write("\n")
