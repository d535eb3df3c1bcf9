"""Sync configuration — loaded from a YAML file and passed in explicitly.

Example ``scriptsync.yaml``::

    owner: octocat
    repo: scriptable
    branch: main
    scripts_dir: ~/Library/Mobile Documents/iCloud~dk~simonbs~Scriptable/Documents
    remote_meta_path: config/scripts-meta.json

The older ``config.json`` keys (``GITHUB_USER``, ``GITHUB_REPO``, ``BRANCH``,
``META_FILE``) are accepted too; YAML is a superset of JSON so either file
format loads. The token is never stored here; the CLI passes it in.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from scriptsync.errors import ConfigError
from scriptsync.store.local_store import DEFAULT_META_PATH

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_BRANCH = "main"
DEFAULT_TIMEOUT = 30.0

_LEGACY_KEYS = {
    "GITHUB_USER": "owner",
    "GITHUB_REPO": "repo",
    "BRANCH": "branch",
    "META_FILE": "remote_meta_path",
}


@dataclass
class SyncConfig:
    """Everything the stores and drivers need to know about the two replicas."""

    owner: str
    repo: str
    branch: str = DEFAULT_BRANCH
    token: str = ""
    scripts_dir: Path = Path(".")
    local_meta_path: str = DEFAULT_META_PATH
    remote_meta_path: str = DEFAULT_META_PATH
    api_url: str = DEFAULT_API_URL
    timeout: float = DEFAULT_TIMEOUT

    @property
    def repo_slug(self) -> str:
        return f"{self.owner}/{self.repo}"


def load_config(path: str | Path, **overrides) -> SyncConfig:
    """Load a ``SyncConfig`` from a YAML (or JSON) file.

    Keyword overrides that are not ``None`` win over file values. A relative
    ``scripts_dir`` is resolved against the config file's folder.

    Raises:
        ConfigError: the file is missing, unparsable, or lacks owner/repo.
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error parsing {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    values = {}
    for key, value in data.items():
        values[_LEGACY_KEYS.get(key, key)] = value
    values.pop("token", None)
    values.update({k: v for k, v in overrides.items() if v is not None})

    missing = [k for k in ("owner", "repo") if not values.get(k)]
    if missing:
        raise ConfigError(f"Config file {path} is missing: {', '.join(missing)}")

    scripts_dir = Path(values.get("scripts_dir") or path.parent).expanduser()
    if not scripts_dir.is_absolute():
        scripts_dir = path.parent / scripts_dir

    try:
        timeout = float(values.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid timeout in {path}: {values.get('timeout')!r}") from e

    return SyncConfig(
        owner=str(values["owner"]),
        repo=str(values["repo"]),
        branch=str(values.get("branch") or DEFAULT_BRANCH),
        token=str(values.get("token") or ""),
        scripts_dir=scripts_dir,
        local_meta_path=str(values.get("local_meta_path") or DEFAULT_META_PATH),
        remote_meta_path=str(values.get("remote_meta_path") or DEFAULT_META_PATH),
        api_url=str(values.get("api_url") or DEFAULT_API_URL).rstrip("/"),
        timeout=timeout,
    )
