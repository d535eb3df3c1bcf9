"""Remote store backed by the GitHub contents API.

Every file is read together with its blob ``sha``, which doubles as the
revision token: writes send the sha they last observed and GitHub rejects the
write if the file has moved on since. Creating a file sends no sha.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from urllib.parse import quote

import httpx

from scriptsync import __version__
from scriptsync.config import SyncConfig
from scriptsync.errors import (
    ContentFetchFailed,
    ContentWriteFailed,
    MetadataUnavailable,
    RemoteFileNotFound,
    RevisionConflict,
)
from scriptsync.models.script_record import (
    MetadataDocument,
    RemoteFile,
    dict_to_document,
    document_to_dict,
)

logger = logging.getLogger(__name__)

USER_AGENT = f"scriptsync/{__version__}"
METADATA_COMMIT_MESSAGE = "Update scripts-meta.json"


class RemoteStore:
    """Reads and writes the remote replica through the GitHub contents API.

    Use as a context manager so the HTTP client is closed::

        with RemoteStore(config) as remote:
            doc = remote.load_metadata()
    """

    def __init__(self, config: SyncConfig, client: httpx.Client | None = None):
        self.config = config
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=config.timeout)

    def __enter__(self) -> "RemoteStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    # -- requests -----------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.config.api_url}/repos/{self.config.repo_slug}/contents/{quote(path)}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
        }
        if self.config.token:
            headers["Authorization"] = f"token {self.config.token}"
        return headers

    # -- reads --------------------------------------------------------------

    def read_file(self, path: str) -> RemoteFile:
        """Fetch and decode a file.

        Raises:
            RemoteFileNotFound: the path does not exist on the branch.
            ContentFetchFailed: transport error, bad status, or undecodable body.
        """
        try:
            resp = self.client.get(
                self._url(path),
                params={"ref": self.config.branch},
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise ContentFetchFailed(f"Error fetching {path}: {e}") from e

        if resp.status_code == 404:
            raise RemoteFileNotFound(f"No file at {path} on {self.config.branch}")
        if resp.status_code != 200:
            raise ContentFetchFailed(f"Error fetching {path}: HTTP {resp.status_code} {_error_message(resp)}")

        try:
            data = resp.json()
            encoded = data.get("content")
            if not encoded:
                raise ContentFetchFailed(f"No content found at {path}")
            content = base64.b64decode(encoded.replace("\n", "")).decode("utf-8")
        except (ValueError, binascii.Error, AttributeError) as e:
            raise ContentFetchFailed(f"Could not decode {path}: {e}") from e

        return RemoteFile(path=path, content=content, revision=data.get("sha", ""))

    def revision_of(self, path: str) -> str | None:
        """Current revision of ``path``, or ``None`` when it does not exist."""
        try:
            return self.read_file(path).revision
        except RemoteFileNotFound:
            return None

    def fetch_metadata(self, allow_missing: bool = False) -> tuple[MetadataDocument, str | None]:
        """Load the remote metadata document and the revision it was read at.

        Args:
            allow_missing: Treat a missing document as empty (revision ``None``)
                instead of failing. Used when publishing into a fresh repo.

        Raises:
            MetadataUnavailable: on any fetch or decode failure.
        """
        path = self.config.remote_meta_path
        try:
            remote_file = self.read_file(path)
        except RemoteFileNotFound as e:
            if allow_missing:
                logger.info("No remote metadata at %s yet, starting empty", path)
                return {}, None
            raise MetadataUnavailable(str(e)) from e
        except ContentFetchFailed as e:
            raise MetadataUnavailable(str(e)) from e

        try:
            doc = dict_to_document(json.loads(remote_file.content))
        except ValueError as e:
            raise MetadataUnavailable(f"Remote metadata at {path} is malformed: {e}") from e

        return doc, remote_file.revision

    def load_metadata(self) -> MetadataDocument:
        doc, _ = self.fetch_metadata()
        return doc

    # -- writes -------------------------------------------------------------

    def put_file(
        self,
        path: str,
        content: str,
        expected_revision: str | None,
        message: str,
    ) -> str:
        """Create or update a file and return its new revision.

        Args:
            expected_revision: The revision last read for ``path``, or ``None``
                to create a file that does not exist yet.

        Raises:
            RevisionConflict: the file changed since ``expected_revision``.
            ContentWriteFailed: any other failure.
        """
        body = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.config.branch,
        }
        if expected_revision:
            body["sha"] = expected_revision

        try:
            resp = self.client.put(self._url(path), json=body, headers=self._headers())
        except httpx.HTTPError as e:
            raise ContentWriteFailed(f"Error uploading {path}: {e}") from e

        if resp.status_code == 409 or (resp.status_code == 422 and "sha" in _error_message(resp)):
            raise RevisionConflict(path, expected_revision, _error_message(resp))
        if resp.status_code not in (200, 201):
            raise ContentWriteFailed(f"Failed to upload {path}: HTTP {resp.status_code} {_error_message(resp)}")

        try:
            revision = resp.json()["content"]["sha"]
        except (ValueError, KeyError, TypeError) as e:
            raise ContentWriteFailed(f"Unexpected response uploading {path}: {e}") from e

        logger.debug("Uploaded %s at revision %s", path, revision)
        return revision

    def save_metadata(self, doc: MetadataDocument, expected_revision: str | None) -> str:
        content = json.dumps(document_to_dict(doc), indent=2) + "\n"
        return self.put_file(
            self.config.remote_meta_path,
            content,
            expected_revision,
            METADATA_COMMIT_MESSAGE,
        )


def _error_message(resp: httpx.Response) -> str:
    try:
        return str(resp.json().get("message", ""))
    except (ValueError, AttributeError):
        return resp.text[:200]
