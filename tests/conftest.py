"""Shared fixtures: an in-memory GitHub contents API behind httpx.MockTransport."""

import base64
import json
import tempfile
from pathlib import Path
from urllib.parse import unquote

import httpx
import pytest

from scriptsync.config import SyncConfig
from scriptsync.store.local_store import LocalStore
from scriptsync.store.remote_store import RemoteStore

API_URL = "https://api.github.test"
CONTENTS_PREFIX = "/repos/octo/scripts/contents/"


class FakeGitHub:
    """Just enough of the contents API: GET and PUT with sha checks."""

    def __init__(self):
        self.files: dict[str, tuple[str, str]] = {}
        self.fail_paths: set[str] = set()
        self.requests: list[httpx.Request] = []
        self._next_sha = 0

    def new_sha(self) -> str:
        self._next_sha += 1
        return f"sha{self._next_sha}"

    def add(self, path: str, content: str) -> str:
        sha = self.new_sha()
        self.files[path] = (content, sha)
        return sha

    def add_meta(self, data: dict, path: str = "config/scripts-meta.json") -> str:
        return self.add(path, json.dumps(data))

    def content(self, path: str) -> str:
        return self.files[path][0]

    def meta(self, path: str = "config/scripts-meta.json") -> dict:
        return json.loads(self.content(path))

    def puts(self) -> list[str]:
        return [_path_of(r) for r in self.requests if r.method == "PUT"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = _path_of(request)

        if path in self.fail_paths:
            return httpx.Response(500, json={"message": "Server Error"})

        if request.method == "GET":
            if path not in self.files:
                return httpx.Response(404, json={"message": "Not Found"})
            content, sha = self.files[path]
            encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
            # GitHub wraps base64 payloads at 60 characters
            wrapped = "\n".join(encoded[i:i + 60] for i in range(0, len(encoded), 60))
            return httpx.Response(200, json={"content": wrapped, "sha": sha, "encoding": "base64"})

        if request.method == "PUT":
            body = json.loads(request.content)
            current = self.files.get(path)
            if current and "sha" not in body:
                return httpx.Response(422, json={"message": "Invalid request.\n\n\"sha\" wasn't supplied."})
            if current and body["sha"] != current[1]:
                return httpx.Response(409, json={"message": f"{path} does not match {body['sha']}"})
            if not current and "sha" in body:
                return httpx.Response(409, json={"message": f"{path} does not match {body['sha']}"})
            content = base64.b64decode(body["content"]).decode("utf-8")
            sha = self.new_sha()
            self.files[path] = (content, sha)
            return httpx.Response(200 if current else 201, json={"content": {"path": path, "sha": sha}})

        return httpx.Response(405, json={"message": "Method Not Allowed"})


def _path_of(request: httpx.Request) -> str:
    return unquote(request.url.path[len(CONTENTS_PREFIX):])


@pytest.fixture
def scripts_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(scripts_dir):
    return SyncConfig(
        owner="octo",
        repo="scripts",
        token="ghp_test",
        scripts_dir=scripts_dir,
        api_url=API_URL,
    )


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def remote(config, github):
    client = httpx.Client(transport=httpx.MockTransport(github.handler))
    store = RemoteStore(config, client=client)
    yield store
    client.close()


@pytest.fixture
def local(config):
    return LocalStore(config.scripts_dir, config.local_meta_path)
