"""Shared test fixtures."""

import base64
import json

import pytest

from models import RepositoryDescriptor


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, body=None, headers=None, text=None, url="https://api.github.com/x"):
        self.status_code = status_code
        self._body = body
        self.headers = headers or {}
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text
        self.url = url
        self.reason = "OK" if status_code < 400 else "Error"

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class FakeSession:
    """Returns queued responses and records every request."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "headers": dict(headers or {}), **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeClock:
    """Clock whose sleep advances time instead of blocking."""

    def __init__(self, now=1_000_000.0):
        self.now = now
        self.sleeps = []

    def time(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeGitHubClient:
    """In-memory repository files for the detector and pipeline."""

    def __init__(self, files=None, readmes=None):
        # {"owner/repo": {"path": "content"}}
        self.files = files or {}
        self.readmes = readmes or {}
        self.calls = []

    def list_directory(self, full_name, path=""):
        self.calls.append(("list", full_name, path))
        repo_files = self.files.get(full_name)
        if repo_files is None:
            return None
        prefix = f"{path}/" if path else ""
        entries = {}
        for file_path in repo_files:
            if not file_path.startswith(prefix):
                continue
            rest = file_path[len(prefix):]
            name = rest.split("/")[0]
            kind = "dir" if "/" in rest else "file"
            entries[name] = {"name": name, "path": prefix + name, "type": kind}
        if path and not entries:
            return None
        return list(entries.values())

    def get_file_content(self, full_name, path):
        self.calls.append(("get", full_name, path))
        return self.files.get(full_name, {}).get(path)

    def get_readme(self, full_name):
        self.calls.append(("readme", full_name))
        return self.readmes.get(full_name)


def encode_content(text):
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_descriptor():
    """Factory for RepositoryDescriptor with sensible defaults."""

    def _make(full_name="acme/storefront", **kwargs):
        kwargs.setdefault("stars", 120)
        kwargs.setdefault("pushed_at", "2024-05-01T10:00:00Z")
        kwargs.setdefault("language", "JavaScript")
        if "topics" in kwargs:
            kwargs["topics"] = frozenset(kwargs["topics"])
        return RepositoryDescriptor(full_name=full_name, **kwargs)

    return _make
