"""Pytest fixtures for spec_aggregator tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from spec_aggregator.config import AggregatorConfig, ServiceDescriptor

API_URL = "https://api.github.test"
RAW_URL = "https://raw.github.test"

DEFAULT_SERVERS = (
    {"url": "https://api.example.com", "description": "Production server"},
    {"url": "https://api-staging.example.com", "description": "Staging server"},
)


class FakeGitHub:
    """In-memory GitHub contents API + raw downloads, served through httpx.MockTransport.

    files: {repo: {"specs/openapi.yaml": "<yaml text>", ...}}. Paths in failing
    answer 500 on both the contents and the raw endpoint.
    """

    def __init__(self, files: dict[str, dict[str, str]], failing: set[str] | None = None) -> None:
        self.files = files
        self.failing = failing or set()
        self.requests: list[httpx.Request] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def requested_paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def _entry(self, repo: str, ref: str, path: str) -> dict[str, Any]:
        return {
            "name": path.rsplit("/", 1)[-1],
            "path": path,
            "type": "file",
            "download_url": f"{RAW_URL}/{repo}/{ref}/{path}",
        }

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        if url.startswith(f"{RAW_URL}/"):
            owner, name, _ref, path = url[len(RAW_URL) + 1 :].split("/", 3)
            repo_files = self.files.get(f"{owner}/{name}", {})
            if path in self.failing or path not in repo_files:
                return httpx.Response(500 if path in self.failing else 404)
            return httpx.Response(200, text=repo_files[path])

        prefix = f"{API_URL}/repos/"
        if not url.startswith(prefix) or "/contents/" not in url:
            return httpx.Response(404, json={"message": "Not Found"})
        repo, path = url[len(prefix) :].split("/contents/", 1)
        if request.headers.get("Authorization") != "token test-token":
            return httpx.Response(401, json={"message": "Bad credentials"})
        if path in self.failing:
            return httpx.Response(500, json={"message": "boom"})
        ref = request.url.params.get("ref", "main")
        repo_files = self.files.get(repo)
        if repo_files is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if path in repo_files:
            return httpx.Response(200, json=self._entry(repo, ref, path))
        listing = [
            self._entry(repo, ref, p)
            for p in sorted(repo_files)
            if p.startswith(path.rstrip("/") + "/") and "/" not in p[len(path.rstrip("/")) + 1 :]
        ]
        if not listing:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(200, json=listing)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., AggregatorConfig]:
    """Factory for AggregatorConfig writing into tmp_path/out; keyword overrides win."""

    def _make(**overrides: Any) -> AggregatorConfig:
        values: dict[str, Any] = {
            "services": (ServiceDescriptor("parcels", "acme/parcels", "specs"),),
            "audiences": ("lastmile",),
            "output_dir": tmp_path / "out",
            "default_servers": DEFAULT_SERVERS,
            "tag_order": ("Declarations", "Shipments", "Tracking"),
            "github_api_url": API_URL,
        }
        values.update(overrides)
        return AggregatorConfig(**values)

    return _make


@pytest.fixture
def fake_github() -> type[FakeGitHub]:
    return FakeGitHub
