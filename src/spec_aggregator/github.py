"""Fetch spec files from GitHub: contents API for metadata, then the raw download."""

from __future__ import annotations

import logging
from typing import Any

import httpx
import yaml

from spec_aggregator.config import DEFAULT_GITHUB_API_URL

log = logging.getLogger(__name__)

GITHUB_API_ACCEPT_HEADER = "application/vnd.github.v3+json"
SPEC_FILE_SUFFIXES = (".yml", ".yaml")


def is_spec_file(file_name: str) -> bool:
    return file_name.endswith(SPEC_FILE_SUFFIXES)


def github_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"token {token}",
        "Accept": GITHUB_API_ACCEPT_HEADER,
        "User-Agent": "spec-aggregator",
    }


class GitHubClient:
    """Async GitHub contents client. Failures are logged and returned as None, never raised."""

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_GITHUB_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._client = httpx.AsyncClient(
            headers=github_headers(token),
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def contents_url(self, repo: str, path: str) -> str:
        return f"{self.api_url}/repos/{repo}/contents/{path.strip('/')}"

    async def get_contents(self, repo: str, path: str, branch: str) -> Any:
        """Raw contents API response (file metadata dict or directory listing)."""
        response = await self._client.get(self.contents_url(repo, path), params={"ref": branch})
        response.raise_for_status()
        return response.json()

    async def fetch_text(self, url: str) -> str:
        response = await self._client.get(url)
        response.raise_for_status()
        return response.text

    async def fetch_document(self, repo: str, file_path: str, branch: str = "main") -> Any:
        """Parsed YAML/JSON content of one file, or None if it cannot be fetched or parsed."""
        try:
            meta = await self.get_contents(repo, file_path, branch)
            if not isinstance(meta, dict) or not meta.get("download_url"):
                msg = "no download_url in contents response"
                raise ValueError(msg)
            return await self.download_document(meta["download_url"])
        except (httpx.HTTPError, yaml.YAMLError, ValueError) as e:
            log.error("Error fetching file %s from %s@%s: %s", file_path, repo, branch, e)
            return None

    async def download_document(self, download_url: str) -> Any:
        """Fetch and parse a download_url. Raises httpx.HTTPError or yaml.YAMLError."""
        return yaml.safe_load(await self.fetch_text(download_url))

    async def list_spec_files(
        self, repo: str, specs_path: str, branch: str = "main"
    ) -> list[dict[str, Any]] | None:
        """YAML entries of a directory listing; None if the listing fails."""
        try:
            entries = await self.get_contents(repo, specs_path, branch)
        except (httpx.HTTPError, ValueError) as e:
            log.error("Error listing specs in %s/%s@%s: %s", repo, specs_path, branch, e)
            return None
        if not isinstance(entries, list):
            log.error("%s/%s@%s is not a directory", repo, specs_path, branch)
            return None
        return [
            e
            for e in entries
            if isinstance(e, dict) and isinstance(e.get("name"), str) and is_spec_file(e["name"])
        ]
