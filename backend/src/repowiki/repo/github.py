"""GitHub REST API repository source."""

from __future__ import annotations

import base64
import binascii
import logging
import time
from dataclasses import dataclass
from urllib.parse import quote

import httpx

from repowiki.constants.github import GITHUB_API_URL, GITHUB_API_VERSION, GITHUB_TIMEOUT_SECONDS
from repowiki.constants.wiki import CITATION_BRANCH, GITHUB_WEB_BASE

logger = logging.getLogger(__name__)


class GitHubError(Exception):
    """Base exception for GitHub API failures."""


class GitHubNotFoundError(GitHubError):
    """Raised when the repository or path does not exist."""


class GitHubRateLimitError(GitHubError):
    """Raised when GitHub enforces a rate limit."""

    def __init__(self, message: str, retry_after: int | float | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class GitHubUnavailableError(GitHubError):
    """Raised for transient issues where retrying later may succeed."""


@dataclass(frozen=True)
class RepoFile:
    """A file entry from the repository tree."""

    path: str
    size: int


@dataclass(frozen=True)
class RepoMetadata:
    """Public metadata for a repository."""

    owner: str
    name: str
    html_url: str
    description: str | None = None
    language: str | None = None
    stars: int = 0


def build_blob_url(
    owner: str,
    repo: str,
    path: str,
    start_line: int | None = None,
    end_line: int | None = None,
) -> str:
    """Build the github.com view URL for a file and optional line range.

    Args:
        owner: Repository owner.
        repo: Repository name.
        path: Repository-relative file path.
        start_line: First cited line (1-based).
        end_line: Last cited line; only rendered when it differs from start_line.

    Returns:
        URL of the form https://github.com/{owner}/{repo}/blob/main/{path}#L{start}-L{end}
    """
    url = f"{GITHUB_WEB_BASE}/{owner}/{repo}/blob/{CITATION_BRANCH}/{path}"
    if start_line:
        url += f"#L{start_line}"
        if end_line and end_line != start_line:
            url += f"-L{end_line}"
    return url


class GitHubSource:
    """Read-only access to a GitHub repository's files and metadata."""

    def __init__(
        self,
        token: str | None = None,
        api_url: str = GITHUB_API_URL,
        timeout: float = GITHUB_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the source.

        Args:
            token: Optional personal access token; raises the anonymous rate limit.
            api_url: Base URL of the REST API.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get_json(self, path: str, params: dict | None = None) -> dict | list:
        """GET an API path and return decoded JSON.

        Raises:
            GitHubNotFoundError: On 404.
            GitHubRateLimitError: On 429, or 403 with an exhausted quota.
            GitHubUnavailableError: On timeouts, connection errors and 5xx.
            GitHubError: On any other non-success status.
        """
        url = f"{self.api_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(url, headers=self._headers(), params=params)
        except httpx.TimeoutException as e:
            raise GitHubUnavailableError(f"GitHub request timed out: {path}") from e
        except httpx.HTTPError as e:
            raise GitHubUnavailableError(f"GitHub request failed: {e}") from e

        if response.status_code == 404:
            raise GitHubNotFoundError(f"Not found on GitHub: {path}")

        if response.status_code == 429 or (
            response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"
        ):
            retry_after = _retry_after_seconds(response)
            raise GitHubRateLimitError(
                f"GitHub rate limit exceeded (retry after {retry_after}s)",
                retry_after=retry_after,
            )

        if response.status_code >= 500:
            raise GitHubUnavailableError(f"GitHub returned {response.status_code} for {path}")

        if response.status_code != 200:
            raise GitHubError(f"GitHub returned {response.status_code} for {path}")

        return response.json()

    async def get_repository_metadata(self, owner: str, repo: str) -> RepoMetadata:
        """Fetch description, language and star count for a repository."""
        data = await self._get_json(f"/repos/{owner}/{repo}")
        if not isinstance(data, dict):
            raise GitHubError(f"Unexpected repository response for {owner}/{repo}")

        return RepoMetadata(
            owner=(data.get("owner") or {}).get("login") or owner,
            name=data.get("name") or repo,
            html_url=data.get("html_url") or f"{GITHUB_WEB_BASE}/{owner}/{repo}",
            description=data.get("description"),
            language=data.get("language"),
            stars=data.get("stargazers_count") or 0,
        )

    async def list_files(self, owner: str, repo: str) -> list[RepoFile]:
        """List every file (blob) in the default branch, in tree order."""
        data = await self._get_json(
            f"/repos/{owner}/{repo}/git/trees/HEAD", params={"recursive": "true"}
        )
        if not isinstance(data, dict):
            raise GitHubError(f"Unexpected tree response for {owner}/{repo}")

        if data.get("truncated"):
            logger.warning(f"File tree for {owner}/{repo} was truncated by GitHub")

        return [
            RepoFile(path=item["path"], size=item.get("size") or 0)
            for item in data.get("tree", [])
            if item.get("type") == "blob" and item.get("path")
        ]

    async def get_file_content(self, owner: str, repo: str, path: str) -> str:
        """Fetch and decode the text content of a single file.

        Raises:
            GitHubError: If the path is a directory or has no inline content.
        """
        data = await self._get_json(f"/repos/{owner}/{repo}/contents/{quote(path)}")

        if isinstance(data, list):
            raise GitHubError(f"Path is a directory, not a file: {path}")
        if data.get("type") not in (None, "file") or not data.get("content"):
            raise GitHubError(f"No content available for {path}")

        try:
            raw = base64.b64decode(data["content"])
        except (binascii.Error, ValueError) as e:
            raise GitHubError(f"Could not decode content of {path}") from e
        return raw.decode("utf-8", errors="replace")


def _retry_after_seconds(response: httpx.Response) -> int | None:
    """Read the wait time from Retry-After or X-RateLimit-Reset."""
    retry_after = response.headers.get("Retry-After")
    if retry_after and retry_after.isdigit():
        return int(retry_after)

    reset = response.headers.get("X-RateLimit-Reset")
    if reset and reset.isdigit():
        return max(0, int(reset) - int(time.time()))

    return None
