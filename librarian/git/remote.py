"""GitHub metadata lookups used to pin external source refs."""

from __future__ import annotations

import json
import os
import subprocess
from typing import Callable, Dict, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import ExternalCommandFailed
from ..logging import get_logger

JsonFetcher = Callable[[str, Mapping[str, str], Optional[float]], Dict[str, object]]


class TokenProvider:
    """Resolves a GitHub token from the environment or the gh CLI."""

    ENV_TOKEN_KEYS = ("LIBRARIAN_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")

    def __init__(self, runner: Callable[[list[str]], str] | None = None) -> None:
        self._runner = runner or self._gh_runner
        self._token: Optional[str] = None

    def token(self) -> str:
        if self._token is not None:
            return self._token
        for key in self.ENV_TOKEN_KEYS:
            value = os.environ.get(key, "").strip()
            if value:
                self._token = value
                return value
        value = self._runner(["gh", "auth", "token"]).strip()
        if not value:
            raise ExternalCommandFailed("gh auth token", "no token returned")
        self._token = value
        return value

    @staticmethod
    def _gh_runner(args: list[str]) -> str:
        try:
            completed = subprocess.run(args, check=True, capture_output=True, text=True)
        except FileNotFoundError as exc:
            raise ExternalCommandFailed(
                args,
                "gh is not installed; set LIBRARIAN_GITHUB_TOKEN or GITHUB_TOKEN",
            ) from exc
        except subprocess.CalledProcessError as exc:
            raise ExternalCommandFailed(args, exc.stderr or f"exit code {exc.returncode}") from exc
        return completed.stdout


class RemoteRepository:
    """Reads default branches and latest commits through the GitHub REST API."""

    DEFAULT_API_URL = "https://api.github.com"

    def __init__(
        self,
        token_provider: TokenProvider | None = None,
        *,
        api_url: str = DEFAULT_API_URL,
        request_timeout: Optional[float] = 30.0,
        fetcher: JsonFetcher | None = None,
    ) -> None:
        self.token_provider = token_provider or TokenProvider()
        self.api_url = api_url.rstrip("/")
        self.request_timeout = request_timeout
        self._fetcher = fetcher or self._http_fetcher
        self.logger = get_logger("git.remote")

    def default_branch(self, repo: str) -> str:
        payload = self._get(f"/repos/{_owner_and_name(repo)}")
        branch = payload.get("default_branch")
        if not isinstance(branch, str) or not branch:
            raise ExternalCommandFailed(f"GET /repos/{_owner_and_name(repo)}", "missing default_branch")
        return branch

    def latest_commit(self, repo: str, branch: str | None = None) -> str:
        """Return the SHA at the tip of ``branch`` (the default branch when omitted)."""
        branch = branch or self.default_branch(repo)
        endpoint = f"/repos/{_owner_and_name(repo)}/commits/{branch}"
        payload = self._get(endpoint)
        sha = payload.get("sha")
        if not isinstance(sha, str) or not sha:
            raise ExternalCommandFailed(f"GET {endpoint}", "missing sha")
        self.logger.debug("Latest commit of %s@%s is %s", repo, branch, sha)
        return sha

    def _get(self, endpoint: str) -> Dict[str, object]:
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token_provider.token()}",
        }
        return self._fetcher(f"{self.api_url}{endpoint}", headers, self.request_timeout)

    @staticmethod
    def _http_fetcher(
        url: str, headers: Mapping[str, str], timeout: Optional[float]
    ) -> Dict[str, object]:
        request = Request(url, headers=dict(headers), method="GET")
        try:
            with urlopen(request, timeout=timeout) as response:
                body = response.read().decode("utf-8")
        except HTTPError as exc:
            raise ExternalCommandFailed(f"GET {url}", f"HTTP {exc.code}: {exc.reason}") from exc
        except URLError as exc:
            raise ExternalCommandFailed(f"GET {url}", str(exc.reason)) from exc
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            raise ExternalCommandFailed(f"GET {url}", "response was not valid JSON") from exc
        if not isinstance(payload, dict):
            raise ExternalCommandFailed(f"GET {url}", "unexpected response shape")
        return payload


def _owner_and_name(repo: str) -> str:
    """Turn ``github.com/owner/name`` (or ``owner/name``) into ``owner/name``."""
    cleaned = repo.strip().removeprefix("https://").removesuffix(".git").strip("/")
    parts = cleaned.split("/")
    if parts and "." in parts[0]:
        parts = parts[1:]
    if len(parts) != 2 or not all(parts):
        raise ExternalCommandFailed(f"resolve {repo}", "expected a repository like github.com/owner/name")
    return "/".join(parts)


__all__ = ["RemoteRepository", "TokenProvider"]
