"""Find the single open treadmill pull request on GitHub.

Uses the issue search API. Exactly one open PR with the exact treadmill title
must exist; anything else is fatal with its own message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from treadmill.config import TreadmillConfig
from treadmill.errors import (
    AmbiguousPullRequest,
    GitHubAPIError,
    GitHubAuthError,
    PullRequestNotFound,
)

logger = logging.getLogger(__name__)

_AUTH_ERROR_STATUS_CODES = {401, 403}


@dataclass(frozen=True, slots=True)
class PullRequestRecord:
    """Remote pull request as returned by search. Never persisted."""

    number: int
    title: str
    state: str

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "PullRequestRecord":
        try:
            return cls(
                number=int(item["number"]),
                title=str(item["title"]),
                state=str(item["state"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise GitHubAPIError(f"Malformed search result item: {e}") from e


class UpstreamPRResolver:
    """Queries GitHub for the treadmill pull request.

    Usage::

        with UpstreamPRResolver(config) as resolver:
            number = resolver.find_treadmill_pr()
    """

    def __init__(
        self,
        config: TreadmillConfig,
        *,
        token: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the resolver.

        Args:
            config: Supplies repo, title, API URL and token variable name.
            token: API token. Falls back to the configured env var.
            client: Preconfigured httpx client (tests pass a mock transport).
            timeout: Request timeout in seconds.
        """
        self.config = config
        self._token = token or config.github_token()
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "UpstreamPRResolver":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def search(self) -> list[PullRequestRecord]:
        """Run the search query and return every result."""
        cfg = self.config
        if not self._token:
            raise GitHubAuthError(
                f"${cfg.token_env} is not set. Set it, or pass the treadmill "
                "PR number explicitly: --pick NNNN"
            )

        query = f'"{cfg.pr_title}" in:title repo:{cfg.github_repo} is:pr'
        url = f"{cfg.github_api_url.rstrip('/')}/search/issues"
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
        }
        logger.info("Searching %s for %r", url, query)

        try:
            response = self._client.get(url, params={"q": query}, headers=headers)
        except httpx.HTTPError as e:
            raise GitHubAPIError(f"GitHub search request failed: {e}") from e

        if response.status_code in _AUTH_ERROR_STATUS_CODES:
            raise GitHubAuthError(
                f"GitHub rejected the credentials in ${cfg.token_env} "
                f"(HTTP {response.status_code})"
            )
        if response.status_code != 200:
            raise GitHubAPIError(
                f"GitHub search returned HTTP {response.status_code}: "
                f"{response.text[:200]}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise GitHubAPIError(f"GitHub search returned invalid JSON: {e}") from e
        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise GitHubAPIError("GitHub search response has no 'items' list")
        return [PullRequestRecord.from_item(item) for item in items]

    def find_treadmill_pr(self) -> int:
        """Return the number of the one open treadmill PR.

        Raises:
            PullRequestNotFound: No open PR has the exact title.
            AmbiguousPullRequest: More than one does.
            GitHubAuthError: Missing or rejected token.
            GitHubAPIError: Transport or response problems.
        """
        title = self.config.pr_title
        matches = [
            pr for pr in self.search() if pr.title == title and pr.state == "open"
        ]
        if not matches:
            raise PullRequestNotFound(
                f"No open pull request titled '{title}' in "
                f"{self.config.github_repo}"
            )
        if len(matches) > 1:
            numbers = ", ".join(f"#{pr.number}" for pr in matches)
            raise AmbiguousPullRequest(
                f"Multiple open pull requests titled '{title}': {numbers}. "
                "Pass the right one explicitly: --pick NNNN"
            )
        logger.info("Treadmill PR is #%d", matches[0].number)
        return matches[0].number
