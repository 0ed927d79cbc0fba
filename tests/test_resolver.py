"""Tests for treadmill pull request discovery."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from treadmill.config import TreadmillConfig
from treadmill.errors import (
    AmbiguousPullRequest,
    GitHubAPIError,
    GitHubAuthError,
    PullRequestNotFound,
)
from treadmill.github import UpstreamPRResolver

TITLE = "DO NOT MERGE: buildah vendor treadmill"


def _item(number: int, title: str = TITLE, state: str = "open") -> dict[str, Any]:
    return {"number": number, "title": title, "state": state}


def _resolver(
    handler: Callable[[httpx.Request], httpx.Response], token: str | None = "tok"
) -> UpstreamPRResolver:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return UpstreamPRResolver(TreadmillConfig(), token=token, client=client)


def _items(*items: dict[str, Any]) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"total_count": len(items), "items": list(items)})

    return handler


def test_finds_single_open_pr() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"items": [_item(17555)]})

    with _resolver(handler) as resolver:
        assert resolver.find_treadmill_pr() == 17555

    request = seen[0]
    assert request.url.path == "/search/issues"
    assert request.headers["Authorization"] == "Bearer tok"
    query = request.url.params["q"]
    assert f'"{TITLE}" in:title' in query
    assert "repo:containers/podman" in query
    assert "is:pr" in query


def test_ignores_closed_and_similar_titles() -> None:
    handler = _items(
        _item(100, state="closed"),
        _item(101, title=f"{TITLE} (old)"),
        _item(102),
    )
    with _resolver(handler) as resolver:
        assert resolver.find_treadmill_pr() == 102


def test_no_matching_pr() -> None:
    with _resolver(_items(_item(100, state="closed"))) as resolver:
        with pytest.raises(PullRequestNotFound, match="No open pull request"):
            resolver.find_treadmill_pr()


def test_multiple_matching_prs() -> None:
    with _resolver(_items(_item(100), _item(200))) as resolver:
        with pytest.raises(AmbiguousPullRequest, match="#100, #200"):
            resolver.find_treadmill_pr()


def test_missing_token_is_fatal_without_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with _resolver(handler, token=None) as resolver:
        with pytest.raises(GitHubAuthError, match="--pick NNNN"):
            resolver.find_treadmill_pr()


def test_token_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["Authorization"])
        return httpx.Response(200, json={"items": [_item(5)]})

    with _resolver(handler, token=None) as resolver:
        assert resolver.find_treadmill_pr() == 5
    assert seen == ["Bearer from-env"]


@pytest.mark.parametrize("status", [401, 403])
def test_rejected_credentials(status: int) -> None:
    with _resolver(lambda request: httpx.Response(status)) as resolver:
        with pytest.raises(GitHubAuthError, match=f"HTTP {status}"):
            resolver.find_treadmill_pr()


def test_server_error() -> None:
    with _resolver(lambda request: httpx.Response(502, text="bad gateway")) as resolver:
        with pytest.raises(GitHubAPIError, match="HTTP 502"):
            resolver.find_treadmill_pr()


def test_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _resolver(handler) as resolver:
        with pytest.raises(GitHubAPIError, match="request failed"):
            resolver.find_treadmill_pr()


def test_invalid_json() -> None:
    with _resolver(lambda request: httpx.Response(200, text="<html>")) as resolver:
        with pytest.raises(GitHubAPIError, match="invalid JSON"):
            resolver.find_treadmill_pr()


def test_missing_items() -> None:
    with _resolver(lambda request: httpx.Response(200, json={"total": 0})) as resolver:
        with pytest.raises(GitHubAPIError, match="no 'items'"):
            resolver.find_treadmill_pr()


def test_malformed_item() -> None:
    with _resolver(_items({"title": TITLE, "state": "open"})) as resolver:
        with pytest.raises(GitHubAPIError, match="Malformed"):
            resolver.find_treadmill_pr()
