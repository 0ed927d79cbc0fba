"""GitHub lookups used by the pick workflow."""

from treadmill.github.resolver import PullRequestRecord, UpstreamPRResolver

__all__ = ["PullRequestRecord", "UpstreamPRResolver"]
