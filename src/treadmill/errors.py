"""Error hierarchy for treadmill.

Every fatal condition raised by a workflow inherits from TreadmillError so the
CLI can report it uniformly and exit 1. Nothing here is downgraded to a
warning except where an explicit ``--force-*`` flag covers that exact case.
"""

from __future__ import annotations

from collections.abc import Sequence


class TreadmillError(Exception):
    """Base for all treadmill errors.

    Attributes:
        state: Name of the last workflow state reached before the failure,
            stamped by the orchestrator. None for failures outside a workflow.
        recovery_hint: Manual recovery recipe attached by a checkpoint guard.
        recovery_emitted: True once the recipe has been shown to the operator.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.state: str | None = None
        self.recovery_hint: str | None = None
        self.recovery_emitted = False


class ConfigError(TreadmillError):
    """Configuration file is unreadable or malformed."""


class CommandFailed(TreadmillError):
    """An external command exited nonzero.

    Attributes:
        command: The command as it was echoed to the transcript.
        exit_code: Process exit status (124 when killed after a timeout).
        stderr: Captured standard error, empty when output was streamed.
    """

    def __init__(self, command: str, exit_code: int, stderr: str = "") -> None:
        message = f"Command failed with exit status {exit_code}: {command}"
        detail = stderr.strip()
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


class DirtyRepository(TreadmillError):
    """Tracked changes, or untracked files under the vendor directory."""

    def __init__(self, paths: Sequence[str]) -> None:
        listing = "\n".join(f"  {path}" for path in paths)
        super().__init__(
            "Repository is not clean. Commit, stash or remove these first:\n"
            f"{listing}"
        )
        self.paths = list(paths)


class OrphanedCheckpoint(TreadmillError):
    """Checkpoint branches from an interrupted run are still present."""

    def __init__(self, branches: Sequence[str]) -> None:
        listing = "\n".join(f"  {branch}" for branch in branches)
        super().__init__(
            "Found checkpoint branch(es) left behind by a previous run:\n"
            f"{listing}\n"
            "That run probably failed. Recover from it (or delete the "
            "branches) before continuing, or rerun with --force-retry."
        )
        self.branches = list(branches)


class InvalidBranchShape(TreadmillError):
    """Working branch does not have the commits a workflow requires."""


class NotAVendorCommit(TreadmillError):
    """A commit does not look like a dependency vendor bump."""

    def __init__(self, ref: str, missing: Sequence[str]) -> None:
        listing = "\n".join(f"  - {item}" for item in missing)
        super().__init__(
            f"Commit {ref} does not look like a vendor commit. "
            f"Expected changes missing from it:\n{listing}"
        )
        self.ref = ref
        self.missing = list(missing)


class DependencyNotFound(TreadmillError):
    """The manifest has no line naming the dependency module."""


class TrunkPullFailed(TreadmillError):
    """Pulling the trunk branch from the upstream remote failed."""


class VendorFailed(TreadmillError):
    """The external vendoring step exited nonzero."""


class VerificationFailed(TreadmillError):
    """A verification step failed; the new commits exist but are unpublishable."""

    def __init__(self, step: str, message: str, remediation: str = "") -> None:
        text = f"Verification step '{step}' failed: {message}"
        if remediation:
            text = f"{text}\n\n{remediation}"
        super().__init__(text)
        self.step = step
        self.remediation = remediation


class StaleTrunk(TreadmillError):
    """The treadmill PR was built on a newer trunk than the current branch."""


class PullRequestLookupError(TreadmillError):
    """Base for treadmill pull request discovery failures."""


class PullRequestNotFound(PullRequestLookupError):
    """No open pull request carries the treadmill title."""


class AmbiguousPullRequest(PullRequestLookupError):
    """More than one open pull request carries the treadmill title."""


class GitHubAuthError(PullRequestLookupError):
    """Missing token or credentials rejected by GitHub."""


class GitHubAPIError(PullRequestLookupError):
    """Transport failure or unexpected response from GitHub."""
