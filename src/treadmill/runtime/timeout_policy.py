"""Timeout limits for each kind of external command."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TimeoutDomain(str, Enum):
    """Logical command domains with distinct timeout behavior."""

    GIT_OPERATION = "git_operation"
    NETWORK_GIT = "network_git"
    VENDOR = "vendor"
    VERIFICATION = "verification"


@dataclass(frozen=True, slots=True)
class TimeoutPolicy:
    """Resolved policy for a timeout domain.

    There is no retry setting: a command that times out is a failure.
    """

    domain: TimeoutDomain
    timeout_seconds: float
    terminate_grace_seconds: float
    use_process_group: bool = True


_DEFAULT_POLICIES: dict[TimeoutDomain, TimeoutPolicy] = {
    TimeoutDomain.GIT_OPERATION: TimeoutPolicy(
        domain=TimeoutDomain.GIT_OPERATION,
        timeout_seconds=300.0,
        terminate_grace_seconds=5.0,
    ),
    TimeoutDomain.NETWORK_GIT: TimeoutPolicy(
        domain=TimeoutDomain.NETWORK_GIT,
        timeout_seconds=900.0,
        terminate_grace_seconds=10.0,
    ),
    TimeoutDomain.VENDOR: TimeoutPolicy(
        domain=TimeoutDomain.VENDOR,
        timeout_seconds=3600.0,
        terminate_grace_seconds=15.0,
    ),
    TimeoutDomain.VERIFICATION: TimeoutPolicy(
        domain=TimeoutDomain.VERIFICATION,
        timeout_seconds=7200.0,
        terminate_grace_seconds=15.0,
    ),
}


def policy_for(domain: TimeoutDomain) -> TimeoutPolicy:
    """Return the timeout policy for a command domain."""
    return _DEFAULT_POLICIES[domain]
