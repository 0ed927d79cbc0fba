"""Process execution primitives shared by the git and build layers."""

from treadmill.runtime.command_runner import (
    CommandResult,
    CommandRunner,
    format_command,
    get_command_runner,
)
from treadmill.runtime.timeout_policy import TimeoutDomain, TimeoutPolicy, policy_for

__all__ = [
    "CommandResult",
    "CommandRunner",
    "TimeoutDomain",
    "TimeoutPolicy",
    "format_command",
    "get_command_runner",
    "policy_for",
]
