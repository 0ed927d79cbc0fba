"""Synchronous subprocess runner with per-domain timeouts.

Commands run exactly once. A command that outlives its timeout gets SIGTERM,
then SIGKILL after a grace period, and is reported with exit code 124.
"""

from __future__ import annotations

import os
import shlex
import signal
import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from treadmill.runtime.timeout_policy import TimeoutDomain, TimeoutPolicy, policy_for

TIMEOUT_EXIT_CODE = 124


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of one command execution."""

    domain: TimeoutDomain
    command: str
    exit_code: int | None
    stdout: str
    stderr: str
    duration_seconds: float
    timed_out: bool = False
    signal_sequence: tuple[str, ...] = ()

    @property
    def effective_exit_code(self) -> int:
        if self.timed_out:
            return TIMEOUT_EXIT_CODE
        if self.exit_code is not None:
            return self.exit_code
        return 1

    @property
    def ok(self) -> bool:
        return self.effective_exit_code == 0

    @property
    def lines(self) -> list[str]:
        return self.stdout.splitlines()


class CommandRunner:
    """Runs subprocess commands under a timeout policy."""

    def __init__(
        self,
        *,
        policies: Mapping[TimeoutDomain, TimeoutPolicy] | None = None,
    ) -> None:
        self._policies = dict(policies) if policies else {}

    def policy(self, domain: TimeoutDomain) -> TimeoutPolicy:
        return self._policies.get(domain) or policy_for(domain)

    def run(
        self,
        command: Sequence[str],
        *,
        domain: TimeoutDomain,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = True,
    ) -> CommandResult:
        """Run a command once and return its result.

        Args:
            command: Argument vector; never run through a shell.
            domain: Selects the timeout policy.
            cwd: Working directory.
            env: Full environment for the child. None inherits ours.
            capture: When False, stdout and stderr go straight to the
                terminal (long builds) and come back empty in the result.
        """
        policy = self.policy(domain)
        command_text = format_command(command)
        start_new_session = bool(policy.use_process_group and os.name != "nt")
        started_at = time.perf_counter()

        process = subprocess.Popen(
            list(command),
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE if capture else None,
            text=True,
            start_new_session=start_new_session,
        )

        timed_out = False
        signals: tuple[str, ...] = ()
        try:
            stdout, stderr = process.communicate(timeout=policy.timeout_seconds)
        except subprocess.TimeoutExpired:
            timed_out = True
            stdout, stderr, signals = _terminate_process(process, policy)

        return CommandResult(
            domain=domain,
            command=command_text,
            exit_code=process.returncode,
            stdout=_decode_stream(stdout),
            stderr=_decode_stream(stderr),
            duration_seconds=time.perf_counter() - started_at,
            timed_out=timed_out,
            signal_sequence=signals,
        )


def _terminate_process(
    process: subprocess.Popen[str], policy: TimeoutPolicy
) -> tuple[str, str, tuple[str, ...]]:
    """Stop a timed-out process: SIGTERM, a grace period, then SIGKILL.

    Returns everything the process wrote, plus the names of the signals
    actually delivered.
    """
    delivered: list[str] = []
    stages = (
        (signal.SIGTERM, policy.terminate_grace_seconds),
        (signal.SIGKILL, None),
    )
    for sig, wait in stages:
        if process.poll() is None and _deliver(process, sig, policy):
            delivered.append(sig.name)
        try:
            out, err = process.communicate(timeout=wait)
        except subprocess.TimeoutExpired:
            continue
        return _decode_stream(out), _decode_stream(err), tuple(delivered)
    return "", "", tuple(delivered)


def _deliver(
    process: subprocess.Popen[str], sig: signal.Signals, policy: TimeoutPolicy
) -> bool:
    try:
        if policy.use_process_group and os.name != "nt":
            os.killpg(process.pid, sig)
        else:
            process.send_signal(sig)
    except ProcessLookupError:
        return False
    return True


def _decode_stream(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode(errors="replace")
    return data


def format_command(command: Sequence[str]) -> str:
    """Render an argument vector the way a shell user would type it."""
    return shlex.join([str(part) for part in command])


_DEFAULT_COMMAND_RUNNER = CommandRunner()


def get_command_runner() -> CommandRunner:
    """Return shared command runner instance."""
    return _DEFAULT_COMMAND_RUNNER
