"""Git command execution for treadmill.

Every git invocation is echoed to the transcript before it runs and every
nonzero exit becomes CommandFailed. Callers that expect failure use probe().
"""
from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

from treadmill.errors import CommandFailed
from treadmill.reporting import Reporter
from treadmill.runtime import CommandRunner, TimeoutDomain, format_command, get_command_runner

logger = logging.getLogger(__name__)
transcript_logger = logging.getLogger("treadmill.transcript")

# Subcommands that talk to a remote get the longer network timeout.
_NETWORK_SUBCOMMANDS = frozenset({"fetch", "pull", "push", "ls-remote"})


class GitService:
    """Runs git and build commands in one working directory."""

    def __init__(
        self,
        working_dir: Path,
        *,
        dry_run: bool = False,
        reporter: Reporter | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        """Initialize git service.

        Args:
            working_dir: Repository checkout to run commands in.
            dry_run: Echo mutating commands instead of running them.
            reporter: Console output for the transcript. Optional.
            runner: Process runner. Defaults to the shared runner.
        """
        self.working_dir = working_dir
        self.dry_run = dry_run
        self.reporter = reporter
        self._runner = runner or get_command_runner()

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        # Never open an editor for rebase, cherry-pick or commit.
        env["GIT_EDITOR"] = "true"
        env["GIT_SEQUENCE_EDITOR"] = "true"
        env.setdefault("GIT_TERMINAL_PROMPT", "0")
        return env

    def _echo(self, command: str, *, skipped: bool) -> None:
        transcript_logger.debug("%s$ %s", "(dry-run) " if skipped else "", command)
        if self.reporter is not None:
            self.reporter.transcript(command, dry_run=skipped)

    def _execute(
        self,
        command: Sequence[str],
        *,
        domain: TimeoutDomain,
        readonly: bool,
        stream: bool = False,
    ) -> list[str]:
        command_text = format_command(command)
        skipped = self.dry_run and not readonly
        self._echo(command_text, skipped=skipped)
        if skipped:
            return []

        try:
            result = self._runner.run(
                command,
                domain=domain,
                cwd=self.working_dir,
                env=self._env(),
                capture=not stream,
            )
        except OSError as e:
            raise CommandFailed(command_text, 127, str(e)) from e
        logger.debug(
            "%s exited %d after %.2fs",
            command_text,
            result.effective_exit_code,
            result.duration_seconds,
        )
        if not result.ok:
            raise CommandFailed(command_text, result.effective_exit_code, result.stderr)
        return result.lines

    def git(self, *args: str, readonly: bool = False) -> list[str]:
        """Run a git command and return its stdout lines."""
        domain = (
            TimeoutDomain.NETWORK_GIT
            if args and args[0] in _NETWORK_SUBCOMMANDS
            else TimeoutDomain.GIT_OPERATION
        )
        return self._execute(["git", *args], domain=domain, readonly=readonly)

    def git_text(self, *args: str) -> str:
        """Run a read-only git query expected to print a single value."""
        return "\n".join(self.git(*args, readonly=True)).strip()

    def probe(self, *args: str) -> bool:
        """Run a git command, returning False instead of raising.

        For yes/no queries and best-effort cleanup after a failure. Runs
        even under dry-run.
        """
        command = ["git", *args]
        command_text = format_command(command)
        self._echo(command_text, skipped=False)
        try:
            result = self._runner.run(
                command,
                domain=TimeoutDomain.GIT_OPERATION,
                cwd=self.working_dir,
                env=self._env(),
            )
        except OSError as e:
            logger.debug("%s could not start: %s", command_text, e)
            return False
        return result.ok

    def run(
        self,
        command: Sequence[str],
        *,
        domain: TimeoutDomain = TimeoutDomain.VENDOR,
        readonly: bool = False,
        stream: bool = False,
    ) -> list[str]:
        """Run a non-git command (vendoring, verification)."""
        return self._execute(command, domain=domain, readonly=readonly, stream=stream)

    # -------- queries --------

    def current_branch(self) -> str | None:
        """Name of the checked-out branch, None when HEAD is detached."""
        return self.git_text("branch", "--show-current") or None

    def rev_parse(self, ref: str) -> str:
        return self.git_text("rev-parse", "--verify", f"{ref}^{{commit}}")

    def commit_subject(self, ref: str) -> str:
        return self.git_text("log", "-1", "--format=%s", ref)

    def commit_message(self, ref: str) -> str:
        return self.git_text("log", "-1", "--format=%B", ref)

    def merge_base(self, a: str, b: str) -> str:
        return self.git_text("merge-base", a, b)

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return self.probe("merge-base", "--is-ancestor", ancestor, descendant)

    def branch_exists(self, name: str) -> bool:
        return self.probe("rev-parse", "--verify", "--quiet", f"refs/heads/{name}")

    def list_branches(self, pattern: str) -> list[str]:
        lines = self.git(
            "branch", "--list", pattern, "--format=%(refname:short)", readonly=True
        )
        return [line.strip() for line in lines if line.strip()]

    def changed_files(self, base: str, ref: str) -> list[str]:
        lines = self.git("diff", "--name-only", base, ref, readonly=True)
        return [line for line in lines if line]

    def diff_lines(self, base: str, ref: str, path: str) -> list[str]:
        return self.git("diff", "--unified=0", base, ref, "--", path, readonly=True)

    def untracked_files(self, path: str | None = None) -> list[str]:
        args = ["ls-files", "--others", "--exclude-standard"]
        if path:
            args.extend(["--", path])
        return [line for line in self.git(*args, readonly=True) if line]

    def tracked_changes(self) -> list[str]:
        """Porcelain status lines for modified or staged tracked files."""
        lines = self.git(
            "status", "--porcelain", "--untracked-files=no", readonly=True
        )
        return [line for line in lines if line.strip()]

    def show_file(self, ref: str, path: str) -> list[str]:
        return self.git("show", f"{ref}:{path}", readonly=True)

    def has_parent(self, ref: str) -> bool:
        return self.probe("rev-parse", "--verify", "--quiet", f"{ref}^")

    # -------- mutations --------

    def checkout(self, ref: str) -> None:
        self.git("checkout", "-q", ref)

    def reset_hard(self, target: str) -> None:
        """Reset the current branch and working tree to target.

        WARNING: discards uncommitted changes; callers check cleanliness first.
        """
        self.git("reset", "-q", "--hard", target)

    def rebase(self, onto: str) -> None:
        self.git("rebase", onto)

    def create_branch(self, name: str, start: str) -> None:
        self.git("branch", name, start)

    def delete_branch(self, name: str) -> None:
        self.git("branch", "-D", name)

    def stage(self, *paths: str) -> None:
        if paths:
            self.git("add", "--", *paths)

    def commit(self, message: str, *, all_tracked: bool = False) -> None:
        args = ["commit", "-q", "--allow-empty"]
        if all_tracked:
            args.append("-a")
        self.git(*args, "-m", message)

    def amend_message(self, message: str) -> None:
        self.git("commit", "-q", "--amend", "--allow-empty", "-m", message)

    def cherry_pick(self, ref: str) -> None:
        self.git(
            "cherry-pick", "--allow-empty", "--keep-redundant-commits", ref
        )
