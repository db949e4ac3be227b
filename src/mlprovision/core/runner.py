"""
Command Execution
=================

Thin wrapper around subprocess used by every provisioning step.

Commands run with strict failure propagation by default: a non-zero exit
status or a missing executable raises CommandError. Pass ``check=False`` to
inspect the result instead. In dry-run mode, commands that change the
system are logged and reported as successful without being executed, while
read-only probes (``probe=True``) still run so detection keeps working.

Usage:
    from mlprovision.core.runner import CommandRunner

    runner = CommandRunner()
    runner.run(["apt", "update"], sudo=True)
    if runner.succeeds(["dpkg", "-s", "build-essential"]):
        ...
"""

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from mlprovision.core.exceptions import CommandError
from mlprovision.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Outcome of a single command invocation."""

    args: List[str] = field(default_factory=list)
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        """Whether the command exited successfully."""
        return self.returncode == 0


class CommandRunner:
    """
    Executes external commands for the provisioning steps.

    Args:
        dry_run: Log mutating commands instead of running them
        use_sudo: Prefix privileged commands with sudo (ignored when root)
    """

    def __init__(self, dry_run: bool = False, use_sudo: bool = True) -> None:
        self.dry_run = dry_run
        self.use_sudo = use_sudo

    def _is_root(self) -> bool:
        return hasattr(os, "geteuid") and os.geteuid() == 0

    def build_command(self, args: Sequence[str], sudo: bool = False) -> List[str]:
        """Return the full command line, including sudo when required."""
        command = [str(a) for a in args]
        if sudo and self.use_sudo and not self._is_root():
            command.insert(0, "sudo")
        return command

    def which(self, name: str) -> Optional[str]:
        """Locate an executable on PATH."""
        return shutil.which(name)

    def run(
        self,
        args: Sequence[str],
        sudo: bool = False,
        check: bool = True,
        capture: bool = False,
        input: Optional[str] = None,
        probe: bool = False,
    ) -> CommandResult:
        """
        Run a command.

        Args:
            args: Command and arguments
            sudo: Run with elevated privileges
            check: Raise CommandError on failure
            capture: Capture stdout/stderr instead of streaming to the console
            input: Text passed to the command's standard input
            probe: Read-only command that also runs in dry-run mode

        Returns:
            CommandResult for the invocation

        Raises:
            CommandError: If check is set and the command fails
        """
        command = self.build_command(args, sudo=sudo)

        if self.dry_run and not probe:
            logger.info(f"[dry-run] {' '.join(command)}")
            return CommandResult(args=command, dry_run=True)

        logger.debug(f"Running: {' '.join(command)}")
        try:
            completed = subprocess.run(
                command,
                capture_output=capture,
                text=True,
                input=input,
            )
        except FileNotFoundError:
            if check:
                raise CommandError(command)
            logger.debug(f"Command not found: {command[0]}")
            return CommandResult(args=command, returncode=127, stderr=f"{command[0]}: not found")

        result = CommandResult(
            args=command,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

        if check and not result.ok:
            raise CommandError(command, result.returncode, result.stderr)

        return result

    def succeeds(self, args: Sequence[str], sudo: bool = False) -> bool:
        """Run a read-only probe quietly and report whether it exited 0."""
        return self.run(args, sudo=sudo, check=False, capture=True, probe=True).ok
