"""Project-level validation gate (build + tests)"""
import shlex
import logging
import subprocess
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationOutcome:
    passed: bool
    diagnostic: str = ""


class ProjectValidator:
    """Runs validation commands against the current working tree"""

    def __init__(
        self,
        commands: Iterable[str] = ("cargo check --quiet", "cargo test --quiet"),
        cwd: Optional[str] = None,
        timeout: float = 600.0,
    ):
        """
        Initialize validator

        Args:
            commands: Shell-style command lines, run in order until one fails
            cwd: Working directory for the commands (project root)
            timeout: Seconds allowed per command
        """
        self.commands: Sequence[str] = tuple(commands)
        self.cwd = cwd
        self.timeout = timeout

    def validate(self) -> ValidationOutcome:
        for command in self.commands:
            logger.info(f"Running validation command: {command}")
            outcome = self._run(command)
            if not outcome.passed:
                logger.info(f"Validation failed: {outcome.diagnostic}")
                return outcome
        return ValidationOutcome(passed=True)

    def _run(self, command: str) -> ValidationOutcome:
        try:
            proc = subprocess.run(
                shlex.split(command),
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return ValidationOutcome(False, f"{command}: timed out after {self.timeout:g}s")
        except OSError as e:
            return ValidationOutcome(False, f"{command}: failed to run ({e})")

        if proc.returncode != 0:
            output = (proc.stderr or "").strip() or (proc.stdout or "").strip() or f"exit status {proc.returncode}"
            return ValidationOutcome(False, f"{command}: {output}")
        return ValidationOutcome(passed=True)
