"""Run external tool commands (``pub get``, ``pub deps``) with a bounded timeout."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

from constants import Constants
from common.logging_utils import Timer, extra_context, is_debug_enabled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Exit status and captured output of one command."""

    command: Sequence[str]
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Combined stdout and stderr, the text conflict parsing works on."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


def run_command(
    command: Sequence[str],
    cwd: str,
    timeout: Optional[float] = None,
) -> CommandResult:
    """Run ``command`` in ``cwd`` and capture its output.

    A timeout or a missing executable is reported as a failed result, never
    raised, so callers handle every failure of the external tool the same way.
    """
    effective_timeout = timeout if timeout is not None else Constants.COMMAND_TIMEOUT_SEC
    argv = list(command)
    logger.info("Running: %s", " ".join(argv))

    with Timer() as t:
        try:
            completed = subprocess.run(  # noqa: S603
                argv,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=effective_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            logger.warning("Command timed out after %s seconds: %s", effective_timeout, " ".join(argv))
            return CommandResult(
                command=argv,
                exit_code=-1,
                stdout=_text(exc.stdout),
                stderr=_text(exc.stderr) or f"timed out after {effective_timeout} seconds",
                timed_out=True,
            )
        except OSError as exc:  # FileNotFoundError, PermissionError
            logger.error("Failed to execute %s: %s", argv[0], exc)
            return CommandResult(command=argv, exit_code=127, stderr=str(exc))

    result = CommandResult(
        command=argv,
        exit_code=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    if is_debug_enabled(logger):
        logger.debug(
            "Command finished",
            extra=extra_context(
                event="process",
                component="process_runner",
                action="run_command",
                outcome="success" if result.success else "failure",
                exit_code=result.exit_code,
                duration_ms=t.duration_ms()
            )
        )
    return result


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value
