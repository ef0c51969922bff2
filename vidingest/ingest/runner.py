from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from vidingest.core.logging import get_logger

logger = get_logger(component="command_runner")

TIMEOUT_RETURNCODE = -9
MISSING_BINARY_RETURNCODE = 127


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of a single external tool invocation."""

    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class CommandRunner(ABC):
    @abstractmethod
    def run(self, command: Sequence[str], *, timeout_s: float | None = None) -> CommandResult: ...


class SubprocessRunner(CommandRunner):
    """Runs tools with :func:`subprocess.run`, folding timeouts into the result."""

    def run(self, command: Sequence[str], *, timeout_s: float | None = None) -> CommandResult:
        args = [str(part) for part in command]
        logger.debug("command_run", command=args, timeout_s=timeout_s)
        try:
            proc = subprocess.run(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                timeout=timeout_s,
            )
        except subprocess.TimeoutExpired as exc:
            stderr = exc.stderr.decode(errors="replace") if isinstance(exc.stderr, bytes) else (exc.stderr or "")
            logger.warning("command_timed_out", command=args, timeout_s=timeout_s)
            return CommandResult(
                returncode=TIMEOUT_RETURNCODE,
                stdout="",
                stderr=f"{args[0]} timed out after {timeout_s}s. {stderr}".strip(),
                timed_out=True,
            )
        except FileNotFoundError:
            logger.error("command_binary_missing", command=args)
            return CommandResult(
                returncode=MISSING_BINARY_RETURNCODE,
                stdout="",
                stderr=f"{args[0]}: executable not found",
            )
        return CommandResult(returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)


__all__ = ["CommandResult", "CommandRunner", "SubprocessRunner", "TIMEOUT_RETURNCODE", "MISSING_BINARY_RETURNCODE"]
