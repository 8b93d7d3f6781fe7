# cybershieldx/scanner/commands.py
"""
OS command runner used by every collector and security check.

All external tool invocations go through run_command(), which:
    - never uses a shell (argument lists only)
    - always applies a timeout, so a hung binary cannot stall a scan
    - raises typed errors that the check/collector boundaries convert into
      {error, score: 0, rating: "unknown"} or partial data

Error taxonomy:
    CommandError       non-zero exit (stderr captured)
    CommandNotFound    binary missing from PATH
    CommandTimeout     timeout expired; the child is killed by subprocess.run
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class CommandError(Exception):
    """A command could not be run or exited non-zero."""

    def __init__(self, cmd: Sequence[str], message: str, returncode: Optional[int] = None):
        self.cmd = list(cmd)
        self.returncode = returncode
        super().__init__(f"{' '.join(self.cmd)}: {message}")


class CommandNotFound(CommandError):
    pass


class CommandTimeout(CommandError):
    pass


@dataclass
class CommandResult:
    cmd: List[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def lines(self) -> List[str]:
        return [line for line in self.stdout.splitlines() if line.strip()]


def run_command(
    cmd: Sequence[str],
    timeout: int = DEFAULT_TIMEOUT,
    check: bool = True,
) -> CommandResult:
    """
    Run a read-only inspection command and capture its output.

    Args:
        cmd:     Argument list, e.g. ["netsh", "advfirewall", "show", "allprofiles"]
        timeout: Seconds before the child is killed
        check:   Raise CommandError on non-zero exit (default). Pass False for
                 tools whose exit code carries meaning (yum check-update).
    """
    cmd = list(cmd)
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise CommandNotFound(cmd, "command not found")
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {timeout}s: {' '.join(cmd)}")
        raise CommandTimeout(cmd, f"timed out after {timeout}s")
    except OSError as e:
        raise CommandError(cmd, str(e))

    result = CommandResult(
        cmd=cmd,
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )

    if check and not result.ok:
        stderr = result.stderr.strip()[:500]
        raise CommandError(cmd, f"exit {proc.returncode}: {stderr}", returncode=proc.returncode)

    return result

