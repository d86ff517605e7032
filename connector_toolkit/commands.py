"""
Command Runner - Executes the external CLIs the toolkit depends on

Every cloud-facing step (Azure CLI, Power Platform CLI, data generator)
goes through this module:
1. Resolves the executable for a named tool
2. Runs it to completion with the given arguments
3. Captures exit status and output in a CommandResult

Design decisions:
- Synchronous, one command at a time
- No timeouts or retries: a failed command ends the run
- Errors are classified and returned, not raised, so callers can be
  tested with a fake runner
"""

import json
import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from .config_schema import ToolSettings

logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Classification of toolkit errors."""
    SUCCESS = "success"
    CONFIG_ERROR = "config_error"       # bad or incomplete config file
    FILE_NOT_FOUND = "file_not_found"   # icon, definition, settings missing
    TOOL_NOT_FOUND = "tool_not_found"   # executable not on PATH
    COMMAND_FAILED = "command_failed"   # non-zero exit
    PARSE_ERROR = "parse_error"         # unreadable JSON/YAML
    NETWORK_ERROR = "network_error"     # remote definition/icon fetch
    UNKNOWN = "unknown"


class ToolkitError(Exception):
    """Raised inside the flows; converted to a result at the flow boundary."""

    def __init__(self, message: str, error_type: ErrorType = ErrorType.UNKNOWN):
        super().__init__(message)
        self.error_type = error_type


@dataclass
class CommandResult:
    """Outcome of one external command."""
    success: bool
    command: List[str] = field(default_factory=list)
    returncode: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None
    error_type: ErrorType = ErrorType.SUCCESS

    def parse_json(self) -> Any:
        """Decode stdout as JSON (az commands print JSON by default)."""
        try:
            return json.loads(self.stdout) if self.stdout.strip() else None
        except json.JSONDecodeError as e:
            raise ToolkitError(
                f"Could not parse output of '{shlex.join(self.command)}': {e}",
                ErrorType.PARSE_ERROR,
            )

    def raise_for_status(self) -> "CommandResult":
        """Raise ToolkitError if the command did not succeed."""
        if not self.success:
            raise ToolkitError(self.error or "Command failed", self.error_type)
        return self


class CommandRunner:
    """
    Runs named external tools.

    Tool names ("az", "pac", "datagen") are mapped to executables through
    ToolSettings, so a different install location only needs an
    environment variable.
    """

    def __init__(self, tools: Optional[ToolSettings] = None):
        self.tools = tools or ToolSettings.from_env()

    def resolve(self, tool: str) -> List[str]:
        """Return the argv prefix for a tool."""
        executable = self.tools.executable(tool)
        return shlex.split(executable)

    def run(self, tool: str, args: List[str], cwd: Optional[str] = None) -> CommandResult:
        """Run a tool with arguments and wait for it to finish."""
        command = self.resolve(tool) + [str(a) for a in args]
        logger.debug(f"Running: {shlex.join(command)}" + (f" (cwd={cwd})" if cwd else ""))

        try:
            completed = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                text=True,
                check=False,
                stdin=subprocess.DEVNULL,
            )
        except FileNotFoundError:
            return CommandResult(
                success=False,
                command=command,
                error=f"'{command[0]}' not found. Is the {tool} CLI installed and on PATH?",
                error_type=ErrorType.TOOL_NOT_FOUND,
            )
        except OSError as e:
            return CommandResult(
                success=False,
                command=command,
                error=f"Could not start '{command[0]}': {e}",
                error_type=ErrorType.UNKNOWN,
            )

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout).strip()
            logger.debug(f"Exit code {completed.returncode}: {detail}")
            return CommandResult(
                success=False,
                command=command,
                returncode=completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
                error=f"'{shlex.join(command)}' exited with code {completed.returncode}"
                      + (f": {detail}" if detail else ""),
                error_type=ErrorType.COMMAND_FAILED,
            )

        return CommandResult(
            success=True,
            command=command,
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )


def run_checked(runner: CommandRunner, tool: str, args: List[str],
                cwd: Optional[str] = None) -> CommandResult:
    """Run a command and raise ToolkitError when it fails."""
    return runner.run(tool, args, cwd=cwd).raise_for_status()
