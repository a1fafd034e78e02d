"""
External action execution.

The configured command is run as ``<command> <STATE>`` without a shell,
with stdout and stderr merged. Failures are logged and reported in the
returned ActionResult; they never raise.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

from powermon.logging_config import get_logger
from powermon.types import PowerState

logger = get_logger(__name__)


@dataclass
class ActionResult:
    """Outcome of one action run."""
    command: str
    state: PowerState
    returncode: Optional[int] = None  # None if the process never started
    output: str = ""
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        """True if the command ran and exited with status 0."""
        return self.error is None and self.returncode == 0


class ActionRunner:
    """Runs the configured action for a power state.

    The caller awaits each run to completion; there is no timeout, no
    retry and no overlap between runs.
    """

    def __init__(self, command: str):
        """
        Args:
            command: Path of the executable to run, already expanded
        """
        self.command = command
        self.run_count = 0

    async def run(self, state: PowerState) -> ActionResult:
        """
        Run the action with ``state`` as its only argument.

        Args:
            state: Power state to report

        Returns:
            ActionResult with captured output and exit status
        """
        arg = str(state)
        self.run_count += 1

        logger.info(f"power state: {arg}")
        logger.info(f"running command: {self.command} {arg}")

        try:
            process = await asyncio.create_subprocess_exec(
                self.command,
                arg,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            stdout, _ = await process.communicate()
        except (OSError, ValueError) as e:
            # ValueError: path the OS cannot represent, e.g. an embedded NUL
            logger.error(f"error running '{self.command} {arg}': {e}")
            return ActionResult(command=self.command, state=state, error=str(e))

        output = stdout.decode(errors="replace") if stdout else ""
        result = ActionResult(
            command=self.command,
            state=state,
            returncode=process.returncode,
            output=output,
        )

        if process.returncode != 0:
            result.error = f"exit status {process.returncode}"
            logger.error(f"error running '{self.command} {arg}': {result.error}")
            logger.error(f"error output: {output.rstrip()}")
        elif output:
            logger.debug(f"command output: {output.rstrip()}")

        return result
