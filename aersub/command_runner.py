"""Runs external tools, or reports them without running in dry-run mode."""

import logging
import os
import subprocess
from typing import Optional, Sequence

from .exceptions import CommandError
from .utils import display_text

logger = logging.getLogger(__name__)

VK_ICD_FILENAMES_VAR = "VK_ICD_FILENAMES"

def render_command(program: str, args: Sequence[str]) -> str:
    """Human-readable form of an invocation, used for logs and error messages."""
    return display_text(f"{program} {' '.join(str(arg) for arg in args)}")

class CommandRunner:
    """Executes external programs on behalf of a job."""

    def __init__(self, events, dry_run: bool = False, vk_icd_filenames: Optional[str] = None):
        """
        Initializes the CommandRunner.

        Args:
            events: Sink with a log(message) method for progress events.
            dry_run: If True, commands are only reported, never spawned.
            vk_icd_filenames: Optional Vulkan loader manifest passed to children.
        """
        self.events = events
        self.dry_run = dry_run
        self.vk_icd_filenames = vk_icd_filenames

    def _child_env(self) -> Optional[dict]:
        if not self.vk_icd_filenames:
            return None
        env = os.environ.copy()
        env[VK_ICD_FILENAMES_VAR] = self.vk_icd_filenames
        return env

    def run(self, program: str, args: Sequence[str]) -> None:
        """
        Runs a program to completion, discarding its output.

        Args:
            program: Executable name or path.
            args: Arguments passed to the program.

        Raises:
            CommandError: If the program exits unsuccessfully.
            OSError: If the program cannot be launched.
            OutputStreamError: If the dry-run event cannot be written.
        """
        rendered = render_command(program, args)
        if self.dry_run:
            self.events.log(f"DRY-RUN {rendered}")
            return

        logger.info(f"Running: {rendered}")
        completed = subprocess.run(
            [program, *[str(arg) for arg in args]],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            env=self._child_env(),
            check=False,
        )
        if completed.returncode != 0:
            logger.error(f"Command exited with status {completed.returncode}: {rendered}")
            raise CommandError(f"Command failed: {rendered}")
