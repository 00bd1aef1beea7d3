"""Post-update actions run after a successful synchronization."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from git_sync.config import ExecConfig

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """Outcome of one post-update action."""

    name: str
    returncode: int | None
    stdout: str = ""
    stderr: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error and self.returncode == 0


async def _run_action(repo_name: str, action: ExecConfig) -> ActionResult:
    name = action.name or action.command
    try:
        process = await asyncio.create_subprocess_exec(
            action.command,
            *action.args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
    except (OSError, ValueError) as e:
        logger.warning("Failed executing post-update command %s for %s: %s", name, repo_name, e)
        return ActionResult(name=name, returncode=None, error=str(e))

    result = ActionResult(
        name=name,
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )
    if process.returncode != 0:
        result.error = f"exit status {process.returncode}"
        logger.warning(
            "Failed executing post-update command %s for %s (%s): %s",
            name,
            repo_name,
            result.error,
            result.stderr.strip(),
        )
    else:
        logger.debug(
            "Executed post-update command %s for %s (stdout: %r, stderr: %r)",
            name,
            repo_name,
            result.stdout,
            result.stderr,
        )
    return result


async def run_post_update_actions(repo_name: str, actions: list[ExecConfig]) -> list[ActionResult]:
    """Run each action in order. Failures are logged and never raised."""
    return [await _run_action(repo_name, action) for action in actions]
