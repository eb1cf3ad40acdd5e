"""Subprocess helper shared by the command-line collaborators."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping

from pgwarden.errors import CommandFailedError

logger = logging.getLogger(__name__)


def run_command(
    command: list[str],
    *,
    timeout: float,
    env: Mapping[str, str] | None = None,
    input_bytes: bytes | None = None,
) -> str:
    """Run *command*, log its combined output, return it.

    Raises
    ------
    CommandFailedError
        Non-zero exit, missing binary or timeout.  The captured output is
        the error's diagnostic.
    """
    logger.debug("$ %s", " ".join(command))
    merged_env = {**os.environ, **env} if env else None
    try:
        result = subprocess.run(
            command,
            input=input_bytes,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            env=merged_env,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise CommandFailedError(command, 127, f"command not found: {exc.filename or command[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        partial = exc.output.decode("utf-8", errors="replace") if exc.output else ""
        raise CommandFailedError(
            command, -1, f"timed out after {timeout:.0f}s\n{partial}".strip()
        ) from exc

    output = result.stdout.decode("utf-8", errors="replace").strip() if result.stdout else ""
    if output:
        logger.info(output)

    if result.returncode != 0:
        raise CommandFailedError(command, result.returncode, output)
    return output
