"""Remote copy through ``rclone copy``."""

from __future__ import annotations

from pathlib import Path

from pgwarden.collaborators._process import run_command
from pgwarden.errors import CommandFailedError, TransferError


class RcloneCopier:
    """``rclone copy <file> <remote:path/> -v``; the local file is left as is."""

    def __init__(self, binary: str = "rclone") -> None:
        self.binary = binary

    def build_command(self, local_path: Path, remote_location: str) -> list[str]:
        return [self.binary, "copy", str(local_path), remote_location, "-v"]

    def copy(self, local_path: Path, remote_location: str, timeout: float) -> None:
        command = self.build_command(local_path, remote_location)
        try:
            run_command(command, timeout=timeout)
        except CommandFailedError as exc:
            raise TransferError(
                f"rclone could not copy {Path(local_path).name} to {remote_location}",
                diagnostic=exc.diagnostic,
            ) from exc
