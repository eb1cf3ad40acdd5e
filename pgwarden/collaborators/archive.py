"""Filesystem archiver: gzip-compressed tar of a directory tree.

The archive is taken from the live data directory while the server runs;
it is a file-level copy, not a consistent point-in-time base backup.
"""

from __future__ import annotations

import logging
import tarfile
import time
from pathlib import Path

from pgwarden.errors import ArchiveError

logger = logging.getLogger(__name__)


class TarArchiver:
    """Writes ``<destination>`` as ``tar.gz`` containing ``source_dir``.

    The tree is stored under its own base name, like
    ``tar -czf dest -C parent basename``.  The timeout is checked between
    members; on any failure the partial archive is removed.
    """

    def __init__(self, compresslevel: int = 6) -> None:
        self.compresslevel = compresslevel

    def archive(self, source_dir: Path, destination: Path, timeout: float) -> None:
        source_dir = Path(source_dir)
        destination = Path(destination)
        if not source_dir.is_dir():
            raise ArchiveError(f"Source is not a directory: {source_dir}")

        deadline = time.monotonic() + timeout

        def _check_deadline(info: tarfile.TarInfo) -> tarfile.TarInfo:
            if time.monotonic() > deadline:
                raise ArchiveError(
                    f"Archiving {source_dir} timed out after {timeout:.0f}s",
                    diagnostic=f"stopped at {info.name}",
                )
            return info

        try:
            with tarfile.open(destination, mode="w:gz", compresslevel=self.compresslevel) as tar:
                tar.add(str(source_dir), arcname=source_dir.name, filter=_check_deadline)
        except ArchiveError:
            destination.unlink(missing_ok=True)
            raise
        except (OSError, tarfile.TarError) as exc:
            destination.unlink(missing_ok=True)
            raise ArchiveError(
                f"Failed to archive {source_dir}", diagnostic=str(exc).strip()
            ) from exc

        logger.debug("Archived %s into %s", source_dir, destination)
