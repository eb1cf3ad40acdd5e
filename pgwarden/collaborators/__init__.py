"""External collaborator protocols and the default backend bundle.

Every external action of a backup cycle goes through one of these narrow
Protocols, so the orchestration logic can be exercised against fakes
without a database, an rclone remote or a mail server.

Failures are reported by raising a ``pgwarden.errors.CollaboratorError``
subclass whose ``diagnostic`` holds the collaborator's own output.
Every method receives the ``timeout`` (seconds) the call must honour.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pgwarden.models.connection import DatabaseConnection

if TYPE_CHECKING:
    from pgwarden.config import WardenSettings


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class DatabaseProbe(Protocol):
    """Cheap reachability check for the database server."""

    def ping(self, connection: DatabaseConnection, timeout: float) -> None:
        """Return if the server accepts connections, raise otherwise."""
        ...


@runtime_checkable
class DumpTool(Protocol):
    """Logical export of one database into a file."""

    def dump(
        self,
        connection: DatabaseConnection,
        destination: Path,
        fmt: str,
        timeout: float,
    ) -> None:
        ...


@runtime_checkable
class DataDirectoryResolver(Protocol):
    """Asks the running server where its data directory lives."""

    def query_data_directory(self, connection: DatabaseConnection, timeout: float) -> Path:
        ...


@runtime_checkable
class Archiver(Protocol):
    """Archives a directory tree into a single compressed file."""

    def archive(self, source_dir: Path, destination: Path, timeout: float) -> None:
        ...


@runtime_checkable
class RemoteCopier(Protocol):
    """Copies a local file to remote storage without touching the original."""

    def copy(self, local_path: Path, remote_location: str, timeout: float) -> None:
        ...


@runtime_checkable
class MessageTransport(Protocol):
    """Delivers one plain-text message."""

    def send(
        self,
        from_address: str,
        to_address: str,
        subject: str,
        body: str,
        timeout: float,
    ) -> None:
        ...


# ---------------------------------------------------------------------------
# Bundle
# ---------------------------------------------------------------------------


class Collaborators:
    """The set of backends one Orchestrator talks to.

    Parameters
    ----------
    probe, dump_tool, resolver, archiver, copier, transport:
        Protocol implementations.  ``Collaborators.from_config`` builds the
        production set.
    """

    def __init__(
        self,
        *,
        probe: DatabaseProbe,
        dump_tool: DumpTool,
        resolver: DataDirectoryResolver,
        archiver: Archiver,
        copier: RemoteCopier,
        transport: MessageTransport,
    ) -> None:
        self.probe = probe
        self.dump_tool = dump_tool
        self.resolver = resolver
        self.archiver = archiver
        self.copier = copier
        self.transport = transport

    @classmethod
    def from_config(cls, config: WardenSettings) -> Collaborators:
        """Production backends: psycopg2, pg_dump, tarfile, rclone, msmtp/SMTP."""
        from pgwarden.collaborators.archive import TarArchiver
        from pgwarden.collaborators.mail import build_transport
        from pgwarden.collaborators.postgres import PgDumpTool, PostgresProbe
        from pgwarden.collaborators.rclone import RcloneCopier

        probe = PostgresProbe()
        return cls(
            probe=probe,
            dump_tool=PgDumpTool(),
            resolver=probe,
            archiver=TarArchiver(),
            copier=RcloneCopier(),
            transport=build_transport(config),
        )


__all__ = [
    "Archiver",
    "Collaborators",
    "DataDirectoryResolver",
    "DatabaseProbe",
    "DumpTool",
    "MessageTransport",
    "RemoteCopier",
]
