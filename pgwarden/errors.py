"""Exception hierarchy for pgwarden.

Collaborators raise ``CollaboratorError`` subclasses.  Tasks catch them at
their boundary and turn them into failed ``StageResult`` values, so none of
these escape into the orchestrator's control flow.
"""

from __future__ import annotations


class WardenError(RuntimeError):
    """Base class for all pgwarden errors."""


class ConfigurationError(WardenError):
    """Raised when the settings cannot describe a runnable backup cycle."""


class CollaboratorError(WardenError):
    """An external collaborator reported failure.

    ``diagnostic`` carries the collaborator's own error output so it can be
    embedded verbatim in the log and in the operator notification.
    """

    def __init__(self, message: str, diagnostic: str = "") -> None:
        super().__init__(message)
        self.diagnostic = diagnostic

    def __str__(self) -> str:
        base = super().__str__()
        if self.diagnostic:
            return f"{base}\n{self.diagnostic}"
        return base


class DatabaseUnavailableError(CollaboratorError):
    """The database server could not be reached or queried."""


class CommandFailedError(CollaboratorError):
    """An external command exited with a non-zero status."""

    def __init__(self, command: list[str], returncode: int, output: str = "") -> None:
        super().__init__(
            f"Command failed ({returncode}): {' '.join(command)}",
            diagnostic=output.strip(),
        )
        self.command = list(command)
        self.returncode = returncode


class ArchiveError(CollaboratorError):
    """The filesystem archiver could not produce the archive."""


class TransferError(CollaboratorError):
    """The remote copy did not complete."""


class DeliveryError(CollaboratorError):
    """The message transport did not accept the notification."""
