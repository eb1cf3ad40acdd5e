"""Run configuration: env-driven, immutable.

Built once at process start (normally by the CLI) and passed by reference
into the Orchestrator.  Nothing in the package reads a global instance.

Examples
--------
Override via environment::

    export PGWARDEN_DB_NAME=production_db
    export PGWARDEN_BACKUP_DIR=/srv/backups
    export PGWARDEN_ADMIN_EMAIL=dba-alerts@example.com

Or via .env file::

    PGWARDEN_REMOTE_NAME=gdrive_backups:
    PGWARDEN_RETENTION_DAYS=14
"""

from __future__ import annotations

import getpass
import socket
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from pgwarden.errors import ConfigurationError
from pgwarden.models.connection import DatabaseConnection

# pg_dump format -> logical artifact file extension
DUMP_EXTENSIONS: dict[str, str] = {
    "custom": "dump",
    "plain": "sql",
}

PHYSICAL_ARCHIVE_PATTERN = "*.tar.gz"


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "postgres"


def _default_from_address() -> str:
    return f"{_current_user()}@{socket.gethostname()}"


class WardenSettings(BaseSettings):
    """Settings for one backup cycle.

    All settings can be overridden via PGWARDEN_* environment variables
    or a .env file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PGWARDEN_",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Database identity
    db_host: str = "localhost"
    db_port: int = Field(default=5432, ge=1, le=65535)
    db_user: str = Field(default_factory=_current_user)
    db_password: SecretStr | None = None
    db_name: str = "production_db"
    maintenance_db: str = "postgres"  # used for reachability and SHOW data_directory

    # Local artifacts
    backup_dir: Path = Path("backups")
    dump_format: Literal["custom", "plain"] = "custom"
    retention_days: int = Field(default=7, ge=0)
    retention_patterns: tuple[str, ...] | None = None

    # Remote storage (rclone)
    remote_name: str = "gdrive_backups:"
    remote_path: str = "postgresql_backups"

    # Notification
    admin_email: str = "dba-alerts@localhost"
    from_email: str = Field(default_factory=_default_from_address)
    mail_transport: Literal["msmtp", "smtp"] = "msmtp"
    msmtp_account: str = "default"
    smtp_host: str = "localhost"
    smtp_port: int = Field(default=25, ge=1, le=65535)
    smtp_username: str | None = None
    smtp_password: SecretStr | None = None
    smtp_use_tls: bool = False

    # Logging
    log_file: Path = Path("pg_backup.log")
    log_level: str = "INFO"
    log_tail_lines: int = Field(default=15, ge=1)

    # Execution
    parallel_stages: bool = True
    command_timeout_seconds: float = Field(default=3600.0, gt=0)
    probe_timeout_seconds: float = Field(default=10.0, gt=0)
    mail_timeout_seconds: float = Field(default=30.0, gt=0)
    run_timeout_seconds: float | None = Field(default=None, gt=0)

    @property
    def connection(self) -> DatabaseConnection:
        """Connection to the database being backed up."""
        return DatabaseConnection(
            host=self.db_host,
            port=self.db_port,
            user=self.db_user,
            dbname=self.db_name,
            password=self.db_password,
        )

    @property
    def maintenance_connection(self) -> DatabaseConnection:
        """Connection used for preflight and server-level queries."""
        return self.connection.with_database(self.maintenance_db)

    @property
    def remote_location(self) -> str:
        """rclone destination, e.g. ``gdrive_backups:postgresql_backups/``."""
        path = self.remote_path.strip("/")
        return f"{self.remote_name}{path}/" if path else self.remote_name

    @property
    def logical_extension(self) -> str:
        return DUMP_EXTENSIONS[self.dump_format]

    @property
    def effective_retention_patterns(self) -> tuple[str, ...]:
        """Glob patterns identifying artifacts eligible for retention.

        The default covers every logical format, so artifacts written before
        a ``dump_format`` change still age out.
        """
        if self.retention_patterns:
            return tuple(self.retention_patterns)
        logical = tuple(f"*.{ext}" for ext in DUMP_EXTENSIONS.values())
        return (*logical, PHYSICAL_ARCHIVE_PATTERN)

    def masked(self) -> dict[str, str]:
        """Return a display-safe mapping of every setting (secrets hidden)."""
        display: dict[str, str] = {}
        for name, value in self.model_dump().items():
            if isinstance(value, SecretStr):
                display[name] = "********"
            elif value is None:
                display[name] = "-"
            else:
                display[name] = str(value)
        return display


def load_settings(env_file: Path | None = None, **overrides: object) -> WardenSettings:
    """Build settings from the environment, an optional env file and overrides.

    ``None`` overrides are dropped so unset CLI options fall through to the
    environment.

    Raises
    ------
    ConfigurationError
        If any value fails validation or the env file does not exist.
    """
    if env_file is not None and not Path(env_file).is_file():
        raise ConfigurationError(f"Env file not found: {env_file}")
    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        if env_file is not None:
            return WardenSettings(_env_file=env_file, **values)
        return WardenSettings(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration:\n{exc}") from exc
