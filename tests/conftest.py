"""Shared test fixtures for pgwarden.

Every external collaborator has an in-memory fake here.  The fakes record
their calls and can be told to fail with a given exception.
"""

from __future__ import annotations

import os
import threading
from datetime import datetime
from pathlib import Path

import pytest

from pgwarden.collaborators import Collaborators
from pgwarden.config import WardenSettings
from pgwarden.core.orchestrator import Orchestrator
from pgwarden.models.connection import DatabaseConnection

FIXED_NOW = datetime(2025, 11, 14, 2, 0, 0)
FIXED_TIMESTAMP = "2025-11-14-020000"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FixedClock:
    def __init__(self, moment: datetime = FIXED_NOW) -> None:
        self.moment = moment

    def now(self) -> datetime:
        return self.moment


class FakeProbe:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[DatabaseConnection, float]] = []

    def ping(self, connection: DatabaseConnection, timeout: float) -> None:
        self.calls.append((connection, timeout))
        if self.error is not None:
            raise self.error


class FakeDumpTool:
    """Writes ``payload`` to the destination like pg_dump would."""

    def __init__(self, payload: bytes = b"PGDMP" + b"\0" * 2043, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.calls: list[tuple[DatabaseConnection, Path, str]] = []

    def dump(self, connection: DatabaseConnection, destination: Path, fmt: str, timeout: float) -> None:
        self.calls.append((connection, Path(destination), fmt))
        if self.error is not None:
            raise self.error
        Path(destination).write_bytes(self.payload)


class FakeResolver:
    def __init__(self, data_dir: Path | None = None, error: Exception | None = None) -> None:
        self.data_dir = data_dir
        self.error = error
        self.calls: list[DatabaseConnection] = []

    def query_data_directory(self, connection: DatabaseConnection, timeout: float) -> Path:
        self.calls.append(connection)
        if self.error is not None:
            raise self.error
        assert self.data_dir is not None
        return self.data_dir


class FakeArchiver:
    def __init__(self, payload: bytes = b"\x1f\x8b" + b"\0" * 4094, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.calls: list[tuple[Path, Path]] = []

    def archive(self, source_dir: Path, destination: Path, timeout: float) -> None:
        self.calls.append((Path(source_dir), Path(destination)))
        if self.error is not None:
            raise self.error
        Path(destination).write_bytes(self.payload)


class FakeCopier:
    """Records uploads; raises ``error`` for file names listed in ``fail_for``."""

    def __init__(self, error: Exception | None = None, fail_for: set[str] | None = None) -> None:
        self.error = error
        self.fail_for = fail_for
        self.copied: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def copy(self, local_path: Path, remote_location: str, timeout: float) -> None:
        name = Path(local_path).name
        if self.error is not None and (self.fail_for is None or name in self.fail_for):
            raise self.error
        with self._lock:
            self.copied.append((name, remote_location))


class FakeTransport:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.sent: list[dict[str, str]] = []

    def send(self, from_address: str, to_address: str, subject: str, body: str, timeout: float) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(
            {"from": from_address, "to": to_address, "subject": subject, "body": body}
        )

    @property
    def subjects(self) -> list[str]:
        return [m["subject"] for m in self.sent]


class FakeBackends:
    """Mutable holder for one fake of each collaborator."""

    def __init__(self, data_dir: Path) -> None:
        self.probe = FakeProbe()
        self.dump_tool = FakeDumpTool()
        self.resolver = FakeResolver(data_dir)
        self.archiver = FakeArchiver()
        self.copier = FakeCopier()
        self.transport = FakeTransport()

    def bundle(self) -> Collaborators:
        return Collaborators(
            probe=self.probe,
            dump_tool=self.dump_tool,
            resolver=self.resolver,
            archiver=self.archiver,
            copier=self.copier,
            transport=self.transport,
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep PGWARDEN_* variables and any .env file out of every test."""
    for key in list(os.environ):
        if key.startswith("PGWARDEN_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """A small fake PostgreSQL data directory."""
    root = tmp_path / "pgdata"
    (root / "base" / "1").mkdir(parents=True)
    (root / "PG_VERSION").write_text("16\n")
    (root / "base" / "1" / "1259").write_bytes(b"\0" * 8192)
    return root


@pytest.fixture
def settings(tmp_path: Path) -> WardenSettings:
    """Settings pointing every path into the test's temp directory."""
    return WardenSettings(
        db_user="postgres",
        db_name="production_db",
        backup_dir=tmp_path / "backups",
        log_file=tmp_path / "logs" / "pg_backup.log",
        admin_email="dba-alerts@example.com",
        from_email="postgres@db1.example.com",
    )


@pytest.fixture
def fakes(data_dir: Path) -> FakeBackends:
    return FakeBackends(data_dir)


@pytest.fixture
def make_orchestrator(fakes: FakeBackends):
    """Factory building an Orchestrator wired to the fakes and a fixed clock."""

    def _make(config: WardenSettings, **kwargs) -> Orchestrator:
        return Orchestrator(
            config, collaborators=fakes.bundle(), clock=FixedClock(), **kwargs
        )

    return _make
