"""PostgreSQL collaborators: reachability, data directory lookup, pg_dump."""

from __future__ import annotations

import logging
import math
from pathlib import Path

import psycopg2
from psycopg2.extensions import connection as PgConnection

from pgwarden.collaborators._process import run_command
from pgwarden.errors import DatabaseUnavailableError
from pgwarden.models.connection import DatabaseConnection

logger = logging.getLogger(__name__)

# pg_dump -F flag per configured dump format
PG_DUMP_FORMAT_FLAGS: dict[str, str] = {
    "custom": "c",
    "plain": "p",
}


def _connect(connection: DatabaseConnection, timeout: float) -> PgConnection:
    password = connection.password.get_secret_value() if connection.password else None
    try:
        return psycopg2.connect(
            host=connection.host,
            port=connection.port,
            user=connection.user,
            dbname=connection.dbname,
            password=password,
            connect_timeout=max(1, math.ceil(timeout)),
        )
    except psycopg2.Error as exc:
        raise DatabaseUnavailableError(
            f"Cannot connect to {connection}", diagnostic=str(exc).strip()
        ) from exc


class PostgresProbe:
    """Reachability probe and data-directory resolver over psycopg2."""

    def ping(self, connection: DatabaseConnection, timeout: float) -> None:
        conn = _connect(connection, timeout)
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
                cur.fetchone()
        except psycopg2.Error as exc:
            raise DatabaseUnavailableError(
                f"Server at {connection} did not answer", diagnostic=str(exc).strip()
            ) from exc
        finally:
            conn.close()

    def query_data_directory(self, connection: DatabaseConnection, timeout: float) -> Path:
        """``SHOW data_directory`` on the live server (the directory can move)."""
        conn = _connect(connection, timeout)
        try:
            with conn.cursor() as cur:
                cur.execute("SHOW data_directory")
                row = cur.fetchone()
        except psycopg2.Error as exc:
            raise DatabaseUnavailableError(
                "Could not query data_directory", diagnostic=str(exc).strip()
            ) from exc
        finally:
            conn.close()

        value = (row[0] if row else "") or ""
        if not value.strip():
            raise DatabaseUnavailableError("Server returned an empty data_directory")
        logger.debug("data_directory of %s is %s", connection, value.strip())
        return Path(value.strip())


class PgDumpTool:
    """Logical backup through the ``pg_dump`` binary."""

    def __init__(self, binary: str = "pg_dump") -> None:
        self.binary = binary

    def build_command(self, connection: DatabaseConnection, destination: Path, fmt: str) -> list[str]:
        try:
            flag = PG_DUMP_FORMAT_FLAGS[fmt]
        except KeyError:
            raise ValueError(f"Unsupported pg_dump format: {fmt!r}") from None
        return [
            self.binary,
            "-U", connection.user,
            "-h", connection.host,
            "-p", str(connection.port),
            f"-F{flag}",
            "-f", str(destination),
            connection.dbname,
        ]

    def dump(
        self,
        connection: DatabaseConnection,
        destination: Path,
        fmt: str,
        timeout: float,
    ) -> None:
        command = self.build_command(connection, destination, fmt)
        env = {}
        if connection.password is not None:
            env["PGPASSWORD"] = connection.password.get_secret_value()
        run_command(command, timeout=timeout, env=env)
