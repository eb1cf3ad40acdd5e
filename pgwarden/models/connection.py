"""Database identity passed to the database collaborators."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, SecretStr


class DatabaseConnection(BaseModel):
    """Host, port, credentials and database name for one connection."""

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = 5432
    user: str
    dbname: str
    password: SecretStr | None = None

    def with_database(self, dbname: str) -> DatabaseConnection:
        """Return the same identity pointed at another database."""
        return self.model_copy(update={"dbname": dbname})

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.dbname}"
