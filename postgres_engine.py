from contextlib import contextmanager
from typing import Iterable, Iterator, Optional, Tuple

import psycopg
from psycopg import sql

from errors import EngineUnavailable, StorageFailure
from schema_profiles import Statement


class PostgresTableGateway:
    """Executes benchmark statements on one autocommit connection.

    Every statement runs in its own implicit transaction, so a rejected
    statement never leaves the connection in an aborted state and the
    table can still be dropped afterwards.
    """

    def __init__(self, conn: psycopg.Connection):
        self.conn = conn
        self._cursor = conn.cursor()

    def prepare(self, statement: Statement) -> Statement:
        """Render a composed query to bytes so ``execute`` only does the round trip."""
        if isinstance(statement.query, sql.Composable):
            return statement._replace(query=statement.query.as_bytes(self.conn))
        return statement

    def execute(self, statement: Statement):
        try:
            self._cursor.execute(statement.query, statement.params or None)
        except psycopg.Error as e:
            raise StorageFailure(
                f"{statement.kind} on {statement.table} failed: {e}"
            ) from e

    def fetch_one(self, statement: Statement, params: Optional[Tuple] = None):
        """Run a query and return its first row (or None)."""
        if params is None:
            params = statement.params
        try:
            self._cursor.execute(statement.query, params or None)
            return self._cursor.fetchone()
        except psycopg.Error as e:
            raise StorageFailure(
                f"{statement.kind} on {statement.table} failed: {e}"
            ) from e

    def close(self):
        self._cursor.close()


class PostgresServer:
    """Server-level operations: reachability, database lifecycle, connections"""

    def __init__(self, conn_string: str, connect_timeout: int = 5):
        self.conn_string = conn_string
        self.connect_timeout = connect_timeout

    def _connect(self, dbname: Optional[str] = None) -> psycopg.Connection:
        kwargs = {"autocommit": True, "connect_timeout": self.connect_timeout}
        if dbname:
            kwargs["dbname"] = dbname
        return psycopg.connect(self.conn_string, **kwargs)

    def check_available(self):
        try:
            with self._connect() as conn:
                conn.execute("SELECT 1")
        except psycopg.Error as e:
            raise EngineUnavailable(f"PostgreSQL is not available: {e}") from e

    def create_database(self, name: str, extensions: Iterable[str] = ()):
        try:
            with self._connect() as conn:
                conn.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(name)))

            extensions = list(extensions)
            if extensions:
                with self._connect(name) as conn:
                    for extension in extensions:
                        conn.execute(
                            sql.SQL("CREATE EXTENSION IF NOT EXISTS {}").format(
                                sql.Identifier(extension)
                            )
                        )
        except psycopg.Error as e:
            raise StorageFailure(f"Could not create database {name}: {e}") from e

    def drop_database(self, name: str):
        # FORCE terminates lingering sessions (PostgreSQL 13+)
        try:
            with self._connect() as conn:
                conn.execute(
                    sql.SQL("DROP DATABASE IF EXISTS {} WITH (FORCE)").format(
                        sql.Identifier(name)
                    )
                )
        except psycopg.Error as e:
            raise StorageFailure(f"Could not drop database {name}: {e}") from e

    @contextmanager
    def connect(self, name: str) -> Iterator[PostgresTableGateway]:
        try:
            conn = self._connect(name)
        except psycopg.Error as e:
            raise StorageFailure(f"Could not connect to database {name}: {e}") from e

        gateway = PostgresTableGateway(conn)
        try:
            yield gateway
        finally:
            gateway.close()
            conn.close()
