"""In-memory stand-ins for the PostgreSQL server, gateway and fragmentation reader."""

from contextlib import contextmanager
from decimal import Decimal

from errors import EngineUnavailable, StorageFailure
from fragmentation import FragmentationReader


class FakeTableGateway:
    def __init__(self, fail_on=None):
        self.tables = {}
        self.widths = {}
        self.log = []
        self.lookups = []
        self.fail_on = fail_on
        self.prepared = 0

    def prepare(self, statement):
        self.prepared += 1
        return statement._replace(query=f"-- {statement.kind} {statement.table}".encode())

    def execute(self, statement):
        self._record(statement)

        if statement.kind == "create":
            if statement.table in self.tables:
                raise StorageFailure(f"relation {statement.table} already exists")
            self.tables[statement.table] = {}
        elif statement.kind == "drop":
            self.tables.pop(statement.table, None)
        elif statement.kind == "insert":
            rows = self._table(statement.table)
            width = self.widths[statement.table]
            params = statement.params
            for start in range(0, len(params), width):
                row = params[start:start + width]
                if row[0] in rows:
                    raise StorageFailure(f"duplicate key value {row[0]}")
                rows[row[0]] = row

    def fetch_one(self, statement, params=None):
        self._record(statement)
        if params is None:
            params = statement.params
        row = self._table(statement.table).get(params[0])
        self.lookups.append((params[0], row is not None))
        return row

    def _record(self, statement):
        self.log.append(statement.kind)
        if statement.kind == self.fail_on:
            raise StorageFailure(f"{statement.kind} rejected")

    def _table(self, name):
        try:
            return self.tables[name]
        except KeyError:
            raise StorageFailure(f"relation {name} does not exist") from None


class FakeFragmentationReader(FragmentationReader):
    """Reports 12.5 % for any non-empty table"""

    def __init__(self):
        self.refreshes = 0

    def refresh(self, gateway, profile):
        self.refreshes += 1

    def read(self, gateway, profile):
        return Decimal("12.5") if gateway.tables.get(profile.table_name) else Decimal(0)


class FakeServer:
    def __init__(self, profile, available=True, fail_on=None):
        self.available = available
        self.gateway = FakeTableGateway(fail_on=fail_on)
        self.gateway.widths[profile.table_name] = len(profile.columns)
        self.created = []
        self.dropped = []
        self.connections = 0

    def check_available(self):
        if not self.available:
            raise EngineUnavailable("server unreachable")

    def create_database(self, name, extensions=()):
        self.created.append(name)

    def drop_database(self, name):
        self.dropped.append(name)

    @contextmanager
    def connect(self, name):
        if name not in self.created:
            raise StorageFailure(f"database {name} does not exist")
        self.connections += 1
        yield self.gateway
