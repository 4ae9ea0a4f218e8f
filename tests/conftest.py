from types import SimpleNamespace

import pytest
from neo4j.exceptions import ClientError

CREDENTIALS = {
    "host": "localhost",
    "port": "7687",
    "username": "neo4j",
    "password": "secret",
    "database": "movies",
}


class FakeResult:
    def __init__(self, records):
        self._records = list(records)

    def __iter__(self):
        return iter(self._records)

    def consume(self):
        return None


class FakeTransaction:
    def __init__(self, session):
        self.session = session

    def run(self, query, parameters=None, **kwparameters):
        return self.session.run(query, parameters, **kwparameters)


class FakeSession:
    def __init__(self, backend, config):
        self.backend = backend
        self.config = config
        self.close_count = 0
        self.transactions = []

    def run(self, query, parameters=None, **kwparameters):
        self.backend.queries.append((query, dict(parameters or {}, **kwparameters)))
        if self.backend.query_error is not None:
            raise self.backend.query_error
        return FakeResult(self.backend.rows)

    def execute_read(self, work):
        self.transactions.append("read")
        return work(FakeTransaction(self))

    def execute_write(self, work):
        self.transactions.append("write")
        return work(FakeTransaction(self))

    def close(self):
        self.close_count += 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False


class FakeDriver:
    def __init__(self, backend, uri, auth, config):
        self.backend = backend
        self.uri = uri
        self.auth = auth
        self.config = config
        self.close_count = 0
        self.sessions = []

    def verify_connectivity(self):
        if self.backend.connect_error is not None:
            raise self.backend.connect_error

    def session(self, **config):
        session = FakeSession(self.backend, config)
        self.sessions.append(session)
        return session

    def close(self):
        self.close_count += 1


class FakeNeo4j:
    """Scriptable stand-in for a Neo4j server reached through GraphDatabase.driver."""

    def __init__(self):
        self.rows = []
        self.connect_error = None
        self.query_error = None
        self.queries = []
        self.drivers = []

    def driver(self, uri, auth=None, **config):
        driver = FakeDriver(self, uri, auth, config)
        self.drivers.append(driver)
        return driver

    @property
    def last_driver(self):
        return self.drivers[-1]

    @property
    def last_query(self):
        return self.queries[-1]


@pytest.fixture
def credentials():
    return dict(CREDENTIALS)


@pytest.fixture
def fake_neo4j(monkeypatch):
    backend = FakeNeo4j()
    monkeypatch.setattr("tools.connection.GraphDatabase", SimpleNamespace(driver=backend.driver))
    return backend


@pytest.fixture
def run_operation_on(fake_neo4j):
    """Run an operation function directly against a fresh fake session."""

    def run(operation, parameters):
        session = FakeSession(fake_neo4j, {})
        return operation(session, parameters), session

    return run


@pytest.fixture
def server_error():
    """Build a driver error carrying a server status code and message."""
    def build(message, code="", error_class=ClientError):
        error_type = type(error_class.__name__, (error_class,), {"code": code, "message": message})
        return error_type(message)

    return build
