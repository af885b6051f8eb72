from collections import namedtuple

import psycopg2
import pytest
import requests

from core.db import (
    ApiQueryConfig,
    ApiQueryConnection,
    PostgresConfig,
    PostgresConnection,
    QueryResult,
    SqlStatement,
    open_connection,
)
from core.db import provider
from core.errors import DatabaseConnectionError, QueryExecutionError

Column = namedtuple("Column", ["name", "type_code"])


class FakeCursor:
    def __init__(self, conn):
        self._conn = conn
        self.description = None
        self.statusmessage = None
        self.rowcount = -1
        self._rows = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self._conn.executed.append((sql, params))
        if sql == "select 1;":
            if self._conn.fail_health_check:
                raise psycopg2.OperationalError("server closed the connection")
            return
        if self._conn.fail_query:
            raise psycopg2.ProgrammingError('relation "nope" does not exist')
        self.description = [Column("address", 25), Column("chain", 25)]
        self._rows = [{"address": "0x1", "chain": "1"}, {"address": "0x2", "chain": "137"}]
        self.statusmessage = "SELECT 2"
        self.rowcount = 2

    def fetchall(self):
        return self._rows


class FakePgConnection:
    def __init__(self, fail_health_check=False, fail_query=False):
        self.executed = []
        self.closed = False
        self.autocommit = False
        self.fail_health_check = fail_health_check
        self.fail_query = fail_query

    def cursor(self, **kwargs):
        return FakeCursor(self)

    def close(self):
        self.closed = True


PG_CFG = PostgresConfig(host="db.example.com", port=5432, user="u", password="p", database="dapi")


@pytest.fixture
def fake_pg(monkeypatch):
    state = {"conn": FakePgConnection(), "kwargs": None}

    def _connect(**kwargs):
        state["kwargs"] = kwargs
        return state["conn"]

    monkeypatch.setattr("core.db.pg_client.psycopg2.connect", _connect)
    return state


def test_pg_connect_uses_tls_and_health_check(fake_pg):
    with PostgresConnection(PG_CFG) as conn:
        assert isinstance(conn, PostgresConnection)
    assert fake_pg["kwargs"]["sslmode"] == "verify-full"
    assert "sslrootcert" not in fake_pg["kwargs"]
    assert fake_pg["kwargs"]["dbname"] == "dapi"
    assert fake_pg["conn"].executed[0] == ("select 1;", None)
    assert fake_pg["conn"].closed


def test_pg_connect_passes_root_certificate(fake_pg):
    cfg = PostgresConfig(host="db", port=5432, user="u", password="p", database="dapi", sslrootcert="system")
    with PostgresConnection(cfg):
        pass
    assert fake_pg["kwargs"]["sslmode"] == "verify-full"
    assert fake_pg["kwargs"]["sslrootcert"] == "system"


def test_pg_execute_binds_parameters(fake_pg):
    statement = SqlStatement(text="... = '0x1'", sql="... = %(address)s", params={"address": "0x1"})
    with PostgresConnection(PG_CFG) as conn:
        result = conn.execute(statement)
    assert fake_pg["conn"].executed[-1] == ("... = %(address)s", {"address": "0x1"})
    assert result.command == "SELECT"
    assert result.row_count == 2
    assert [f.name for f in result.fields] == ["address", "chain"]
    assert result.rows[1] == {"address": "0x2", "chain": "137"}


def test_pg_custom_statement_sent_without_params(fake_pg):
    with PostgresConnection(PG_CFG) as conn:
        conn.execute(SqlStatement.raw("SELECT '100%';", custom=True))
    assert fake_pg["conn"].executed[-1] == ("SELECT '100%';", None)


def test_pg_connect_failure(monkeypatch):
    def _connect(**kwargs):
        raise psycopg2.OperationalError("could not connect to server")

    monkeypatch.setattr("core.db.pg_client.psycopg2.connect", _connect)
    with pytest.raises(DatabaseConnectionError):
        PostgresConnection(PG_CFG).connect()


def test_pg_health_check_failure_closes(fake_pg):
    fake_pg["conn"] = FakePgConnection(fail_health_check=True)
    with pytest.raises(DatabaseConnectionError):
        PostgresConnection(PG_CFG).connect()
    assert fake_pg["conn"].closed


def test_pg_query_failure_still_closes(fake_pg):
    fake_pg["conn"] = FakePgConnection(fail_query=True)
    with pytest.raises(QueryExecutionError):
        with open_connection(PG_CFG) as conn:
            conn.execute(SqlStatement.raw("SELECT * FROM nope;"))
    assert fake_pg["conn"].closed


def test_pg_execute_before_connect():
    with pytest.raises(DatabaseConnectionError):
        PostgresConnection(PG_CFG).execute(SqlStatement.raw("SELECT 1;"))


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=""):
        self._payload = payload
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    instances = []

    def __init__(self):
        self.calls = []
        self.closed = False
        self.response = FakeResponse({"data": []})
        FakeSession.instances.append(self)

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    def close(self):
        self.closed = True


API_CFG = ApiQueryConfig(
    query_url="https://query.example.com/sql",
    token_header="X-Token",
    token_env_var="TEST_QUERY_TOKEN",
    extra_body={"db": "dapi"},
)


@pytest.fixture
def fake_session(monkeypatch):
    FakeSession.instances = []
    monkeypatch.setenv("TEST_QUERY_TOKEN", "secret")
    monkeypatch.setattr("core.db.api_client.requests.Session", FakeSession)
    return FakeSession


def test_api_sends_literal_sql(fake_session):
    statement = SqlStatement(text="SELECT '0x1';", sql="SELECT %(a)s;", params={"a": "0x1"})
    with ApiQueryConnection(API_CFG) as conn:
        session = fake_session.instances[0]
        session.response = FakeResponse({"data": [{"address": "0x1", "chain": "1"}]})
        result = conn.execute(statement)
    call = session.calls[0]
    assert call["json"] == {"db": "dapi", "sql": "SELECT '0x1';"}
    assert call["headers"]["X-Token"] == "secret"
    assert result.rows == [{"address": "0x1", "chain": "1"}]
    assert [f.name for f in result.fields] == ["address", "chain"]
    assert session.closed


def test_api_columnar_payload(fake_session):
    with ApiQueryConnection(API_CFG) as conn:
        fake_session.instances[0].response = FakeResponse(
            {"data": {"columns": ["address", "totalfees"], "rows": [["0x1", "10"], ["0x2", "20"]]}}
        )
        result = conn.execute(SqlStatement.raw("SELECT 1;"))
    assert result.row_count == 2
    assert result.rows[1] == {"address": "0x2", "totalfees": "20"}


def test_api_http_error(fake_session):
    with pytest.raises(QueryExecutionError):
        with ApiQueryConnection(API_CFG) as conn:
            fake_session.instances[0].response = FakeResponse(status_code=500, text="syntax error")
            conn.execute(SqlStatement.raw("SELEC 1;"))
    assert fake_session.instances[0].closed


def test_api_network_error(fake_session):
    with pytest.raises(DatabaseConnectionError):
        with ApiQueryConnection(API_CFG) as conn:
            fake_session.instances[0].response = requests.ConnectionError("refused")
            conn.execute(SqlStatement.raw("SELECT 1;"))


def test_api_missing_token(monkeypatch):
    monkeypatch.delenv("TEST_QUERY_TOKEN", raising=False)
    with pytest.raises(DatabaseConnectionError):
        ApiQueryConnection(API_CFG).connect()


def test_open_connection_closes_on_error(monkeypatch):
    class Recorder:
        closed = False

        def connect(self):
            return self

        def execute(self, statement):
            raise QueryExecutionError("rejected")

        def close(self):
            Recorder.closed = True

    monkeypatch.setattr(provider, "create_connection", lambda cfg: Recorder())
    with pytest.raises(QueryExecutionError):
        with open_connection(PG_CFG) as conn:
            conn.execute(SqlStatement.raw("SELECT 1;"))
    assert Recorder.closed


def test_create_connection_dispatch():
    assert isinstance(provider.create_connection(PG_CFG), PostgresConnection)
    assert isinstance(provider.create_connection(API_CFG), ApiQueryConnection)
    with pytest.raises(TypeError):
        provider.create_connection(object())


def test_query_result_to_dict_empty():
    assert QueryResult().to_dict() == {"command": None, "rowCount": 0, "fields": [], "rows": []}
