import typing

import pytest
from _pytest.config.argparsing import Parser
from _pytest.fixtures import SubRequest
from sqlalchemy import Delete, Insert, Select, TextClause, Update, insert, select
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from entity_graph import EntityManager, SaRegistry
from entity_graph.tests.domain import build_registry


def pytest_addoption(parser: Parser) -> None:
    parser.addoption("--sqlalchemy-url", action="store", default=None)


class RecordingConnection:
    """Passes statements through to `connection`, remembering each of them."""

    def __init__(self, connection: AsyncConnection) -> None:
        self.connection = connection
        self.statements: typing.List[typing.Tuple[typing.Any, typing.Any]] = []

    @property
    def dialect(self):
        return self.connection.dialect

    async def execute(self, statement: typing.Any, parameters: typing.Any = None) -> typing.Any:
        self.statements.append((statement, parameters))
        return await self.connection.execute(statement, parameters)

    def reads(self) -> typing.List[Select]:
        return [statement for statement, _ in self.statements if isinstance(statement, Select)]

    def writes(self) -> typing.List[typing.Tuple[str, str, typing.Any]]:
        """(operation, table name, parameters) of every write, in execution order."""
        writes = []
        for statement, parameters in self.statements:
            if isinstance(statement, Insert):
                writes.append(("insert", statement.table.name, parameters))
            elif isinstance(statement, Update):
                writes.append(("update", statement.table.name, parameters))
            elif isinstance(statement, Delete):
                writes.append(("delete", statement.table.name, parameters))
            elif isinstance(statement, TextClause):
                # UPDATE <table> SET ...
                writes.append(("update", str(statement).split()[1], parameters))
        return writes

    def reset(self) -> None:
        self.statements.clear()


@pytest.fixture()
def registry() -> SaRegistry:
    return build_registry()


@pytest.fixture()
async def engine(request: SubRequest, tmp_path) -> typing.AsyncGenerator[AsyncEngine, None]:
    connection_url = request.config.getoption("--sqlalchemy-url") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = create_async_engine(connection_url)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def connection(engine: AsyncEngine, registry: SaRegistry) -> typing.AsyncGenerator[RecordingConnection, None]:
    async with engine.connect() as connection:
        await connection.run_sync(registry.sa_metadata.drop_all)
        await connection.run_sync(registry.sa_metadata.create_all)
        await connection.commit()
        yield RecordingConnection(connection)
        await connection.rollback()
        await connection.run_sync(registry.sa_metadata.drop_all)
        await connection.commit()


@pytest.fixture()
def em(connection: RecordingConnection, registry: SaRegistry) -> EntityManager:
    return EntityManager(connection, registry)


@pytest.fixture()
def memory_em(registry: SaRegistry) -> EntityManager:
    """For tests that never touch the database."""
    return EntityManager(None, registry)


@pytest.fixture()
def seed(connection: RecordingConnection, registry: SaRegistry):
    async def insert_rows(entity_type_or_table: typing.Any, rows: typing.List[dict]) -> None:
        if isinstance(entity_type_or_table, str):
            table = registry.join_table(entity_type_or_table)
        else:
            table = registry.table_for(entity_type_or_table)
        await connection.connection.execute(insert(table), rows)

    return insert_rows


@pytest.fixture()
def fetch_rows(connection: RecordingConnection, registry: SaRegistry):
    async def fetch(entity_type_or_table: typing.Any) -> typing.List[dict]:
        if isinstance(entity_type_or_table, str):
            table = registry.join_table(entity_type_or_table)
        else:
            table = registry.table_for(entity_type_or_table)
        result = await connection.connection.execute(select(table).order_by(table.c.id))
        return [dict(row._mapping) for row in result]

    return fetch
