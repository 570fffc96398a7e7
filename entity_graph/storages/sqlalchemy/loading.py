import typing

from sqlalchemy import Table, select
from sqlalchemy.ext.asyncio import AsyncConnection

from entity_graph.metadata import Row


async def select_by_ids(connection: AsyncConnection, table: Table, identities: typing.Sequence[typing.Any]) -> typing.List[Row]:
    statement = select(table).where(table.c.id.in_(identities)).order_by(table.c.id)
    result = await connection.execute(statement)
    return [dict(row._mapping) for row in result]


async def select_by_column(connection: AsyncConnection, table: Table, column_name: str, value: typing.Any) -> typing.List[Row]:
    statement = select(table).where(table.c[column_name] == value).order_by(table.c.id)
    result = await connection.execute(statement)
    return [dict(row._mapping) for row in result]


async def select_through(
    connection: AsyncConnection,
    table: Table,
    join_table: Table,
    column_name: str,
    other_column_name: str,
    value: typing.Any,
) -> typing.List[Row]:
    statement = (
        select(table)
        .join(join_table, join_table.c[other_column_name] == table.c.id)
        .where(join_table.c[column_name] == value)
        .order_by(join_table.c.id)
    )
    result = await connection.execute(statement)
    return [dict(row._mapping) for row in result]
