"""Turns the entities of a unit of work into batched INSERT/UPDATE statements.

Entity types are written in ascending flush rank (parents of foreign keys
first); every type gets at most one batched insert followed by one batched
update. Many-to-many join rows are written last, once every entity has an
identity.
"""
import contextlib
import logging
import typing

import attr
from sqlalchemy import Table, and_, bindparam, delete, insert, text, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection
from sqlalchemy.sql.expression import Insert, TextClause, Update

from entity_graph.entity import Entity
from entity_graph.errors import InvariantViolation, PersistenceFailure
from entity_graph.join_rows import JoinRowKey, PendingJoinRows
from entity_graph.metadata import EntityMetadata, Row
from entity_graph.storages.sqlalchemy.registry import SaRegistry

logger = logging.getLogger(__name__)


@attr.s(auto_attribs=True)
class Todo:
    metadata: EntityMetadata
    inserts: typing.List[Entity] = attr.Factory(list)
    updates: typing.List[Entity] = attr.Factory(list)


def sort_entities(entities: typing.Iterable[Entity]) -> typing.List[Todo]:
    """Scans `entities` for new/updated entities and arranges them per entity type in flush order."""
    todos: typing.Dict[type, Todo] = {}
    for entity in entities:
        if not entity.is_new and not entity.is_dirty:
            continue
        metadata = entity._orm.metadata
        todo = todos.get(metadata.entity_type)
        if todo is None:
            todo = todos[metadata.entity_type] = Todo(metadata)
        if entity.is_new:
            todo.inserts.append(entity)
        else:
            todo.updates.append(entity)
    return sorted(todos.values(), key=lambda todo: (todo.metadata.order, todo.metadata.table_name))


async def flush_entities(
    connection: AsyncConnection,
    registry: SaRegistry,
    entities: typing.Iterable[Entity],
    join_rows: typing.Iterable[PendingJoinRows] = (),
) -> None:
    todos = sort_entities(entities)
    for todo in todos:
        if todo.inserts:
            await batch_insert(connection, registry, todo.metadata, todo.inserts)
        if todo.updates:
            await batch_update(connection, registry, todo.metadata, todo.updates)
    for pending in join_rows:
        if pending:
            await flush_join_rows(connection, registry, pending)
    logger.info(
        "Flushed %d inserts and %d updates over %d entity types",
        sum(len(todo.inserts) for todo in todos),
        sum(len(todo.updates) for todo in todos),
        len(todos),
    )


async def batch_insert(
    connection: AsyncConnection, registry: SaRegistry, metadata: EntityMetadata, entities: typing.List[Entity]
) -> None:
    rows = [_row_image(metadata, entity) for entity in entities]
    table = registry.table_for(metadata.entity_type)
    statement = insert(table).returning(table.c.id, sort_by_parameter_order=True)
    with _batch(metadata.entity_type, metadata.order, "insert", table):
        result = await connection.execute(statement, rows)
    ids = result.scalars().all()
    if len(ids) != len(entities):
        raise InvariantViolation(f"Inserted {len(entities)} {metadata.name} rows but got {len(ids)} identities back")
    for entity, identity in zip(entities, ids):
        entity._orm.data["id"] = identity
        entity._orm.dirty = False
    logger.debug("Inserted %s %s", metadata.table_name, ids)


async def batch_update(
    connection: AsyncConnection, registry: SaRegistry, metadata: EntityMetadata, entities: typing.List[Entity]
) -> None:
    # columnar: one list of values per column, all in entity order
    bindings: typing.Dict[str, typing.List[typing.Any]] = {column.column_name: [] for column in metadata.columns}
    for entity in entities:
        for column in metadata.columns:
            bindings[column.column_name].append(column.serde.get_from_entity(entity))

    table = registry.table_for(metadata.entity_type)
    if connection.dialect.name == "postgresql":
        statement, parameters = _unnest_update(metadata), bindings
    else:
        statement, parameters = _executemany_update(table, metadata), _rows_from_columns(bindings)
    with _batch(metadata.entity_type, metadata.order, "update", table):
        await connection.execute(statement, parameters)
    for entity in entities:
        entity._orm.dirty = False
    logger.debug("Updated %s %s", metadata.table_name, bindings["id"])


async def flush_join_rows(connection: AsyncConnection, registry: SaRegistry, pending: PendingJoinRows) -> None:
    table = registry.join_table(pending.table_name)
    rank = registry.max_order + 1
    if pending.added:
        rows = [_join_row(key) for key in pending.added]
        with _batch(None, rank, "insert", table):
            await connection.execute(_insert_ignoring_duplicates(connection.dialect.name, table), rows)
    if pending.removed:
        rows = [_join_row(key) for key in pending.removed]
        names = list(rows[0])
        statement = delete(table).where(and_(*(table.c[name] == bindparam(f"b_{name}") for name in names)))
        parameters = [{f"b_{name}": row[name] for name in names} for row in rows]
        with _batch(None, rank, "delete", table):
            await connection.execute(statement, parameters)
    logger.debug("Wrote %s: %d added, %d removed", pending.table_name, len(pending.added), len(pending.removed))
    pending.clear()


def _row_image(metadata: EntityMetadata, entity: Entity) -> Row:
    row: Row = {}
    for column in metadata.data_columns:
        column.serde.set_on_row(entity._orm.data, row)
    return row


def _rows_from_columns(bindings: typing.Dict[str, typing.List[typing.Any]]) -> typing.List[Row]:
    names = list(bindings)
    return [{f"b_{name}": value for name, value in zip(names, values)} for values in zip(*bindings.values())]


def _executemany_update(table: Table, metadata: EntityMetadata) -> Update:
    return (
        update(table)
        .where(table.c.id == bindparam("b_id"))
        .values({column.column_name: bindparam(f"b_{column.column_name}") for column in metadata.data_columns})
    )


def _unnest_update(metadata: EntityMetadata) -> TextClause:
    # a single set-based statement, one array parameter per column
    table_name = metadata.table_name
    assignments = ", ".join(f"{column.column_name} = data.{column.column_name}" for column in metadata.data_columns)
    arrays = ", ".join(
        f"unnest(CAST(:{column.column_name} AS {column.db_type}[])) AS {column.column_name}"
        for column in metadata.columns
    )
    return text(f"UPDATE {table_name} SET {assignments} FROM (SELECT {arrays}) AS data WHERE {table_name}.id = data.id")


def _insert_ignoring_duplicates(dialect_name: str, table: Table) -> Insert:
    if dialect_name == "postgresql":
        return postgresql.insert(table).on_conflict_do_nothing()
    if dialect_name == "sqlite":
        return sqlite.insert(table).on_conflict_do_nothing()
    return insert(table)


def _join_row(key: JoinRowKey) -> Row:
    row = {}
    for column_name, entity in key:
        if entity.id is None:
            raise InvariantViolation(f"{entity!r} has no identity, can not write {column_name}")
        row[column_name] = entity.id
    return row


@contextlib.contextmanager
def _batch(
    entity_type: typing.Optional[type], rank: int, operation: str, table: Table
) -> typing.Generator[None, None, None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Failed to %s into %s (rank %s): %s", operation, table.name, rank, e)
        raise PersistenceFailure(entity_type, rank, operation, table.name) from e
