"""Per-entity-type metadata: table, columns and their serializers, flush rank.

This is what a schema code generator emits for every table; the core only ever
reads it.
"""
import abc
import typing

import attr
import inflection

from entity_graph.errors import InvariantViolation

if typing.TYPE_CHECKING:
    from entity_graph.entity import Entity


Row = typing.Dict[str, typing.Any]


class Serde(abc.ABC):
    """Moves one column between an entity's field data and a database row."""

    column_name: str

    @abc.abstractmethod
    def set_on_row(self, data: typing.Dict[str, typing.Any], row: Row) -> None:
        pass

    @abc.abstractmethod
    def set_on_entity(self, data: typing.Dict[str, typing.Any], row: Row) -> None:
        pass

    @abc.abstractmethod
    def get_from_entity(self, entity: "Entity") -> typing.Any:
        pass


@attr.s(auto_attribs=True, frozen=True)
class IdSerde(Serde):
    column_name: str = "id"

    def set_on_row(self, data: typing.Dict[str, typing.Any], row: Row) -> None:
        # generated by the database on insert
        if data.get("id") is not None:
            row[self.column_name] = data["id"]

    def set_on_entity(self, data: typing.Dict[str, typing.Any], row: Row) -> None:
        data["id"] = row[self.column_name]

    def get_from_entity(self, entity: "Entity") -> typing.Any:
        return entity.id


@attr.s(auto_attribs=True, frozen=True)
class PrimitiveSerde(Serde):
    field_name: str
    column_name: str

    def set_on_row(self, data: typing.Dict[str, typing.Any], row: Row) -> None:
        row[self.column_name] = data.get(self.field_name)

    def set_on_entity(self, data: typing.Dict[str, typing.Any], row: Row) -> None:
        data[self.field_name] = row[self.column_name]

    def get_from_entity(self, entity: "Entity") -> typing.Any:
        return entity._orm.data.get(self.field_name)


@attr.s(auto_attribs=True, frozen=True)
class ForeignKeySerde(Serde):
    """The field holds a raw identity, the referenced entity or None."""

    field_name: str
    column_name: str

    def set_on_row(self, data: typing.Dict[str, typing.Any], row: Row) -> None:
        row[self.column_name] = self._identity(data.get(self.field_name))

    def set_on_entity(self, data: typing.Dict[str, typing.Any], row: Row) -> None:
        data[self.field_name] = row[self.column_name]

    def get_from_entity(self, entity: "Entity") -> typing.Any:
        return self._identity(entity._orm.data.get(self.field_name))

    def _identity(self, value: typing.Any) -> typing.Any:
        from entity_graph.entity import Entity

        if isinstance(value, Entity):
            if value.id is None:
                raise InvariantViolation(
                    f"{self.field_name} points to a {type(value).__name__} that has not been inserted yet"
                )
            return value.id
        return value


@attr.s(auto_attribs=True, frozen=True)
class ColumnMetadata:
    column_name: str
    db_type: str
    serde: Serde
    references: typing.Optional[str] = None
    unique: bool = False

    @property
    def is_identity(self) -> bool:
        return isinstance(self.serde, IdSerde)


def id_column(db_type: str = "int") -> ColumnMetadata:
    return ColumnMetadata("id", db_type, IdSerde())


def primitive_column(field_name: str, db_type: str, column_name: typing.Optional[str] = None) -> ColumnMetadata:
    column_name = column_name or inflection.underscore(field_name)
    return ColumnMetadata(column_name, db_type, PrimitiveSerde(field_name, column_name))


def foreign_key_column(
    field_name: str, references: str, db_type: str = "int", unique: bool = False
) -> ColumnMetadata:
    column_name = f"{inflection.underscore(field_name)}_id"
    return ColumnMetadata(column_name, db_type, ForeignKeySerde(field_name, column_name), references, unique)


def _default_table_name(metadata: "EntityMetadata") -> str:
    return inflection.pluralize(inflection.underscore(metadata.entity_type.__name__))


@attr.s(auto_attribs=True, frozen=True)
class EntityMetadata:
    entity_type: typing.Type["Entity"]
    columns: typing.Tuple[ColumnMetadata, ...] = attr.ib(converter=tuple)
    # flush rank: tables referenced by foreign keys get a lower one
    order: int = 0
    table_name: str = attr.Factory(_default_table_name, takes_self=True)

    @property
    def name(self) -> str:
        return self.entity_type.__name__

    @property
    def data_columns(self) -> typing.List[ColumnMetadata]:
        return [column for column in self.columns if not column.is_identity]
