"""Field declarations for entity classes, as emitted by the schema code generator."""
import typing

import inflection

from entity_graph.entity import Entity, FieldDescriptor
from entity_graph.relations import (
    ManyToManyCollection,
    ManyToOneReference,
    OneToManyCollection,
    OneToOneReference,
    Relation,
)

EntityRef = typing.Union[str, typing.Type[Entity]]


def _foreign_key_column(field_name: str) -> str:
    return f"{inflection.underscore(field_name)}_id"


class Field(FieldDescriptor):
    """A plain column."""

    def __get__(self, entity: typing.Optional[Entity], owner: typing.Optional[type] = None) -> typing.Any:
        if entity is None:
            return self
        return entity._orm.data.get(self.name)

    def __set__(self, entity: Entity, value: typing.Any) -> None:
        entity._orm.set_field(self.name, value)


class RelationField(FieldDescriptor):
    def __init__(self, other: EntityRef, other_field_name: str) -> None:
        self.other = other
        self.other_field_name = other_field_name

    def __get__(self, entity: typing.Optional[Entity], owner: typing.Optional[type] = None) -> typing.Any:
        if entity is None:
            return self
        return entity._orm.relations[self.name]

    def __set__(self, entity: Entity, value: typing.Any) -> None:
        self.__get__(entity).set(value)


class ManyToOne(RelationField):
    def relation(self, entity: Entity) -> Relation:
        return ManyToOneReference(entity, self.name, self.other, self.other_field_name)


class OneToOne(RelationField):
    def __init__(self, other: EntityRef, other_field_name: str, other_column_name: typing.Optional[str] = None) -> None:
        super().__init__(other, other_field_name)
        self.other_column_name = other_column_name or _foreign_key_column(other_field_name)

    def relation(self, entity: Entity) -> Relation:
        return OneToOneReference(entity, self.name, self.other, self.other_field_name, self.other_column_name)


class CollectionField(RelationField):
    def __set__(self, entity: Entity, value: typing.Any) -> None:
        raise AttributeError(f"{type(entity).__name__}.{self.name} is a collection, use add() and remove()")

    def assign(self, entity: Entity, value: typing.Iterable[Entity]) -> None:
        collection = self.__get__(entity)
        for other in value:
            collection.add(other)


class OneToMany(CollectionField):
    def __init__(self, other: EntityRef, other_field_name: str, other_column_name: typing.Optional[str] = None) -> None:
        super().__init__(other, other_field_name)
        self.other_column_name = other_column_name or _foreign_key_column(other_field_name)

    def relation(self, entity: Entity) -> Relation:
        return OneToManyCollection(entity, self.name, self.other, self.other_field_name, self.other_column_name)


class ManyToMany(CollectionField):
    def __init__(
        self, other: EntityRef, other_field_name: str, join_table_name: str, column_name: str, other_column_name: str
    ) -> None:
        super().__init__(other, other_field_name)
        self.join_table_name = join_table_name
        self.column_name = column_name
        self.other_column_name = other_column_name

    def relation(self, entity: Entity) -> Relation:
        return ManyToManyCollection(
            entity,
            self.name,
            self.other,
            self.other_field_name,
            self.join_table_name,
            self.column_name,
            self.other_column_name,
        )
