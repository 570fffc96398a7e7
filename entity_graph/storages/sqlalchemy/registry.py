import typing

import attr
from sqlalchemy import Column, ForeignKey, Integer, MetaData, Table, UniqueConstraint

from entity_graph.entity import Entity
from entity_graph.errors import UnknownEntity
from entity_graph.fields import ManyToMany
from entity_graph.metadata import EntityMetadata
from entity_graph.registry import Registry
from entity_graph.storages.sqlalchemy import native_type_to_column


@attr.s(auto_attribs=True)
class SaRegistry(Registry):
    sa_metadata: MetaData = attr.Factory(MetaData)
    tables: typing.Dict[typing.Type[Entity], Table] = attr.Factory(dict)
    join_tables: typing.Dict[str, Table] = attr.Factory(dict)

    def register(self, *metadata: EntityMetadata) -> None:
        super().register(*metadata)
        for entity_metadata in metadata:
            self.tables[entity_metadata.entity_type] = self._build_table(entity_metadata)
            for field in entity_metadata.entity_type._fields.values():
                if isinstance(field, ManyToMany) and field.join_table_name not in self.join_tables:
                    self.join_tables[field.join_table_name] = self._build_join_table(field)

    def table_for(self, entity_type: typing.Type[Entity]) -> Table:
        try:
            return self.tables[entity_type]
        except KeyError:
            raise UnknownEntity(f"{entity_type.__name__} is not registered") from None

    def join_table(self, name: str) -> Table:
        try:
            return self.join_tables[name]
        except KeyError:
            raise UnknownEntity(f"No many-to-many relation uses join table {name}") from None

    def _build_table(self, metadata: EntityMetadata) -> Table:
        columns = []
        for column in metadata.columns:
            constraints = [ForeignKey(f"{column.references}.id")] if column.references else []
            columns.append(
                Column(
                    column.column_name,
                    native_type_to_column.convert(column.db_type),
                    *constraints,
                    primary_key=column.is_identity,
                    unique=column.unique or None,
                )
            )
        return Table(metadata.table_name, self.sa_metadata, *columns)

    def _build_join_table(self, field: ManyToMany) -> Table:
        return Table(
            field.join_table_name,
            self.sa_metadata,
            Column("id", Integer, primary_key=True),
            Column(field.column_name, Integer, nullable=False),
            Column(field.other_column_name, Integer, nullable=False),
            UniqueConstraint(field.column_name, field.other_column_name),
        )
