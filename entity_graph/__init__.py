from entity_graph.entity import Entity
from entity_graph.entity_manager import EntityManager
from entity_graph.errors import (
    EntityGraphError,
    EntityNotFound,
    InvariantViolation,
    NotLoaded,
    PersistenceFailure,
    UnknownEntity,
)
from entity_graph.fields import Field, ManyToMany, ManyToOne, OneToMany, OneToOne
from entity_graph.metadata import (
    ColumnMetadata,
    EntityMetadata,
    ForeignKeySerde,
    IdSerde,
    PrimitiveSerde,
    foreign_key_column,
    id_column,
    primitive_column,
)
from entity_graph.repository import ReadOnlyRepository, Repository
from entity_graph.storages.sqlalchemy import SaRegistry

__all__ = [
    "ColumnMetadata",
    "Entity",
    "EntityGraphError",
    "EntityManager",
    "EntityMetadata",
    "EntityNotFound",
    "Field",
    "ForeignKeySerde",
    "IdSerde",
    "InvariantViolation",
    "ManyToMany",
    "ManyToOne",
    "NotLoaded",
    "OneToMany",
    "OneToOne",
    "PersistenceFailure",
    "PrimitiveSerde",
    "ReadOnlyRepository",
    "Repository",
    "SaRegistry",
    "UnknownEntity",
    "foreign_key_column",
    "id_column",
    "primitive_column",
]
