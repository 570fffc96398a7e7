import abc
import typing

import attr

from entity_graph.metadata import EntityMetadata

if typing.TYPE_CHECKING:
    from entity_graph.entity_manager import EntityManager
    from entity_graph.relations.base import Relation


class FieldDescriptor(abc.ABC):
    name: str = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def relation(self, entity: "Entity") -> typing.Optional["Relation"]:
        return None

    def assign(self, entity: "Entity", value: typing.Any) -> None:
        self.__set__(entity, value)

    @abc.abstractmethod
    def __get__(self, entity: typing.Optional["Entity"], owner: typing.Optional[type] = None) -> typing.Any:
        pass

    @abc.abstractmethod
    def __set__(self, entity: "Entity", value: typing.Any) -> None:
        pass


@attr.s(auto_attribs=True)
class EntityState:
    em: "EntityManager" = attr.ib(repr=False)
    metadata: EntityMetadata = attr.ib(repr=False)
    data: typing.Dict[str, typing.Any] = attr.Factory(dict)
    dirty: bool = False
    relations: typing.Dict[str, "Relation"] = attr.ib(factory=dict, repr=False)

    def set_field(self, name: str, value: typing.Any) -> None:
        if name in self.data and self.data[name] == value:
            return
        self.data[name] = value
        self.dirty = True


class EntityMeta(abc.ABCMeta):
    def __new__(mcs, name: str, bases: tuple, namespace: dict):
        cls = super().__new__(mcs, name, bases, namespace)
        fields: typing.Dict[str, FieldDescriptor] = {}
        for base in reversed(cls.__mro__[1:]):
            fields.update(getattr(base, "_fields", {}))
        fields.update((key, value) for key, value in namespace.items() if isinstance(value, FieldDescriptor))
        if "id" in fields:
            raise TypeError(f"{name}.id is managed by the entity manager and can not be declared")
        cls._fields = fields
        return cls


class Entity(metaclass=EntityMeta):
    """A row of a table, owned by exactly one EntityManager.

    Use `EntityManager.create` for new entities and `EntityManager.load` for
    persisted ones.
    """

    _fields: typing.Dict[str, FieldDescriptor]
    _orm: EntityState

    def __init__(self, em: "EntityManager", **fields: typing.Any) -> None:
        self._orm = EntityState(em, em.registry.metadata_for(type(self)), dirty=True)
        unknown = [name for name in fields if name not in self._fields]
        if unknown:
            raise AttributeError(f"{type(self).__name__} has no field {', '.join(unknown)}")
        self._attach_relations()
        self.set(**fields)
        # a failed create leaves nothing behind to flush
        em.register(self)

    @classmethod
    def from_row(cls, em: "EntityManager", row: typing.Mapping[str, typing.Any]) -> "Entity":
        entity = cls.__new__(cls)
        entity._orm = EntityState(em, em.registry.metadata_for(cls))
        for column in entity._orm.metadata.columns:
            column.serde.set_on_entity(entity._orm.data, row)
        entity._attach_relations()
        return entity

    def _attach_relations(self) -> None:
        for name, field in self._fields.items():
            relation = field.relation(self)
            if relation is not None:
                self._orm.relations[name] = relation

    @property
    def id(self) -> typing.Any:
        return self._orm.data.get("id")

    @property
    def is_new(self) -> bool:
        return self.id is None

    @property
    def is_dirty(self) -> bool:
        return self._orm.dirty

    def set(self, **fields: typing.Any) -> None:
        for name, value in fields.items():
            try:
                field = self._fields[name]
            except KeyError:
                raise AttributeError(f"{type(self).__name__} has no field {name}") from None
            field.assign(self, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}#{'new' if self.is_new else self.id}"
