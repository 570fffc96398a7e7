import typing

from entity_graph.entity import Entity
from entity_graph.entity_manager import EntityManager


EntityType = typing.TypeVar("EntityType", bound=Entity)


class ReadOnlyRepository(typing.Generic[EntityType]):
    """Typed access to one entity type of a unit of work.

    Subclass with the entity type as argument, e.g.
    `class AuthorRepo(Repository[Author]): ...`.
    """

    entity: typing.Type[EntityType]

    def __init_subclass__(cls, **kwargs: typing.Any) -> None:
        super().__init_subclass__(**kwargs)
        for base in cls.__dict__.get("__orig_bases__", ()):
            origin = typing.get_origin(base)
            if isinstance(origin, type) and issubclass(origin, ReadOnlyRepository):
                (entity_type,) = typing.get_args(base)
                if not isinstance(entity_type, typing.TypeVar):
                    cls.entity = entity_type

    def __init__(self, em: EntityManager) -> None:
        assert getattr(self, "entity", None), f"{type(self).__name__} must be parametrized with an entity type"
        # fail early for entity types the unit of work does not know
        em.registry.metadata_for(self.entity)
        self._em = em

    async def get(self, identity: typing.Any) -> EntityType:
        return await self._em.load(self.entity, identity)

    async def get_many(self, identities: typing.Iterable[typing.Any]) -> typing.List[EntityType]:
        return await self._em.load_all(self.entity, identities)


class Repository(ReadOnlyRepository[EntityType]):
    def create(self, **fields: typing.Any) -> EntityType:
        return self._em.create(self.entity, **fields)

    async def flush(self) -> None:
        await self._em.flush()
