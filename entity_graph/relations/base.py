import abc
import asyncio
import typing

from entity_graph.entity import Entity
from entity_graph.errors import InvariantViolation

if typing.TYPE_CHECKING:
    from entity_graph.entity_manager import EntityManager


class Relation(abc.ABC):
    """One side of a relationship, owned by a single field of a single entity.

    Both sides of a relationship keep each other in sync through `attach` and
    `detach`, which only touch in-memory state and never load anything.
    """

    def __init__(
        self,
        entity: Entity,
        field_name: str,
        other_type: typing.Union[str, typing.Type[Entity]],
        other_field_name: str,
    ) -> None:
        self.entity = entity
        self.field_name = field_name
        self.other_field_name = other_field_name
        self._other_type = other_type
        self._loading: typing.Optional[asyncio.Future] = None

    @property
    def em(self) -> "EntityManager":
        return self.entity._orm.em

    @property
    def other_type(self) -> typing.Type[Entity]:
        if isinstance(self._other_type, str):
            self._other_type = self.em.registry.resolve(self._other_type)
        return self._other_type

    @property
    @abc.abstractmethod
    def is_loaded(self) -> bool:
        pass

    @abc.abstractmethod
    async def load(self) -> typing.Any:
        pass

    @abc.abstractmethod
    def get(self) -> typing.Any:
        pass

    @abc.abstractmethod
    def attach(self, other: Entity) -> None:
        """`other` now points at our entity."""

    @abc.abstractmethod
    def detach(self, other: Entity) -> None:
        """`other` no longer points at our entity."""

    @abc.abstractmethod
    async def _fetch(self) -> None:
        pass

    def other_relation(self, other: Entity) -> "Relation":
        return other._orm.relations[self.other_field_name]

    async def _load_once(self) -> None:
        # concurrent callers share a single query
        if self._loading is None:
            self._loading = asyncio.ensure_future(self._fetch())
            self._loading.add_done_callback(self._loading_done)
        await asyncio.shield(self._loading)

    def _loading_done(self, future: asyncio.Future) -> None:
        if self._loading is future:
            self._loading = None

    def _check(self, other: Entity) -> None:
        if not isinstance(other, self.other_type):
            raise TypeError(f"{self!r} expects {self.other_type.__name__}, got {type(other).__name__}")
        if other._orm.em is not self.em:
            raise InvariantViolation(f"{other!r} belongs to another entity manager than {self.entity!r}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.entity!r}.{self.field_name})"
