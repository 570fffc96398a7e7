import typing

from entity_graph.entity import Entity
from entity_graph.errors import NotLoaded
from entity_graph.relations.base import Relation


class OneToOneReference(Relation):
    """The inverse of a unique many-to-one, i.e. `Author.image` for a unique `images.author_id`."""

    def __init__(
        self,
        entity: Entity,
        field_name: str,
        other_type: typing.Union[str, typing.Type[Entity]],
        other_field_name: str,
        other_column_name: str,
    ) -> None:
        super().__init__(entity, field_name, other_type, other_field_name)
        self.other_column_name = other_column_name
        self._is_loaded = entity.is_new
        self._other: typing.Optional[Entity] = None
        # attached before being loaded; wins over whatever the database holds
        self._pending: typing.Optional[Entity] = None

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    async def load(self) -> typing.Optional[Entity]:
        if not self._is_loaded:
            await self._load_once()
        return self._other

    async def _fetch(self) -> None:
        rows = await self.em.fetch_rows(self.other_type, self.other_column_name, self.entity.id)
        candidates = [self.em.hydrate(self.other_type, row) for row in rows]
        if self._pending is not None:
            self._other = self._pending
        else:
            self._other = next(
                (other for other in candidates if self.other_relation(other).references(self.entity)), None
            )
        self._pending = None
        self._is_loaded = True
        for other in candidates:
            if other is not self._other and self.other_relation(other).references(self.entity):
                self.other_relation(other).set(None)

    def get(self) -> typing.Optional[Entity]:
        if not self._is_loaded:
            raise NotLoaded(f"{self!r} has not been loaded, call load() first")
        return self._other

    def set(self, other: typing.Optional[Entity]) -> None:
        if other is None:
            current = self.get()
            if current is not None:
                self.other_relation(current).set(None)
            return
        self._check(other)
        self.other_relation(other).set(self.entity)

    def attach(self, other: Entity) -> None:
        if self._is_loaded:
            previous, self._other = self._other, other
        else:
            previous, self._pending = self._pending, other
        # only one row may point at us
        if previous is not None and previous is not other:
            self.other_relation(previous).set(None)

    def detach(self, other: Entity) -> None:
        if self._other is other:
            self._other = None
        if self._pending is other:
            self._pending = None
