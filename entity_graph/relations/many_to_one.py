import typing

from entity_graph.entity import Entity
from entity_graph.errors import NotLoaded
from entity_graph.relations.base import Relation


def _identity_of(value: typing.Any) -> typing.Any:
    return value.id if isinstance(value, Entity) else value


class ManyToOneReference(Relation):
    """The foreign key side, i.e. `Book.author` for `books.author_id`.

    The field holds either the raw foreign identity (as hydrated from the row),
    the referenced entity, or None.
    """

    @property
    def _current(self) -> typing.Any:
        return self.entity._orm.data.get(self.field_name)

    @property
    def id(self) -> typing.Any:
        return _identity_of(self._current)

    @property
    def is_loaded(self) -> bool:
        return self._resolve_cached() or self._current is None or isinstance(self._current, Entity)

    async def load(self) -> typing.Optional[Entity]:
        if not self.is_loaded:
            await self._load_once()
        return self._current

    async def _fetch(self) -> None:
        identity = self._current
        other = await self.em.load(self.other_type, identity)
        # may have been re-pointed while we were waiting
        if self._current == identity:
            self.entity._orm.data[self.field_name] = other

    def get(self) -> typing.Optional[Entity]:
        if not self.is_loaded:
            raise NotLoaded(f"{self!r} has not been loaded, call load() first")
        return self._current

    def set(self, other: typing.Optional[Entity]) -> None:
        if other is not None:
            self._check(other)
            if self.references(other):
                self.entity._orm.data[self.field_name] = other
                self.other_relation(other).attach(self.entity)
                return
        elif self._current is None:
            return

        self._resolve_cached()
        previous = self._current
        if isinstance(previous, Entity):
            self.other_relation(previous).detach(self.entity)

        self.entity._orm.data[self.field_name] = other
        if other is None or other.is_new or _identity_of(previous) != other.id:
            self.entity._orm.dirty = True

        if other is not None:
            self.other_relation(other).attach(self.entity)

    def references(self, other: Entity) -> bool:
        current = self._current
        if isinstance(current, Entity) or current is None:
            return current is other
        return not other.is_new and current == other.id

    def attach(self, other: Entity) -> None:
        # the inverse side never drives a many-to-one; see OneToManyCollection.add
        self.set(other)

    def detach(self, other: Entity) -> None:
        if self.references(other):
            self.set(None)

    def _resolve_cached(self) -> bool:
        """Swaps a raw identity for the instance if the identity map already has it."""
        current = self._current
        if current is None or isinstance(current, Entity):
            return False
        other = self.em.get_if_loaded(self.other_type, current)
        if other is None:
            return False
        self.entity._orm.data[self.field_name] = other
        return True
