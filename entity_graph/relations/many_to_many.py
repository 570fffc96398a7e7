import typing

from entity_graph.entity import Entity
from entity_graph.errors import NotLoaded
from entity_graph.relations.base import Relation


class ManyToManyCollection(Relation):
    """One side of a join table, i.e. `Book.tags` over `books_to_tags`.

    Adds and removes are applied to both sides in memory and recorded on the
    entity manager, which writes the join rows on flush.
    """

    def __init__(
        self,
        entity: Entity,
        field_name: str,
        other_type: typing.Union[str, typing.Type[Entity]],
        other_field_name: str,
        join_table_name: str,
        column_name: str,
        other_column_name: str,
    ) -> None:
        super().__init__(entity, field_name, other_type, other_field_name)
        self.join_table_name = join_table_name
        self.column_name = column_name
        self.other_column_name = other_column_name
        self._loaded: typing.Optional[typing.List[Entity]] = [] if entity.is_new else None
        self._added: typing.List[Entity] = []
        self._removed: typing.List[Entity] = []

    @property
    def is_loaded(self) -> bool:
        return self._loaded is not None

    async def load(self) -> typing.List[Entity]:
        if self._loaded is None:
            await self._load_once()
        return list(self._loaded)

    async def _fetch(self) -> None:
        rows = await self.em.fetch_rows_through(
            self.other_type, self.join_table_name, self.column_name, self.other_column_name, self.entity.id
        )
        loaded = list(self._added)
        for row in rows:
            other = self.em.hydrate(self.other_type, row)
            if other not in loaded and other not in self._removed:
                loaded.append(other)
        self._loaded = loaded
        self._added = []
        self._removed = []

    def get(self) -> typing.List[Entity]:
        if self._loaded is None:
            raise NotLoaded(f"{self!r} has not been loaded, call load() first")
        return list(self._loaded)

    def add(self, other: Entity) -> None:
        self._check(other)
        if self._loaded is not None and other in self._loaded:
            return
        self.attach(other)
        self.other_relation(other).attach(self.entity)
        self.em.join_rows(self.join_table_name).add(self._join_row(other))

    def remove(self, other: Entity) -> None:
        self._check(other)
        if self._loaded is not None and other not in self._loaded:
            return
        self.detach(other)
        self.other_relation(other).detach(self.entity)
        self.em.join_rows(self.join_table_name).remove(self._join_row(other))

    def attach(self, other: Entity) -> None:
        if self._loaded is not None:
            if other not in self._loaded:
                self._loaded.append(other)
            return
        if other in self._removed:
            self._removed.remove(other)
        if other not in self._added:
            self._added.append(other)

    def detach(self, other: Entity) -> None:
        if self._loaded is not None:
            if other in self._loaded:
                self._loaded.remove(other)
            return
        if other in self._added:
            self._added.remove(other)
        if other not in self._removed:
            self._removed.append(other)

    def _join_row(self, other: Entity) -> typing.Dict[str, Entity]:
        return {self.column_name: self.entity, self.other_column_name: other}

    def __len__(self) -> int:
        return len(self.get())

    def __iter__(self) -> typing.Iterator[Entity]:
        return iter(self.get())

    def __contains__(self, other: object) -> bool:
        return other in self.get()
