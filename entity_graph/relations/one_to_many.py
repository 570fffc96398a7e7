import typing

from entity_graph.entity import Entity
from entity_graph.errors import NotLoaded
from entity_graph.relations.base import Relation


class OneToManyCollection(Relation):
    """The inverse of a many-to-one, i.e. `Author.books` for `books.author_id`.

    Until loaded only the entities added in memory are known; they are merged in
    front of the persisted ones when the collection is loaded.
    """

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
        # nothing can point at an entity that has not been inserted
        self._loaded: typing.Optional[typing.List[Entity]] = [] if entity.is_new else None
        self._added: typing.List[Entity] = []

    @property
    def is_loaded(self) -> bool:
        return self._loaded is not None

    async def load(self) -> typing.List[Entity]:
        if self._loaded is None:
            await self._load_once()
        return list(self._loaded)

    async def _fetch(self) -> None:
        rows = await self.em.fetch_rows(self.other_type, self.other_column_name, self.entity.id)
        loaded = list(self._added)
        for row in rows:
            other = self.em.hydrate(self.other_type, row)
            # the row may be stale if the reference was re-pointed in memory
            if other not in loaded and self.other_relation(other).references(self.entity):
                loaded.append(other)
        self._loaded = loaded
        self._added = []

    def get(self) -> typing.List[Entity]:
        if self._loaded is None:
            raise NotLoaded(f"{self!r} has not been loaded, call load() first")
        return list(self._loaded)

    def add(self, other: Entity) -> None:
        self._check(other)
        self.other_relation(other).set(self.entity)
        self.attach(other)

    def remove(self, other: Entity) -> None:
        self._check(other)
        reference = self.other_relation(other)
        if reference.references(self.entity):
            reference.set(None)
        self.remove_if_loaded(other)

    def remove_if_loaded(self, other: Entity) -> None:
        if self._loaded is not None and other in self._loaded:
            self._loaded.remove(other)
        if other in self._added:
            self._added.remove(other)

    def attach(self, other: Entity) -> None:
        members = self._loaded if self._loaded is not None else self._added
        if other not in members:
            members.append(other)

    def detach(self, other: Entity) -> None:
        self.remove_if_loaded(other)

    def __len__(self) -> int:
        return len(self.get())

    def __iter__(self) -> typing.Iterator[Entity]:
        return iter(self.get())

    def __contains__(self, other: object) -> bool:
        return other in self.get()
