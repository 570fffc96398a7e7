import asyncio
import logging
import typing

from sqlalchemy.ext.asyncio import AsyncConnection

from entity_graph.entity import Entity
from entity_graph.errors import EntityNotFound
from entity_graph.join_rows import PendingJoinRows
from entity_graph.metadata import Row
from entity_graph.storages.sqlalchemy import loading, persister
from entity_graph.storages.sqlalchemy.registry import SaRegistry

logger = logging.getLogger(__name__)

EntityType = typing.TypeVar("EntityType", bound=Entity)
IdentityKey = typing.Tuple[typing.Type[Entity], typing.Any]


class EntityManager:
    """A unit of work: one instance per row, writes deferred until `flush`.

    Every statement of the scope goes through `connection`; committing or
    rolling back its transaction is up to the caller.
    """

    def __init__(self, connection: AsyncConnection, registry: SaRegistry) -> None:
        self._connection = connection
        self.registry = registry
        self._identity_map: typing.Dict[IdentityKey, Entity] = {}
        self._new: typing.List[Entity] = []
        self._loading: typing.Dict[IdentityKey, asyncio.Future] = {}
        self._join_rows: typing.Dict[str, PendingJoinRows] = {}
        # one statement at a time on the connection
        self._lock = asyncio.Lock()

    @property
    def entities(self) -> typing.List[Entity]:
        return [*self._identity_map.values(), *self._new]

    def create(self, entity_type: typing.Type[EntityType], **fields: typing.Any) -> EntityType:
        return entity_type(self, **fields)

    def register(self, entity: Entity) -> None:
        """Tracks a newly created entity until it gets an identity on flush."""
        self._new.append(entity)

    def get_if_loaded(self, entity_type: typing.Type[EntityType], identity: typing.Any) -> typing.Optional[EntityType]:
        return self._identity_map.get((entity_type, identity))

    async def load(self, entity_type: typing.Type[EntityType], identity: typing.Any) -> EntityType:
        entities = await self.load_all(entity_type, [identity])
        return entities[0]

    async def load_all(
        self, entity_type: typing.Type[EntityType], identities: typing.Iterable[typing.Any]
    ) -> typing.List[EntityType]:
        identities = list(identities)
        waiting: typing.Dict[typing.Any, asyncio.Future] = {}
        missing = []
        for identity in dict.fromkeys(identities):
            key = (entity_type, identity)
            if key in self._identity_map:
                continue
            if key in self._loading:
                waiting[identity] = self._loading[key]
            else:
                missing.append(identity)

        if missing:
            waiting.update(await self._fetch(entity_type, missing))
        for future in waiting.values():
            await asyncio.shield(future)
        return [self._identity_map[(entity_type, identity)] for identity in identities]

    async def _fetch(
        self, entity_type: typing.Type[Entity], identities: typing.List[typing.Any]
    ) -> typing.Dict[typing.Any, asyncio.Future]:
        loop = asyncio.get_running_loop()
        futures = {identity: loop.create_future() for identity in identities}
        for identity, future in futures.items():
            self._loading[(entity_type, identity)] = future
        try:
            table = self.registry.table_for(entity_type)
            logger.debug("Loading %s %s", entity_type.__name__, identities)
            async with self._lock:
                rows = await loading.select_by_ids(self._connection, table, identities)
            for row in rows:
                # the driver may hand back the identity as another type than asked for
                future = futures.get(row["id"])
                if future is not None:
                    future.set_result(self.hydrate(entity_type, row))
            for identity, future in futures.items():
                if not future.done():
                    future.set_exception(EntityNotFound(entity_type, identity))
                    future.exception()
        except BaseException as e:
            for future in futures.values():
                if future.done():
                    continue
                if isinstance(e, asyncio.CancelledError):
                    future.cancel()
                else:
                    future.set_exception(e)
                    # whoever awaits it still gets the error
                    future.exception()
            raise
        finally:
            for identity in identities:
                self._loading.pop((entity_type, identity), None)
        return futures

    def hydrate(self, entity_type: typing.Type[EntityType], row: Row) -> EntityType:
        """The instance for `row`, reusing the one already in the identity map."""
        key = (entity_type, row["id"])
        entity = self._identity_map.get(key)
        if entity is None:
            entity = entity_type.from_row(self, row)
            self._identity_map[key] = entity
        return entity

    async def fetch_rows(
        self, entity_type: typing.Type[Entity], column_name: str, value: typing.Any
    ) -> typing.List[Row]:
        table = self.registry.table_for(entity_type)
        async with self._lock:
            return await loading.select_by_column(self._connection, table, column_name, value)

    async def fetch_rows_through(
        self,
        entity_type: typing.Type[Entity],
        join_table_name: str,
        column_name: str,
        other_column_name: str,
        value: typing.Any,
    ) -> typing.List[Row]:
        table = self.registry.table_for(entity_type)
        join_table = self.registry.join_table(join_table_name)
        async with self._lock:
            return await loading.select_through(
                self._connection, table, join_table, column_name, other_column_name, value
            )

    def join_rows(self, join_table_name: str) -> PendingJoinRows:
        pending = self._join_rows.get(join_table_name)
        if pending is None:
            pending = self._join_rows[join_table_name] = PendingJoinRows(join_table_name)
        return pending

    async def flush(self) -> None:
        async with self._lock:
            try:
                await persister.flush_entities(
                    self._connection, self.registry, self.entities, list(self._join_rows.values())
                )
            finally:
                self._promote_inserted()

    def _promote_inserted(self) -> None:
        still_new = []
        for entity in self._new:
            if entity.is_new:
                still_new.append(entity)
            else:
                self._identity_map[(type(entity), entity.id)] = entity
        self._new = still_new
