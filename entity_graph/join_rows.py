import typing

import attr

from entity_graph.entity import Entity

# ((column name, entity), (column name, entity)), sorted by column name
JoinRowKey = typing.Tuple[typing.Tuple[str, Entity], ...]


def join_row_key(columns: typing.Dict[str, Entity]) -> JoinRowKey:
    return tuple(sorted(columns.items(), key=lambda item: item[0]))


@attr.s(auto_attribs=True)
class PendingJoinRows:
    """Many-to-many pairs added or removed in memory since the last flush.

    The last operation on a pair wins. Inserts ignore pairs that already exist
    and deletes of missing pairs are no-ops, so neither side has to be loaded.
    """

    table_name: str
    added: typing.Dict[JoinRowKey, None] = attr.Factory(dict)
    removed: typing.Dict[JoinRowKey, None] = attr.Factory(dict)

    def add(self, columns: typing.Dict[str, Entity]) -> None:
        key = join_row_key(columns)
        self.removed.pop(key, None)
        self.added[key] = None

    def remove(self, columns: typing.Dict[str, Entity]) -> None:
        key = join_row_key(columns)
        self.added.pop(key, None)
        self.removed[key] = None

    def clear(self) -> None:
        self.added.clear()
        self.removed.clear()

    def __bool__(self) -> bool:
        return bool(self.added or self.removed)
