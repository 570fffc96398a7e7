import typing


class EntityGraphError(Exception):
    pass


class NotLoaded(EntityGraphError):
    """Raised by a relation's `get()` before the relation was loaded."""


class InvariantViolation(EntityGraphError):
    pass


class EntityNotFound(EntityGraphError, LookupError):
    def __init__(self, entity_type: type, identity: typing.Any) -> None:
        super().__init__(f"{entity_type.__name__}#{identity} not found")
        self.entity_type = entity_type
        self.identity = identity


class UnknownEntity(EntityGraphError, KeyError):
    pass


class PersistenceFailure(EntityGraphError):
    def __init__(self, entity_type: typing.Optional[type], rank: int, operation: str, table_name: str) -> None:
        name = entity_type.__name__ if entity_type else table_name
        super().__init__(f"Failed to {operation} {name} rows into {table_name} (rank {rank})")
        self.entity_type = entity_type
        self.rank = rank
        self.operation = operation
        self.table_name = table_name
