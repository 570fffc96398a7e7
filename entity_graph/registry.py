import typing

import attr

from entity_graph.entity import Entity
from entity_graph.errors import UnknownEntity
from entity_graph.metadata import EntityMetadata


@attr.s(auto_attribs=True)
class Registry:
    entities: typing.Dict[typing.Type[Entity], EntityMetadata] = attr.Factory(dict)

    def register(self, *metadata: EntityMetadata) -> None:
        for entity_metadata in metadata:
            self.entities[entity_metadata.entity_type] = entity_metadata

    def metadata_for(self, entity_type: typing.Type[Entity]) -> EntityMetadata:
        try:
            return self.entities[entity_type]
        except KeyError:
            raise UnknownEntity(f"{entity_type.__name__} is not registered") from None

    def resolve(self, entity_type: typing.Union[str, typing.Type[Entity]]) -> typing.Type[Entity]:
        """Entity type by class or by class name, as used in relation declarations."""
        if not isinstance(entity_type, str):
            return entity_type
        for registered in self.entities:
            if registered.__name__ == entity_type:
                return registered
        raise UnknownEntity(f"{entity_type} is not registered")

    @property
    def max_order(self) -> int:
        return max((metadata.order for metadata in self.entities.values()), default=0)
