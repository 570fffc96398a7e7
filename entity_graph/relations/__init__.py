from entity_graph.relations.base import Relation
from entity_graph.relations.many_to_many import ManyToManyCollection
from entity_graph.relations.many_to_one import ManyToOneReference
from entity_graph.relations.one_to_many import OneToManyCollection
from entity_graph.relations.one_to_one import OneToOneReference

__all__ = [
    "Relation",
    "ManyToManyCollection",
    "ManyToOneReference",
    "OneToManyCollection",
    "OneToOneReference",
]
