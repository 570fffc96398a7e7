from entity_graph.storages.sqlalchemy.persister import flush_entities
from entity_graph.storages.sqlalchemy.registry import SaRegistry

__all__ = ["SaRegistry", "flush_entities"]
