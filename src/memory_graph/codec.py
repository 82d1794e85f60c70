"""JSONL record encoding and decoding for the graph store.

Every line of the store is one JSON object tagged with a ``type``
discriminator::

    {"type":"entity","name":"Alice","entityType":"person","observations":["likes tea"]}
    {"type":"relation","from":"Alice","to":"Bob","relationType":"knows"}

Lines are validated against a fixed schema on the way in. A line that does
not match is reported and skipped instead of failing the whole load.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .types import Entity, KnowledgeGraph, ObservationResult, Relation

logger = logging.getLogger(__name__)

# Longest slice of a rejected line echoed into the log
_LOG_SNIPPET_CHARS = 120


class EntityRecord(BaseModel):
    """Persisted shape of an entity line."""

    model_config = ConfigDict(strict=True, populate_by_name=True, frozen=True)

    type: Literal["entity"] = "entity"
    name: str
    entity_type: str = Field(alias="entityType")
    observations: list[str]

    @classmethod
    def from_entity(cls, entity: Entity) -> EntityRecord:
        return cls(
            name=entity.name,
            entity_type=entity.entity_type,
            observations=list(entity.observations),
        )

    def to_entity(self) -> Entity:
        return Entity(
            name=self.name,
            entity_type=self.entity_type,
            observations=tuple(self.observations),
        )


class RelationRecord(BaseModel):
    """Persisted shape of a relation line."""

    model_config = ConfigDict(strict=True, populate_by_name=True, frozen=True)

    type: Literal["relation"] = "relation"
    source: str = Field(alias="from")
    target: str = Field(alias="to")
    relation_type: str = Field(alias="relationType")

    @classmethod
    def from_relation(cls, relation: Relation) -> RelationRecord:
        return cls(
            source=relation.source,
            target=relation.target,
            relation_type=relation.relation_type,
        )

    def to_relation(self) -> Relation:
        return Relation(
            source=self.source,
            target=self.target,
            relation_type=self.relation_type,
        )


GraphRecord = Annotated[Union[EntityRecord, RelationRecord], Field(discriminator="type")]

_RECORD_ADAPTER: TypeAdapter[EntityRecord | RelationRecord] = TypeAdapter(GraphRecord)


def encode_entity(entity: Entity) -> str:
    """Serialize an entity to a JSONL line."""
    return EntityRecord.from_entity(entity).model_dump_json(by_alias=True)


def encode_relation(relation: Relation) -> str:
    """Serialize a relation to a JSONL line."""
    return RelationRecord.from_relation(relation).model_dump_json(by_alias=True)


def encode_graph(graph: KnowledgeGraph) -> str:
    """Serialize a whole graph: entities first, then relations."""
    lines = [
        *[encode_entity(e) for e in graph.entities],
        *[encode_relation(r) for r in graph.relations],
    ]
    return "\n".join(lines)


def decode_line(line: str) -> Entity | Relation | None:
    """Parse one JSONL line into an Entity or Relation.

    Returns None, after logging a warning, when the line is not valid JSON,
    carries an unknown ``type``, or does not match the record schema.
    """
    try:
        record = _RECORD_ADAPTER.validate_json(line)
    except ValidationError as e:
        snippet = line if len(line) <= _LOG_SNIPPET_CHARS else line[:_LOG_SNIPPET_CHARS] + "..."
        logger.warning(f"Skipping malformed graph record {snippet!r}: {e.errors()[0]['msg']}")
        return None

    if isinstance(record, EntityRecord):
        return record.to_entity()
    return record.to_relation()


def decode_graph(text: str) -> KnowledgeGraph:
    """Parse full store text into a graph, skipping blank and malformed lines."""
    entities: list[Entity] = []
    relations: list[Relation] = []

    for line in text.split("\n"):
        if not line.strip():
            continue
        item = decode_line(line.strip())
        if isinstance(item, Entity):
            entities.append(item)
        elif isinstance(item, Relation):
            relations.append(item)

    return KnowledgeGraph(entities=tuple(entities), relations=tuple(relations))


# === Wire-shaped dicts for callers ===


def entity_to_dict(entity: Entity) -> dict[str, Any]:
    return {
        "name": entity.name,
        "entityType": entity.entity_type,
        "observations": list(entity.observations),
    }


def relation_to_dict(relation: Relation) -> dict[str, Any]:
    return {
        "from": relation.source,
        "to": relation.target,
        "relationType": relation.relation_type,
    }


def graph_to_dict(graph: KnowledgeGraph) -> dict[str, Any]:
    return {
        "entities": [entity_to_dict(e) for e in graph.entities],
        "relations": [relation_to_dict(r) for r in graph.relations],
    }


def observation_result_to_dict(result: ObservationResult) -> dict[str, Any]:
    return {
        "entityName": result.entity_name,
        "addedObservations": list(result.added_observations),
    }
