"""Type definitions for the memory_graph package."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Entity:
    """An entity in the knowledge graph.

    Entities are uniquely named nodes with a type tag and an ordered,
    de-duplicated list of observations.
    """

    name: str
    entity_type: str
    observations: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.observations, list):
            object.__setattr__(self, "observations", tuple(self.observations))

    @classmethod
    def create(
        cls,
        name: str,
        entity_type: str,
        observations: list[str] | None = None,
    ) -> Entity:
        """Create an Entity from a plain observation list."""
        return cls(
            name=name,
            entity_type=entity_type,
            observations=tuple(observations) if observations else (),
        )

    def with_observations(self, observations: tuple[str, ...]) -> Entity:
        """Return a copy of this entity carrying the given observations."""
        return Entity(name=self.name, entity_type=self.entity_type, observations=observations)


@dataclass(frozen=True, slots=True)
class Relation:
    """A directed, typed edge between two entity names.

    Relations should be phrased in active voice ("works_at", "knows").
    """

    source: str
    target: str
    relation_type: str

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity triple of the relation."""
        return (self.source, self.target, self.relation_type)


@dataclass(frozen=True, slots=True)
class KnowledgeGraph:
    """A knowledge graph containing entities and their relations."""

    entities: tuple[Entity, ...] = ()
    relations: tuple[Relation, ...] = ()

    def __post_init__(self) -> None:
        # Cached graphs must not be mutable
        if isinstance(self.entities, list):
            object.__setattr__(self, "entities", tuple(self.entities))
        if isinstance(self.relations, list):
            object.__setattr__(self, "relations", tuple(self.relations))

    @property
    def entity_names(self) -> set[str]:
        return {e.name for e in self.entities}

    def find_entity(self, name: str) -> Entity | None:
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None

    def subgraph(self, entities: list[Entity]) -> KnowledgeGraph:
        """Build a view over ``entities`` keeping only relations between them."""
        names = {e.name for e in entities}
        return KnowledgeGraph(
            entities=tuple(entities),
            relations=tuple(
                r for r in self.relations
                if r.source in names and r.target in names
            ),
        )


@dataclass(frozen=True, slots=True)
class ObservationUpdate:
    """Request to add observations to an entity."""

    entity_name: str
    contents: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ObservationResult:
    """Result of adding observations to an entity."""

    entity_name: str
    added_observations: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ObservationDeletion:
    """Request to delete observations from an entity."""

    entity_name: str
    observations: list[str] = field(default_factory=list)
