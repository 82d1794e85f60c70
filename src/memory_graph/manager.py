"""JSONL file-backed knowledge graph manager.

The manager owns the in-memory graph cache and every CRUD/search rule. All
public operations return a ``Result`` instead of raising:

    manager = KnowledgeGraphManager("memory.jsonl")
    result = await manager.create_entities([Entity.create("Alice", "person")])
    if result.is_err():
        match result.error.kind:
            case ErrorKind.VALIDATION: ...
            case ErrorKind.NOT_FOUND: ...
            case ErrorKind.STORE: ...

Graphs are immutable. Each mutation loads the current graph, builds a new
one, writes the whole store and then swaps the cache to that new graph.

The cache belongs to one manager instance. Two managers (or two processes)
sharing a file do not see each other's writes until their cache expires,
and concurrent load/save cycles against one file are last-writer-wins.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from pydantic_core import PydanticSerializationError

from .codec import decode_graph, encode_graph
from .config import (
    DEFAULT_CACHE_TTL_SECONDS,
    MemoryGraphConfig,
    get_default_memory_path,
    resolve_memory_path,
)
from .errors import GraphError
from .result import Err, Ok, Result
from .store import FileStore, LocalFileStore
from .types import (
    Entity,
    KnowledgeGraph,
    ObservationDeletion,
    ObservationResult,
    ObservationUpdate,
    Relation,
)

logger = logging.getLogger(__name__)


# === Validation Helpers ===


def _is_encodable_str(value: Any) -> bool:
    """True for strings the UTF-8 store can hold (no lone surrogates)."""
    if not isinstance(value, str):
        return False
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _is_non_empty_str(value: Any) -> bool:
    return _is_encodable_str(value) and value != ""


def _is_str_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(_is_encodable_str(v) for v in value)


def _check_entity(entity: Any) -> GraphError | None:
    if not isinstance(entity, Entity):
        return GraphError.validation(f"Expected Entity, got {type(entity).__name__}")
    if not _is_non_empty_str(entity.name) or not _is_non_empty_str(entity.entity_type):
        return GraphError.validation("Entity must have name and type")
    if not _is_str_sequence(entity.observations):
        return GraphError.validation(f"Entity observations must be an array of strings: {entity.name}")
    return None


def _check_relation(relation: Any) -> GraphError | None:
    if not isinstance(relation, Relation):
        return GraphError.validation(f"Expected Relation, got {type(relation).__name__}")
    if not (
        _is_non_empty_str(relation.source)
        and _is_non_empty_str(relation.target)
        and _is_non_empty_str(relation.relation_type)
    ):
        return GraphError.validation("Invalid relation format: from, to and relationType are required")
    return None


def _check_batch(items: Any, what: str) -> GraphError | None:
    if not isinstance(items, (list, tuple)):
        return GraphError.validation(f"{what} must be provided as an array")
    return None


def _filter_new_observations(contents: list[str] | tuple[str, ...], existing: tuple[str, ...]) -> list[str]:
    """Drop blank and already-present observations, keeping the given order."""
    seen = set(existing)
    added: list[str] = []
    for obs in contents:
        if not obs.strip() or obs in seen:
            continue
        seen.add(obs)
        added.append(obs)
    return added


# === Manager ===


@dataclass
class KnowledgeGraphManager:
    """Manager for a JSONL file-backed knowledge graph.

    Usage:
        from memory_graph import KnowledgeGraphManager, Entity, Relation

        manager = KnowledgeGraphManager()  # Uses MEMORY_FILE_PATH env or default

        await manager.create_entities([
            Entity.create("Python", "language", ["High-level"]),
            Entity.create("AI", "field"),
        ])
        await manager.create_relations([
            Relation(source="Python", target="AI", relation_type="used_for"),
        ])

        result = await manager.search_nodes("python")
        if result.is_ok():
            print(result.value.entities)
    """

    file_path: Path | str | None = None
    store: FileStore = field(default_factory=LocalFileStore)
    cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    _resolved_path: Path = field(init=False, repr=False)
    _cache: KnowledgeGraph | None = field(default=None, init=False, repr=False)
    _last_load_time: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        """Resolve the file path the same way MemoryGraphConfig does.

        Raises:
            ValueError: if the path is empty or names an unset ``${VAR}``.
        """
        self._resolved_path = resolve_memory_path(self.file_path or get_default_memory_path())

    @classmethod
    def from_config(
        cls,
        config: MemoryGraphConfig,
        store: FileStore | None = None,
    ) -> KnowledgeGraphManager:
        return cls(
            file_path=config.file_path,
            store=store or LocalFileStore(),
            cache_ttl=config.cache_ttl_seconds,
        )

    @property
    def path(self) -> Path:
        return self._resolved_path

    # === Persistence ===

    def _cache_is_fresh(self) -> bool:
        return self._cache is not None and self.clock() - self._last_load_time < self.cache_ttl

    def _replace_cache(self, graph: KnowledgeGraph) -> None:
        self._cache = graph
        self._last_load_time = self.clock()

    def invalidate_cache(self) -> None:
        """Force the next load to re-read the store."""
        self._cache = None
        self._last_load_time = 0.0

    async def load_graph(self) -> Result[KnowledgeGraph, GraphError]:
        """Return the cached graph if fresh, otherwise re-parse the store."""
        if self._cache_is_fresh():
            logger.debug(f"Graph cache hit for {self._resolved_path}")
            return Ok(self._cache)

        try:
            text = self.store.read_all(self._resolved_path)
        except (OSError, UnicodeError) as e:
            return Err(GraphError.store("Failed to load graph", e))

        graph = decode_graph(text)
        logger.debug(
            f"Loaded {len(graph.entities)} entities and {len(graph.relations)} relations "
            f"from {self._resolved_path}"
        )
        self._replace_cache(graph)
        return Ok(graph)

    async def save_graph(self, graph: KnowledgeGraph) -> Result[None, GraphError]:
        """Overwrite the store with ``graph`` and make it the cached graph."""
        try:
            self.store.write_all(self._resolved_path, encode_graph(graph))
        except (OSError, UnicodeError, PydanticSerializationError) as e:
            return Err(GraphError.store("Failed to save graph", e))

        self._replace_cache(graph)
        return Ok(None)

    # === Entity Operations ===

    async def create_entities(
        self,
        entities: list[Entity],
    ) -> Result[list[Entity], GraphError]:
        """Create new entities in the knowledge graph.

        Entities whose name already exists are skipped, as are later
        duplicates within the batch. Returns the entities actually created.
        """
        if error := _check_batch(entities, "Entities"):
            return Err(error)
        for entity in entities:
            if error := _check_entity(entity):
                return Err(error)

        graph_result = await self.load_graph()
        if graph_result.is_err():
            return graph_result  # type: ignore

        graph = graph_result.value
        existing_names = graph.entity_names
        new_entities: list[Entity] = []

        for entity in entities:
            if entity.name in existing_names:
                continue
            existing_names.add(entity.name)
            new_entities.append(
                entity.with_observations(tuple(_filter_new_observations(entity.observations, ())))
            )

        if new_entities:
            updated_graph = KnowledgeGraph(
                entities=graph.entities + tuple(new_entities),
                relations=graph.relations,
            )
            save_result = await self.save_graph(updated_graph)
            if save_result.is_err():
                return save_result  # type: ignore
            logger.info(f"Created {len(new_entities)} entities")

        return Ok(new_entities)

    async def delete_entities(
        self,
        entity_names: list[str],
    ) -> Result[None, GraphError]:
        """Delete entities and every relation touching them.

        All names must exist; otherwise nothing is deleted.
        """
        if error := _check_batch(entity_names, "Entity names"):
            return Err(error)
        if not _is_str_sequence(entity_names):
            return Err(GraphError.validation("Entity names must be strings"))

        graph_result = await self.load_graph()
        if graph_result.is_err():
            return graph_result  # type: ignore

        graph = graph_result.value
        existing_names = graph.entity_names
        for name in entity_names:
            if name not in existing_names:
                return Err(GraphError.not_found(name))

        names_to_delete = set(entity_names)
        updated_graph = KnowledgeGraph(
            entities=tuple(e for e in graph.entities if e.name not in names_to_delete),
            relations=tuple(
                r for r in graph.relations
                if r.source not in names_to_delete and r.target not in names_to_delete
            ),
        )
        save_result = await self.save_graph(updated_graph)
        if save_result.is_ok():
            logger.info(
                f"Deleted {len(names_to_delete)} entities and "
                f"{len(graph.relations) - len(updated_graph.relations)} relations"
            )
        return save_result

    # === Observation Operations ===

    async def add_observations(
        self,
        updates: list[ObservationUpdate],
    ) -> Result[list[ObservationResult], GraphError]:
        """Add observations to existing entities.

        Blank observations and ones already on the entity are dropped. The
        result reports what was actually added for each update.
        """
        if error := _check_batch(updates, "Observation updates"):
            return Err(error)
        for update in updates:
            if not isinstance(update, ObservationUpdate):
                return Err(GraphError.validation(f"Expected ObservationUpdate, got {type(update).__name__}"))
            if not _is_non_empty_str(update.entity_name):
                return Err(GraphError.validation("Observation update must name an entity"))
            if not _is_str_sequence(update.contents):
                return Err(GraphError.validation(
                    f"Invalid observations format for entity {update.entity_name}"
                ))

        graph_result = await self.load_graph()
        if graph_result.is_err():
            return graph_result  # type: ignore

        graph = graph_result.value
        entity_map = {e.name: e for e in graph.entities}
        for update in updates:
            if update.entity_name not in entity_map:
                return Err(GraphError.not_found(update.entity_name))

        results: list[ObservationResult] = []
        for update in updates:
            entity = entity_map[update.entity_name]
            new_obs = _filter_new_observations(update.contents, entity.observations)
            entity_map[entity.name] = entity.with_observations(entity.observations + tuple(new_obs))
            results.append(
                ObservationResult(
                    entity_name=update.entity_name,
                    added_observations=new_obs,
                )
            )

        updated_graph = KnowledgeGraph(
            entities=tuple(entity_map[e.name] for e in graph.entities),
            relations=graph.relations,
        )
        save_result = await self.save_graph(updated_graph)
        if save_result.is_err():
            return save_result  # type: ignore

        return Ok(results)

    async def delete_observations(
        self,
        deletions: list[ObservationDeletion],
    ) -> Result[None, GraphError]:
        """Delete specific observations from entities."""
        if error := _check_batch(deletions, "Deletions"):
            return Err(error)
        for deletion in deletions:
            if not isinstance(deletion, ObservationDeletion):
                return Err(GraphError.validation(f"Expected ObservationDeletion, got {type(deletion).__name__}"))
            if not _is_non_empty_str(deletion.entity_name):
                return Err(GraphError.validation("Observation deletion must name an entity"))
            if not _is_str_sequence(deletion.observations):
                return Err(GraphError.validation(
                    f"Invalid observations format for entity {deletion.entity_name}"
                ))

        graph_result = await self.load_graph()
        if graph_result.is_err():
            return graph_result  # type: ignore

        graph = graph_result.value
        entity_map = {e.name: e for e in graph.entities}
        for deletion in deletions:
            if deletion.entity_name not in entity_map:
                return Err(GraphError.not_found(deletion.entity_name))

        for deletion in deletions:
            entity = entity_map[deletion.entity_name]
            obs_to_delete = set(deletion.observations)
            entity_map[entity.name] = entity.with_observations(
                tuple(o for o in entity.observations if o not in obs_to_delete)
            )

        updated_graph = KnowledgeGraph(
            entities=tuple(entity_map[e.name] for e in graph.entities),
            relations=graph.relations,
        )
        return await self.save_graph(updated_graph)

    # === Relation Operations ===

    async def create_relations(
        self,
        relations: list[Relation],
    ) -> Result[list[Relation], GraphError]:
        """Create new relations between existing entities.

        Both endpoints of every relation must exist, otherwise nothing is
        created. Relations that already exist are skipped.
        """
        if error := _check_batch(relations, "Relations"):
            return Err(error)
        for relation in relations:
            if error := _check_relation(relation):
                return Err(error)

        graph_result = await self.load_graph()
        if graph_result.is_err():
            return graph_result  # type: ignore

        graph = graph_result.value
        entity_names = graph.entity_names
        for relation in relations:
            if relation.source not in entity_names:
                return Err(GraphError.not_found(relation.source))
            if relation.target not in entity_names:
                return Err(GraphError.not_found(relation.target))

        existing_keys = {r.key for r in graph.relations}
        new_relations: list[Relation] = []
        for relation in relations:
            if relation.key in existing_keys:
                continue
            existing_keys.add(relation.key)
            new_relations.append(relation)

        if new_relations:
            updated_graph = KnowledgeGraph(
                entities=graph.entities,
                relations=graph.relations + tuple(new_relations),
            )
            save_result = await self.save_graph(updated_graph)
            if save_result.is_err():
                return save_result  # type: ignore
            logger.info(f"Created {len(new_relations)} relations")

        return Ok(new_relations)

    async def delete_relations(
        self,
        relations: list[Relation],
    ) -> Result[None, GraphError]:
        """Delete specific relations. Unknown relations are ignored."""
        if error := _check_batch(relations, "Relations"):
            return Err(error)
        for relation in relations:
            if error := _check_relation(relation):
                return Err(error)

        graph_result = await self.load_graph()
        if graph_result.is_err():
            return graph_result  # type: ignore

        graph = graph_result.value
        keys_to_delete = {r.key for r in relations}
        updated_graph = KnowledgeGraph(
            entities=graph.entities,
            relations=tuple(r for r in graph.relations if r.key not in keys_to_delete),
        )
        return await self.save_graph(updated_graph)

    # === Graph Operations ===

    async def read_graph(self) -> Result[KnowledgeGraph, GraphError]:
        """Read the entire knowledge graph."""
        return await self.load_graph()

    async def search_nodes(
        self,
        query: str,
    ) -> Result[KnowledgeGraph, GraphError]:
        """Search for entities matching the query.

        Case-insensitive substring match over names, types and observations.
        Returns matching entities and the relations between them.
        """
        if not isinstance(query, str):
            return Err(GraphError.validation("Search query must be a string"))

        graph_result = await self.load_graph()
        if graph_result.is_err():
            return graph_result  # type: ignore

        graph = graph_result.value
        query_lower = query.lower()

        matches = [
            e for e in graph.entities
            if (
                query_lower in e.name.lower()
                or query_lower in e.entity_type.lower()
                or any(query_lower in obs.lower() for obs in e.observations)
            )
        ]
        return Ok(graph.subgraph(matches))

    async def open_nodes(
        self,
        names: list[str],
    ) -> Result[KnowledgeGraph, GraphError]:
        """Open specific entities by name.

        Every name must exist. Returns the named entities and the relations
        between them.
        """
        if error := _check_batch(names, "Node names"):
            return Err(error)
        if not _is_str_sequence(names):
            return Err(GraphError.validation("Node names must be strings"))

        graph_result = await self.load_graph()
        if graph_result.is_err():
            return graph_result  # type: ignore

        graph = graph_result.value
        entity_names = graph.entity_names
        for name in names:
            if name not in entity_names:
                return Err(GraphError.not_found(name))

        names_set = set(names)
        return Ok(graph.subgraph([e for e in graph.entities if e.name in names_set]))


# === Convenience Functions ===


async def create_client(
    file_path: Path | str | None = None,
) -> KnowledgeGraphManager:
    """Create a knowledge graph manager.

    Usage:
        manager = await create_client()
        result = await manager.read_graph()
    """
    return KnowledgeGraphManager(file_path=file_path)


async def search(
    query: str,
    file_path: Path | str | None = None,
) -> Result[KnowledgeGraph, GraphError]:
    """Search the knowledge graph with a single-use manager."""
    manager = KnowledgeGraphManager(file_path=file_path)
    return await manager.search_nodes(query)


async def read_graph(
    file_path: Path | str | None = None,
) -> Result[KnowledgeGraph, GraphError]:
    """Read the entire knowledge graph with a single-use manager."""
    manager = KnowledgeGraphManager(file_path=file_path)
    return await manager.read_graph()
