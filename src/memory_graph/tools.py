"""Tool dispatch: map operation names and JSON arguments onto the manager."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from .codec import entity_to_dict, graph_to_dict, observation_result_to_dict, relation_to_dict
from .errors import GraphError
from .manager import KnowledgeGraphManager
from .result import Err, Result
from .types import Entity, ObservationDeletion, ObservationUpdate, Relation


# === Argument Schemas ===


class _Args(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class EntityArgs(_Args):
    name: StrictStr = Field(description="The name of the entity")
    entity_type: StrictStr = Field(alias="entityType", description="The type of the entity")
    observations: list[StrictStr] = Field(
        description="An array of observation contents associated with the entity",
    )

    def to_entity(self) -> Entity:
        return Entity.create(self.name, self.entity_type, self.observations)


class RelationArgs(_Args):
    source: StrictStr = Field(alias="from", description="The name of the entity where the relation starts")
    target: StrictStr = Field(alias="to", description="The name of the entity where the relation ends")
    relation_type: StrictStr = Field(alias="relationType", description="The type of the relation")

    def to_relation(self) -> Relation:
        return Relation(source=self.source, target=self.target, relation_type=self.relation_type)


class ObservationUpdateArgs(_Args):
    entity_name: StrictStr = Field(alias="entityName", description="The name of the entity to add the observations to")
    contents: list[StrictStr] = Field(description="An array of observation contents to add")


class ObservationDeletionArgs(_Args):
    entity_name: StrictStr = Field(alias="entityName", description="The name of the entity containing the observations")
    observations: list[StrictStr] = Field(description="An array of observations to delete")


class CreateEntitiesArgs(_Args):
    entities: list[EntityArgs]


class CreateRelationsArgs(_Args):
    relations: list[RelationArgs]


class AddObservationsArgs(_Args):
    observations: list[ObservationUpdateArgs]


class DeleteEntitiesArgs(_Args):
    entity_names: list[StrictStr] = Field(alias="entityNames", description="An array of entity names to delete")


class DeleteObservationsArgs(_Args):
    deletions: list[ObservationDeletionArgs]


class DeleteRelationsArgs(_Args):
    relations: list[RelationArgs] = Field(description="An array of relations to delete")


class ReadGraphArgs(_Args):
    pass


class SearchNodesArgs(_Args):
    query: StrictStr = Field(
        description="The search query to match against entity names, types, and observation content",
    )


class OpenNodesArgs(_Args):
    names: list[StrictStr] = Field(description="An array of entity names to retrieve")


# === Handlers ===


Handler = Callable[[KnowledgeGraphManager, Any], Awaitable[Result[Any, GraphError]]]


async def _create_entities(manager: KnowledgeGraphManager, args: CreateEntitiesArgs) -> Result[Any, GraphError]:
    result = await manager.create_entities([e.to_entity() for e in args.entities])
    return result.map(lambda created: [entity_to_dict(e) for e in created])


async def _create_relations(manager: KnowledgeGraphManager, args: CreateRelationsArgs) -> Result[Any, GraphError]:
    result = await manager.create_relations([r.to_relation() for r in args.relations])
    return result.map(lambda created: [relation_to_dict(r) for r in created])


async def _add_observations(manager: KnowledgeGraphManager, args: AddObservationsArgs) -> Result[Any, GraphError]:
    result = await manager.add_observations([
        ObservationUpdate(entity_name=o.entity_name, contents=o.contents)
        for o in args.observations
    ])
    return result.map(lambda added: [observation_result_to_dict(a) for a in added])


async def _delete_entities(manager: KnowledgeGraphManager, args: DeleteEntitiesArgs) -> Result[Any, GraphError]:
    result = await manager.delete_entities(args.entity_names)
    return result.map(lambda _: "Entities deleted successfully")


async def _delete_observations(manager: KnowledgeGraphManager, args: DeleteObservationsArgs) -> Result[Any, GraphError]:
    result = await manager.delete_observations([
        ObservationDeletion(entity_name=d.entity_name, observations=d.observations)
        for d in args.deletions
    ])
    return result.map(lambda _: "Observations deleted successfully")


async def _delete_relations(manager: KnowledgeGraphManager, args: DeleteRelationsArgs) -> Result[Any, GraphError]:
    result = await manager.delete_relations([r.to_relation() for r in args.relations])
    return result.map(lambda _: "Relations deleted successfully")


async def _read_graph(manager: KnowledgeGraphManager, args: ReadGraphArgs) -> Result[Any, GraphError]:
    return (await manager.read_graph()).map(graph_to_dict)


async def _search_nodes(manager: KnowledgeGraphManager, args: SearchNodesArgs) -> Result[Any, GraphError]:
    return (await manager.search_nodes(args.query)).map(graph_to_dict)


async def _open_nodes(manager: KnowledgeGraphManager, args: OpenNodesArgs) -> Result[Any, GraphError]:
    return (await manager.open_nodes(args.names)).map(graph_to_dict)


# === Registry ===


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """A named operation with its argument schema."""

    name: str
    description: str
    args_model: type[_Args]
    handler: Handler

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.args_model.model_json_schema(by_alias=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


TOOLS: dict[str, ToolDefinition] = {
    tool.name: tool
    for tool in (
        ToolDefinition(
            "create_entities",
            "Create multiple new entities in the knowledge graph",
            CreateEntitiesArgs,
            _create_entities,
        ),
        ToolDefinition(
            "create_relations",
            "Create multiple new relations between entities in the knowledge graph. "
            "Relations should be in active voice",
            CreateRelationsArgs,
            _create_relations,
        ),
        ToolDefinition(
            "add_observations",
            "Add new observations to existing entities in the knowledge graph",
            AddObservationsArgs,
            _add_observations,
        ),
        ToolDefinition(
            "delete_entities",
            "Delete multiple entities and their associated relations from the knowledge graph",
            DeleteEntitiesArgs,
            _delete_entities,
        ),
        ToolDefinition(
            "delete_observations",
            "Delete specific observations from entities in the knowledge graph",
            DeleteObservationsArgs,
            _delete_observations,
        ),
        ToolDefinition(
            "delete_relations",
            "Delete multiple relations from the knowledge graph",
            DeleteRelationsArgs,
            _delete_relations,
        ),
        ToolDefinition(
            "read_graph",
            "Read the entire knowledge graph",
            ReadGraphArgs,
            _read_graph,
        ),
        ToolDefinition(
            "search_nodes",
            "Search for nodes in the knowledge graph based on a query",
            SearchNodesArgs,
            _search_nodes,
        ),
        ToolDefinition(
            "open_nodes",
            "Open specific nodes in the knowledge graph by their names",
            OpenNodesArgs,
            _open_nodes,
        ),
    )
}

TOOL_NAMES: tuple[str, ...] = tuple(TOOLS)


def _format_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "arguments"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


async def call_tool(
    manager: KnowledgeGraphManager,
    name: str,
    arguments: dict[str, Any] | None = None,
) -> Result[Any, GraphError]:
    """Decode ``arguments`` for tool ``name`` and run it against ``manager``.

    The success value is JSON-compatible data.
    """
    tool = TOOLS.get(name)
    if tool is None:
        return Err(GraphError.validation(f"Unknown tool: {name}"))

    try:
        args = tool.args_model.model_validate(arguments or {})
    except ValidationError as e:
        return Err(GraphError.validation(f"Invalid arguments for {name}: {_format_validation_error(e)}"))

    return await tool.handler(manager, args)
