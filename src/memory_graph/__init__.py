"""
memory_graph - JSONL file-backed knowledge graph memory

Stores entities, relations and observations in a newline-delimited JSON
file, with an in-memory cache and all-or-nothing batch validation.

Usage:
    from memory_graph import (
        KnowledgeGraphManager,
        Entity,
        Relation,
        ObservationUpdate,
        ErrorKind,
    )

    manager = KnowledgeGraphManager()  # Uses MEMORY_FILE_PATH env or ./memory.jsonl

    result = await manager.create_entities([
        Entity.create("Python", "programming_language", ["High-level language"]),
        Entity.create("Machine Learning", "field"),
    ])

    result = await manager.add_observations([
        ObservationUpdate(entity_name="Python", contents=["Popular for ML"]),
    ])

    # Relations use active voice; both ends must already exist
    result = await manager.create_relations([
        Relation(source="Python", target="Machine Learning", relation_type="used_in"),
    ])
    if result.is_err() and result.error.kind is ErrorKind.NOT_FOUND:
        print(f"Missing entity: {result.error.name}")

    result = await manager.search_nodes("python")
    if result.is_ok():
        for entity in result.value.entities:
            print(f"{entity.name} ({entity.entity_type})")

Environment Variables:
    MEMORY_FILE_PATH: Path to the JSONL memory file (default: ./memory.jsonl)
    MEMORY_CACHE_TTL_SECONDS: Graph cache freshness window (default: 300)
"""

__version__ = "1.0.0"

from .config import MemoryGraphConfig, get_default_memory_path, load_config, resolve_memory_path
from .errors import ErrorKind, GraphError, GraphOperationError
from .manager import (
    KnowledgeGraphManager,
    create_client,
    read_graph,
    search,
)
from .result import Err, Ok, Result
from .store import FileStore, LocalFileStore
from .tools import TOOL_NAMES, TOOLS, call_tool
from .types import (
    Entity,
    KnowledgeGraph,
    ObservationDeletion,
    ObservationResult,
    ObservationUpdate,
    Relation,
)

__all__ = [
    # Manager
    "KnowledgeGraphManager",
    "create_client",
    "search",
    "read_graph",
    # Types
    "Entity",
    "Relation",
    "KnowledgeGraph",
    "ObservationUpdate",
    "ObservationResult",
    "ObservationDeletion",
    # Errors
    "ErrorKind",
    "GraphError",
    "GraphOperationError",
    # Result
    "Result",
    "Ok",
    "Err",
    # Store
    "FileStore",
    "LocalFileStore",
    # Config
    "MemoryGraphConfig",
    "load_config",
    "get_default_memory_path",
    "resolve_memory_path",
    # Tools
    "TOOLS",
    "TOOL_NAMES",
    "call_tool",
]
