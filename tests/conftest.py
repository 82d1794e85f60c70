"""Pytest fixtures for all test modules."""
from pathlib import Path

import pytest
import pytest_asyncio

from memory_graph import Entity, KnowledgeGraphManager, LocalFileStore, Relation


class MemoryFileStore:
    """In-memory FileStore that counts reads and writes and can be told to fail."""

    def __init__(self, files: dict[Path, str] | None = None):
        self.files: dict[Path, str] = dict(files or {})
        self.reads = 0
        self.writes = 0
        self.fail_reads = False
        self.fail_writes = False

    def ensure_directory_exists(self, path: Path) -> None:
        pass

    def read_all(self, path: Path) -> str:
        self.reads += 1
        if self.fail_reads:
            raise PermissionError(f"Permission denied: {path}")
        return self.files.get(Path(path), "")

    def write_all(self, path: Path, text: str) -> None:
        self.writes += 1
        if self.fail_writes:
            raise OSError(28, "No space left on device")
        self.files[Path(path)] = text


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


MEMORY_PATH = Path("/virtual/memory.jsonl")


@pytest.fixture
def store():
    return MemoryFileStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(store, clock):
    """Manager over an in-memory store with a controllable clock."""
    return KnowledgeGraphManager(file_path=MEMORY_PATH, store=store, clock=clock)


@pytest.fixture
def disk_manager(tmp_path):
    """Manager writing to a real file under tmp_path."""
    return KnowledgeGraphManager(file_path=tmp_path / "memory.jsonl", store=LocalFileStore())


@pytest.fixture
def people():
    """Three person entities and a chain of relations A -> B -> C."""
    entities = [
        Entity.create("Alice", "person", ["likes tea", "lives in Oslo"]),
        Entity.create("Bob", "person", ["plays chess"]),
        Entity.create("Carol", "engineer", ["writes Rust"]),
    ]
    relations = [
        Relation(source="Alice", target="Bob", relation_type="knows"),
        Relation(source="Bob", target="Carol", relation_type="mentors"),
    ]
    return entities, relations


@pytest_asyncio.fixture
async def populated(manager, people):
    """Manager already holding the ``people`` graph."""
    entities, relations = people
    (await manager.create_entities(entities)).unwrap()
    (await manager.create_relations(relations)).unwrap()
    return manager
