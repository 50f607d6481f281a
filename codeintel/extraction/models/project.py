"""Aggregate store of the entities and IRs of one project."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterator

import networkx as nx

from ...utils.logging import get_logger
from .entities import CodeEntity, EntityKind, RelationType
from .ir import IntermediateRepresentation, build_ir, ir_id

logger = get_logger("project")


@dataclass
class ProjectStructure:
    """Entities and IRs of one analysis session.

    Entities are registered during extraction. ``build_relationships`` is then
    called once to turn the per-entity relation sets into a project-wide
    reference graph and to mirror every edge onto the source entity's IR.
    """

    name: str = ""
    _entities: list[CodeEntity] = field(default_factory=list)
    _irs: dict[str, IntermediateRepresentation] = field(default_factory=dict)
    _entities_by_kind: dict[EntityKind, list[CodeEntity]] = field(
        default_factory=lambda: defaultdict(list)
    )
    _members_by_owner: dict[str, list[CodeEntity]] = field(
        default_factory=lambda: defaultdict(list)
    )

    # Reference graph: node = IR id or raw target name, edge key = relation type
    _graph: nx.MultiDiGraph = field(default_factory=nx.MultiDiGraph)
    _relationships_built: bool = False

    def add_entity(
        self,
        entity: CodeEntity,
        ir: IntermediateRepresentation | None = None,
    ) -> IntermediateRepresentation:
        """Register an entity and its IR.

        A later entity whose id collides with an earlier one (method overloads)
        replaces the IR; both entities stay in the entity list.
        """
        if self._relationships_built:
            raise RuntimeError("Cannot add entities after relationships were built")
        ir = ir or build_ir(entity)
        if ir.id in self._irs:
            logger.debug(f"IR id collision: {ir.id}")
        self._entities.append(entity)
        self._irs[ir.id] = ir
        self._entities_by_kind[entity.kind].append(entity)
        if not entity.is_type:
            self._members_by_owner[entity.parent_name].append(entity)
        self._graph.add_node(ir.id, kind=entity.kind.value, name=entity.name)
        return ir

    @property
    def entities(self) -> list[CodeEntity]:
        return list(self._entities)

    @property
    def irs(self) -> list[IntermediateRepresentation]:
        return list(self._irs.values())

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[CodeEntity]:
        return iter(self._entities)

    def entities_of_kind(self, *kinds: EntityKind) -> list[CodeEntity]:
        """Entities of the given kinds in registration order."""
        if len(kinds) == 1:
            return list(self._entities_by_kind.get(kinds[0], []))
        wanted = set(kinds)
        return [e for e in self._entities if e.kind in wanted]

    @property
    def types(self) -> list[CodeEntity]:
        return [e for e in self._entities if e.is_type]

    @property
    def methods(self) -> list[CodeEntity]:
        return self.entities_of_kind(EntityKind.METHOD)

    @property
    def fields(self) -> list[CodeEntity]:
        return self.entities_of_kind(EntityKind.FIELD)

    def members_of(self, owner: str, kind: EntityKind | None = None) -> list[CodeEntity]:
        """Methods and fields declared in the type named ``owner``."""
        members = self._members_by_owner.get(owner, [])
        if kind is None:
            return list(members)
        return [m for m in members if m.kind == kind]

    def get_ir(self, entity_id: str) -> IntermediateRepresentation | None:
        return self._irs.get(entity_id)

    def ir_for(self, entity: CodeEntity) -> IntermediateRepresentation:
        return self._irs[ir_id(entity.kind, entity.parent_name, entity.name)]

    def source_files(self) -> list[str]:
        """Distinct source files, in the order their first entity was registered."""
        seen: dict[str, None] = {}
        for entity in self._entities:
            if entity.file_path:
                seen.setdefault(entity.file_path, None)
        return list(seen)

    def entities_in_file(self, file_path: str) -> list[CodeEntity]:
        return [e for e in self._entities if e.file_path == file_path]

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    @property
    def relationships_built(self) -> bool:
        return self._relationships_built

    def build_relationships(self) -> int:
        """Resolve Extends, Implements and Calls edges into the reference graph.

        Must run exactly once, after extraction and before indexing.

        Returns:
            Number of reference edges recorded
        """
        if self._relationships_built:
            raise RuntimeError("Relationships have already been built for this project")

        edge_count = 0
        for entity in self._entities:
            source = self.ir_for(entity)
            for relation in RelationType:
                for target in sorted(entity.related(relation)):
                    if self._graph.has_edge(source.id, target, key=relation):
                        continue
                    self._graph.add_edge(source.id, target, key=relation, relation=relation.value)
                    source.add_relationship(relation, target)
                    edge_count += 1

        self._relationships_built = True
        logger.debug(f"Built {edge_count} reference edges for {len(self._entities)} entities")
        return edge_count

    @property
    def graph(self) -> nx.MultiDiGraph:
        return self._graph

    def references_from(self, entity_id: str) -> list[tuple[str, RelationType]]:
        """Targets referenced by an entity, with the relation kind."""
        if entity_id not in self._graph:
            return []
        return [
            (target, RelationType(key))
            for _, target, key in self._graph.out_edges(entity_id, keys=True)
        ]

    def references_to(self, target: str) -> list[tuple[str, RelationType]]:
        """Entities referencing ``target`` (a type name, call name or IR id)."""
        if target not in self._graph:
            return []
        return [
            (source, RelationType(key))
            for source, _, key in self._graph.in_edges(target, keys=True)
        ]

    def reference_graph(self) -> dict[str, list[str]]:
        """Reference graph as ``source -> ["<kind>:<target>", ...]``."""
        result: dict[str, list[str]] = {}
        for source, target, key in self._graph.edges(keys=True):
            result.setdefault(source, []).append(f"{RelationType(key).value}:{target}")
        return result

    @property
    def stats(self) -> dict[str, Any]:
        return {
            "entities": len(self._entities),
            "irs": len(self._irs),
            "files": len(self.source_files()),
            "by_kind": {
                kind.value: len(self._entities_by_kind.get(kind, [])) for kind in EntityKind
            },
            "reference_edges": self._graph.number_of_edges(),
        }
