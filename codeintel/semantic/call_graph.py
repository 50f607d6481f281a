"""Call graph built from raw call names with a best-effort resolution heuristic."""

from dataclasses import dataclass, field
from typing import Any

import networkx as nx

from ..extraction.models.entities import PRIMITIVE_TYPES, CodeEntity, EntityKind, base_type_name
from ..extraction.models.ir import ir_id
from ..extraction.models.project import ProjectStructure
from ..utils.logging import get_logger
from ..utils.metrics import timed

logger = get_logger("call_graph")


@dataclass
class CallGraphNode:
    """Callers and callees of one method id. Duplicate calls collapse."""

    method_id: str
    callers: set[str] = field(default_factory=set)
    callees: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        return {
            "methodId": self.method_id,
            "callers": sorted(self.callers),
            "callees": sorted(self.callees),
        }


@dataclass
class CallGraph:
    """Directed graph of method-to-method calls keyed by method id.

    Built once per analysis pass and only read afterwards.
    """

    _graph: nx.DiGraph = field(default_factory=nx.DiGraph)

    def add_method(self, method_id: str) -> None:
        self._graph.add_node(method_id)

    def add_call(self, caller: str, callee: str) -> None:
        """Record ``caller -> callee``, creating both nodes if absent."""
        self._graph.add_edge(caller, callee)

    def __contains__(self, method_id: str) -> bool:
        return method_id in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def nodes(self) -> list[str]:
        return list(self._graph.nodes)

    def get_node(self, method_id: str) -> CallGraphNode | None:
        if method_id not in self._graph:
            return None
        return CallGraphNode(
            method_id=method_id,
            callers=set(self._graph.predecessors(method_id)),
            callees=set(self._graph.successors(method_id)),
        )

    def get_callers(self, method_id: str) -> list[str]:
        if method_id not in self._graph:
            return []
        return list(self._graph.predecessors(method_id))

    def get_callees(self, method_id: str) -> list[str]:
        if method_id not in self._graph:
            return []
        return list(self._graph.successors(method_id))

    def edges(self) -> list[tuple[str, str]]:
        return list(self._graph.edges)

    @property
    def edge_count(self) -> int:
        """Sum of the callee-set sizes."""
        return self._graph.number_of_edges()

    def recursive_methods(self) -> list[str]:
        """Methods taking part in a call cycle (self-calls included)."""
        cyclic: set[str] = set()
        for component in nx.strongly_connected_components(self._graph):
            if len(component) > 1:
                cyclic.update(component)
        cyclic.update(node for node, _ in nx.selfloop_edges(self._graph))
        return sorted(cyclic)


class CallResolver:
    """Resolves a raw call name to a method id.

    Not a type checker. In order:
    1. the first method, project-wide, with the same name -> ``Owner#name``
    2. the first field of the caller's class with a non-primitive declared
       type -> ``FieldType#name``
    3. the bare call name, unresolved

    Same-named methods in unrelated classes all resolve to the first match;
    ``candidates`` lists every match for callers that want the ambiguity.
    """

    def __init__(self, structure: ProjectStructure):
        self._structure = structure
        self._owners_by_name: dict[str, list[str]] = {}
        for method in structure.methods:
            owners = self._owners_by_name.setdefault(method.name, [])
            if method.parent_name not in owners:
                owners.append(method.parent_name)

    def resolve(self, caller: CodeEntity, call_name: str) -> str:
        owners = self._owners_by_name.get(call_name)
        if owners:
            return ir_id(EntityKind.METHOD, owners[0], call_name)

        for member in self._structure.members_of(caller.parent_name, EntityKind.FIELD):
            if not member.field_type:
                continue
            type_name = base_type_name(member.field_type)
            if type_name and type_name not in PRIMITIVE_TYPES:
                return ir_id(EntityKind.METHOD, type_name, call_name)

        return call_name

    def candidates(self, call_name: str) -> list[str]:
        """Every ``Owner#name`` id a call name could refer to."""
        return [ir_id(EntityKind.METHOD, owner, call_name) for owner in self._owners_by_name.get(call_name, [])]

    def is_ambiguous(self, call_name: str) -> bool:
        return len(self._owners_by_name.get(call_name, [])) > 1


@timed("call_graph")
def build_call_graph(structure: ProjectStructure, resolver: CallResolver | None = None) -> CallGraph:
    """Build the call graph of every method in the project."""
    resolver = resolver or CallResolver(structure)
    graph = CallGraph()
    unresolved = 0

    for method in structure.methods:
        caller_id = ir_id(EntityKind.METHOD, method.parent_name, method.name)
        graph.add_method(caller_id)
        for call_name in method.called_names:
            callee_id = resolver.resolve(method, call_name)
            if callee_id == call_name:
                unresolved += 1
            graph.add_call(caller_id, callee_id)

    logger.debug(
        f"Call graph: {len(graph)} nodes, {graph.edge_count} edges, {unresolved} unresolved calls"
    )
    return graph
