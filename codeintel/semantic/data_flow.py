"""Per-method input/output signatures linked along call-graph edges.

Connections are structural (caller -> callee), not a traced value flow: no
alias or argument-binding analysis is done.
"""

from dataclasses import dataclass, field
from typing import Any

from ..extraction.models.entities import CodeEntity, EntityKind
from ..extraction.models.ir import ir_id
from ..extraction.models.project import ProjectStructure
from ..utils.logging import get_logger
from ..utils.metrics import timed
from .call_graph import CallGraph

logger = get_logger("data_flow")

RETURN_OUTPUT = "return"


@dataclass
class DataFlowNode:
    """Typed inputs and outputs of one method plus the methods it feeds."""

    method_id: str
    inputs: dict[str, str] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)
    connections: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, Any]:
        return {
            "methodId": self.method_id,
            "inputs": dict(self.inputs),
            "outputs": dict(self.outputs),
            "connections": sorted(self.connections),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DataFlowNode":
        return cls(
            method_id=data["methodId"],
            inputs=dict(data.get("inputs", {})),
            outputs=dict(data.get("outputs", {})),
            connections=set(data.get("connections", [])),
        )


class DataFlowAnalyzer:
    """One data-flow node per method id."""

    def __init__(self) -> None:
        self._nodes: dict[str, DataFlowNode] = {}

    def build_node(self, method: CodeEntity) -> DataFlowNode:
        """Inputs from the parameter list, a ``return`` output unless the method is void."""
        node = DataFlowNode(method_id=ir_id(EntityKind.METHOD, method.parent_name, method.name))
        node.inputs.update(method.parameters)
        if method.return_type and method.return_type != "void":
            node.outputs[RETURN_OUTPUT] = method.return_type
        return node

    def add_node(self, node: DataFlowNode) -> None:
        self._nodes[node.method_id] = node

    def connect_nodes(self, source_id: str, target_id: str) -> bool:
        """Link ``source -> target``. Both methods must have a node."""
        source = self._nodes.get(source_id)
        if source is None or target_id not in self._nodes:
            return False
        source.connections.add(target_id)
        return True

    def connect_from_call_graph(self, call_graph: CallGraph) -> int:
        """Mirror every resolvable call-graph edge. Returns the number of connections made."""
        return sum(1 for caller, callee in call_graph.edges() if self.connect_nodes(caller, callee))

    def get_node(self, method_id: str) -> DataFlowNode | None:
        return self._nodes.get(method_id)

    def all_nodes(self) -> list[DataFlowNode]:
        return list(self._nodes.values())

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @timed("data_flow")
    def analyze(self, structure: ProjectStructure, call_graph: CallGraph) -> None:
        """Build the nodes of every method, then connect them along the call graph."""
        for method in structure.methods:
            self.add_node(self.build_node(method))
        connected = self.connect_from_call_graph(call_graph)
        logger.debug(f"Data flow: {self.node_count} nodes, {connected} connections")
