"""Tests for call graph construction and call resolution."""

from codeintel.extraction.models.entities import CodeEntityBuilder, EntityKind
from codeintel.extraction.models.project import ProjectStructure
from codeintel.semantic.call_graph import CallGraph, CallResolver, build_call_graph


def method(name: str, owner: str, *calls: str):
    builder = CodeEntityBuilder(name, EntityKind.METHOD, owner)
    for call in calls:
        builder.add_call(call)
    return builder.build()


def structure_add(structure: ProjectStructure, entity):
    structure.add_entity(entity)
    return entity


# =============================================================================
# Graph
# =============================================================================


class TestCallGraph:
    def test_add_call_creates_nodes(self):
        graph = CallGraph()
        graph.add_call("A#run", "B#work")

        assert "A#run" in graph
        assert "B#work" in graph
        assert graph.get_callees("A#run") == ["B#work"]
        assert graph.get_callers("B#work") == ["A#run"]

    def test_duplicate_calls_collapse(self):
        graph = CallGraph()
        graph.add_call("A#run", "B#work")
        graph.add_call("A#run", "B#work")

        assert graph.edge_count == 1

    def test_unknown_method(self):
        graph = CallGraph()

        assert graph.get_node("Nope#x") is None
        assert graph.get_callers("Nope#x") == []
        assert graph.get_callees("Nope#x") == []

    def test_node_to_dict(self):
        graph = CallGraph()
        graph.add_call("A#run", "B#work")
        graph.add_call("A#run", "A#log")

        assert graph.get_node("A#run").to_dict() == {
            "methodId": "A#run",
            "callers": [],
            "callees": ["A#log", "B#work"],
        }

    def test_recursive_methods(self):
        graph = CallGraph()
        graph.add_call("A#even", "A#odd")
        graph.add_call("A#odd", "A#even")
        graph.add_call("A#loop", "A#loop")
        graph.add_call("A#main", "A#even")

        assert graph.recursive_methods() == ["A#even", "A#loop", "A#odd"]


# =============================================================================
# Resolution
# =============================================================================


class TestCallResolver:
    """Tests for the first-match resolution heuristic."""

    def test_first_owner_wins(self):
        structure = ProjectStructure()
        caller = structure_add(structure, method("main", "App", "save"))
        structure_add(structure, method("save", "FileRepo"))
        structure_add(structure, method("save", "DbRepo"))
        resolver = CallResolver(structure)

        assert resolver.resolve(caller, "save") == "FileRepo#save"
        assert resolver.candidates("save") == ["FileRepo#save", "DbRepo#save"]
        assert resolver.is_ambiguous("save")

    def test_field_type_fallback(self):
        structure = ProjectStructure()
        caller = structure_add(structure, method("run", "Service", "flush"))
        structure_add(structure, CodeEntityBuilder("count", EntityKind.FIELD, "Service").set_field_type("int").build())
        structure_add(
            structure,
            CodeEntityBuilder("cache", EntityKind.FIELD, "Service").set_field_type("Map<String, Integer>").build(),
        )

        assert CallResolver(structure).resolve(caller, "flush") == "Map#flush"

    def test_unresolved_call_keeps_name(self):
        structure = ProjectStructure()
        caller = structure_add(structure, method("run", "Service", "println"))

        assert CallResolver(structure).resolve(caller, "println") == "println"
        assert CallResolver(structure).candidates("println") == []


# =============================================================================
# Sample project
# =============================================================================


class TestBuildCallGraph:
    def test_sample_graph(self, structure):
        graph = build_call_graph(structure)

        assert len(graph) == 12
        assert graph.edge_count == 5
        assert set(graph.edges()) == {
            ("Calculator#add", "Calculator#remember"),
            ("Calculator#multiply", "Calculator#add"),
            ("Calculator#apply", "Calculator#add"),
            ("CalculatorUser#computeTotal", "Calculator#multiply"),
            ("CalculatorUser#reset", "Calculator#clear"),
        }

    def test_callers_of_add(self, structure):
        graph = build_call_graph(structure)
        assert sorted(graph.get_callers("Calculator#add")) == ["Calculator#apply", "Calculator#multiply"]

    def test_methods_without_calls_are_nodes(self, structure):
        graph = build_call_graph(structure)

        assert "Calculator#unused" in graph
        assert graph.get_node("Calculator#unused").callers == set()

    def test_no_recursion_in_sample(self, structure):
        assert build_call_graph(structure).recursive_methods() == []
