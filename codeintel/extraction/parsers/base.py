"""Parsing frontend: tree-sitter bootstrap, declaration tree types and parser registry."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from tree_sitter import Language, Node, Parser

from ...errors import ExtractionError
from ..models.entities import EntityKind


@dataclass
class VariableDeclarator:
    """One variable of a field declaration (``int a = 1, b;`` has two)."""

    name: str
    initializer: str | None = None
    start_line: int = 0
    end_line: int = 0


@dataclass
class Declaration:
    """A declaration node produced by the frontend.

    Types carry ``members`` (methods and fields) and ``nested`` types; the
    tree is at most type -> member deep, apart from nesting of types.
    """

    kind: EntityKind
    name: str
    start_line: int = 0
    end_line: int = 0
    modifiers: list[str] = field(default_factory=list)
    documentation: str = ""

    # Types
    extends: list[str] = field(default_factory=list)
    implements: list[str] = field(default_factory=list)
    constants: list[str] = field(default_factory=list)
    members: list["Declaration"] = field(default_factory=list)
    nested: list["Declaration"] = field(default_factory=list)

    # Methods
    return_type: str | None = None
    parameters: list[tuple[str, str]] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)
    body: str | None = None

    # Fields
    field_type: str | None = None
    variables: list[VariableDeclarator] = field(default_factory=list)


@dataclass
class SourceUnit:
    """Parsed content of one source file."""

    file_path: str
    package: str = ""
    declarations: list[Declaration] = field(default_factory=list)
    line_count: int = 0
    has_errors: bool = False


class BaseParser(ABC):
    """Abstract base class for language-specific tree-sitter frontends."""

    def __init__(self, allow_partial: bool = False):
        self.allow_partial = allow_partial
        self._parser: Parser | None = None
        self._language: Language | None = None

    @property
    @abstractmethod
    def language(self) -> str:
        """Name of the language this parser handles."""
        ...

    @property
    @abstractmethod
    def file_extensions(self) -> list[str]:
        ...

    @abstractmethod
    def _init_language(self) -> Language:
        """Initialize the tree-sitter language."""
        ...

    def get_parser(self) -> Parser:
        """Get or create the tree-sitter parser."""
        if self._parser is None:
            self._parser = Parser()
            self._language = self._init_language()
            self._parser.language = self._language
        return self._parser

    def parse_file(self, file_path: Path, root: Path | None = None) -> SourceUnit:
        """Parse a source file.

        Args:
            file_path: Path to the source file
            root: Project root; the unit's ``file_path`` is made relative to it

        Raises:
            ExtractionError: The file cannot be read or has syntax errors
        """
        display_path = file_path.relative_to(root).as_posix() if root else file_path.as_posix()
        try:
            source = file_path.read_bytes()
        except OSError as e:
            raise ExtractionError(display_path, f"cannot read file: {e}") from e
        return self.parse_content(source, display_path)

    def parse_content(self, source: str | bytes, file_path: str) -> SourceUnit:
        """Parse source code content into a SourceUnit.

        Raises:
            ExtractionError: The content has syntax errors and partial
                extraction is disabled
        """
        if isinstance(source, str):
            source = source.encode("utf-8")

        tree = self.get_parser().parse(source)
        root_node = tree.root_node

        unit = SourceUnit(
            file_path=file_path,
            line_count=source.count(b"\n") + 1,
            has_errors=root_node.has_error,
        )
        if root_node.has_error and not self.allow_partial:
            line = self._first_error_line(root_node)
            raise ExtractionError(file_path, f"syntax error near line {line}")

        self._extract_declarations(root_node, source, unit)
        return unit

    @abstractmethod
    def _extract_declarations(self, root_node: Node, source: bytes, unit: SourceUnit) -> None:
        """Populate ``unit`` with the package and the top-level declarations."""
        ...

    # ------------------------------------------------------------------
    # Node helpers
    # ------------------------------------------------------------------

    def _get_node_text(self, node: Node | None, source: bytes) -> str:
        if node is None:
            return ""
        return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def _start_line(self, node: Node) -> int:
        return node.start_point[0] + 1

    def _end_line(self, node: Node) -> int:
        return node.end_point[0] + 1

    def _find_nodes(self, node: Node, node_types: list[str]) -> list[Node]:
        """Find all child nodes of given types (non-recursive)."""
        return [child for child in node.children if child.type in node_types]

    def _find_nodes_recursive(
        self,
        node: Node,
        node_types: list[str],
        stop_at: tuple[str, ...] = (),
    ) -> list[Node]:
        """Find all descendant nodes of given types, in source order.

        Descent stops below nodes whose type is in ``stop_at``.
        """
        results: list[Node] = []
        stack = list(reversed(node.children))
        while stack:
            current = stack.pop()
            if current.type in node_types:
                results.append(current)
            if current.type in stop_at:
                continue
            stack.extend(reversed(current.children))
        return results

    def _find_first_child(self, node: Node, node_type: str) -> Node | None:
        for child in node.children:
            if child.type == node_type:
                return child
        return None

    def _first_error_line(self, node: Node) -> int:
        for candidate in self._find_nodes_recursive(node, ["ERROR"]):
            return self._start_line(candidate)
        stack = [node]
        while stack:
            current = stack.pop()
            if current.is_missing:
                return self._start_line(current)
            stack.extend(current.children)
        return self._start_line(node)

    def _get_doc_comment(self, node: Node, source: bytes) -> str:
        """Documentation comment (``/** ... */``) directly preceding a node."""
        prev = node.prev_sibling
        while prev is not None and prev.type == "line_comment":
            prev = prev.prev_sibling
        if prev is None or prev.type not in ("block_comment", "comment"):
            return ""
        text = self._get_node_text(prev, source)
        if not text.startswith("/**"):
            return ""
        return clean_doc_comment(text)


def clean_doc_comment(text: str) -> str:
    """Strip comment markers and block tags, keeping the description text."""
    body = text.strip()
    body = body[3:] if body.startswith("/**") else body
    body = body[:-2] if body.endswith("*/") else body

    lines: list[str] = []
    for raw_line in body.splitlines():
        line = raw_line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        if line.startswith("@"):
            break
        if line:
            lines.append(line)
    return "\n".join(lines)


# Parser registry
_parsers: dict[str, type[BaseParser]] = {}


def register_parser(language: str):
    """Decorator to register a parser for a language."""

    def decorator(cls: type[BaseParser]) -> type[BaseParser]:
        _parsers[language] = cls
        return cls

    return decorator


def get_parser_for_file(file_path: Path, allow_partial: bool = False) -> BaseParser | None:
    """Get the appropriate parser for a file based on its extension."""
    ext = file_path.suffix.lower()

    for parser_cls in _parsers.values():
        instance = parser_cls(allow_partial=allow_partial)
        if ext in instance.file_extensions:
            return instance

    return None


def get_parser_for_language(language: str, allow_partial: bool = False) -> BaseParser | None:
    parser_cls = _parsers.get(language)
    if parser_cls:
        return parser_cls(allow_partial=allow_partial)
    return None
