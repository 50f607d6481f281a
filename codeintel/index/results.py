"""Search result model and reconstruction from stored index fields."""

from dataclasses import dataclass, field
from typing import Any

import tantivy

from . import schema as f


@dataclass
class SearchResult:
    """One ranked document returned by the index engine."""

    id: str
    name: str
    kind: str
    path: str
    score: float
    attributes: dict[str, Any] = field(default_factory=dict)
    relationships: dict[str, list[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "path": self.path,
            "score": self.score,
            "attributes": self.attributes,
            "relationships": self.relationships,
        }

    @classmethod
    def from_document(cls, doc: tantivy.Document, score: float) -> "SearchResult":
        kind = _first(doc, f.KIND)
        return cls(
            id=_first(doc, f.ID),
            name=_first(doc, f.NAME),
            kind=kind,
            path=_first(doc, f.PATH),
            score=float(score),
            attributes=_attributes(doc, kind),
            relationships=_relationships(doc),
        )


def _first(doc: tantivy.Document, name: str, default: Any = "") -> Any:
    value = doc.get_first(name)
    return default if value is None else value


def _relationships(doc: tantivy.Document) -> dict[str, list[str]]:
    relationships: dict[str, list[str]] = {}
    for term in doc.get_all(f.RELATIONS):
        kind, _, target = term.partition(":")
        relationships.setdefault(kind, []).append(target)
    return relationships


def _parameters(doc: tantivy.Document) -> dict[str, str]:
    params: dict[str, str] = {}
    for entry in doc.get_all(f.PARAMS):
        name, _, type_name = entry.partition(":")
        params[name] = type_name
    return params


def _attributes(doc: tantivy.Document, kind: str) -> dict[str, Any]:
    """Kind-specific attributes, with the same keys as the IR wire shape."""
    attributes: dict[str, Any] = {}

    start_line = doc.get_first(f.START_LINE)
    if start_line is not None:
        attributes["startLine"] = start_line
        attributes["endLine"] = _first(doc, f.END_LINE, start_line)
    file_path = doc.get_first(f.FILE_PATH)
    if file_path:
        attributes["filePath"] = file_path

    if kind in (f.FILE_KIND, f.SNIPPET_KIND):
        if kind == f.SNIPPET_KIND:
            attributes["snippet"] = _first(doc, f.SNIPPET)
            attributes["method"] = _first(doc, f.METHOD)
            attributes["class"] = _first(doc, f.CLASS_NAME)
        return attributes

    attributes["javadoc"] = _first(doc, f.JAVADOC)
    attributes["modifiers"] = list(doc.get_all(f.MODIFIERS))

    if kind in ("class", "interface", "enum"):
        attributes["package"] = _first(doc, f.PACKAGE)
        attributes["isInterface"] = kind == "interface"
        if kind == "enum":
            attributes["constants"] = list(doc.get_all(f.CONSTANTS))
    elif kind == "method":
        attributes["class"] = _first(doc, f.CLASS_NAME)
        attributes["returnType"] = _first(doc, f.RETURN_TYPE)
        attributes["parameters"] = _parameters(doc)
    elif kind == "field":
        attributes["class"] = _first(doc, f.CLASS_NAME)
        attributes["fieldType"] = _first(doc, f.FIELD_TYPE)
        initializer = doc.get_first(f.INITIALIZER)
        if initializer is not None:
            attributes["initializer"] = initializer
    return attributes
