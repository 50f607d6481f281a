"""Document schema of the multi-level index and the level -> field routing table."""

from enum import Enum

import tantivy

from ..extraction.models.entities import RelationType

# Field names
ID = "id"
NAME = "name"
KIND = "kind"
PATH = "path"
FILE_PATH = "file_path"
PACKAGE = "package"
CLASS_NAME = "class_name"
METHOD = "method"
CONTENT = "content"
JAVADOC = "javadoc"
MODIFIERS = "modifiers"
RELATIONS = "relations"
PARAMS = "params"
RETURN_TYPE = "return_type"
FIELD_TYPE = "field_type"
INITIALIZER = "initializer"
CONSTANTS = "constants"
SNIPPET = "snippet"
START_LINE = "start_line"
END_LINE = "end_line"

# Exact-term fields: indexed as a single untokenized value
KEYWORD_FIELDS = (ID, KIND, FILE_PATH, PACKAGE, CLASS_NAME, METHOD, MODIFIERS, RELATIONS, CONSTANTS)

# Analysed fields: lower-cased and split by the default tokenizer
TEXT_FIELDS = (NAME, PATH, CONTENT, JAVADOC, PARAMS, RETURN_TYPE, FIELD_TYPE, INITIALIZER, SNIPPET)

INTEGER_FIELDS = (START_LINE, END_LINE)

ALL_FIELDS = KEYWORD_FIELDS + TEXT_FIELDS + INTEGER_FIELDS

# Document kinds besides the entity kinds
FILE_KIND = "file"
SNIPPET_KIND = "snippet"


class IndexLevel(str, Enum):
    """Granularity at which a search is executed."""

    FILE = "file"
    CLASS = "class"
    INTERFACE = "interface"
    METHOD = "method"
    FIELD = "field"
    SNIPPET = "snippet"
    ALL = "all"

    @classmethod
    def parse(cls, value: "str | IndexLevel") -> "IndexLevel":
        if isinstance(value, IndexLevel):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(level.value for level in cls)
            raise ValueError(f"Unknown index level {value!r}, expected one of: {valid}") from None


LEVEL_FIELDS: dict[IndexLevel, tuple[str, ...]] = {
    IndexLevel.FILE: (CONTENT, PATH),
    IndexLevel.CLASS: (NAME, CONTENT, JAVADOC),
    IndexLevel.INTERFACE: (NAME, CONTENT, JAVADOC),
    IndexLevel.METHOD: (NAME, CONTENT, JAVADOC, PARAMS, RETURN_TYPE),
    IndexLevel.FIELD: (NAME, CONTENT, JAVADOC, FIELD_TYPE),
    IndexLevel.SNIPPET: (SNIPPET,),
    IndexLevel.ALL: (NAME, CONTENT, JAVADOC),
}

# Kind terms a level is restricted to; ALL is unrestricted
LEVEL_KINDS: dict[IndexLevel, tuple[str, ...]] = {
    IndexLevel.FILE: (FILE_KIND,),
    IndexLevel.CLASS: ("class", "enum"),
    IndexLevel.INTERFACE: ("interface",),
    IndexLevel.METHOD: ("method",),
    IndexLevel.FIELD: ("field",),
    IndexLevel.SNIPPET: (SNIPPET_KIND,),
    IndexLevel.ALL: (),
}


def relation_term(relation: RelationType | str, target: str) -> str:
    """Synthetic ``<kind>:<target>`` term stored in the relations field."""
    return f"{RelationType.parse(relation).value}:{target}"


def build_schema() -> tantivy.Schema:
    """Build the schema shared by every document level."""
    builder = tantivy.SchemaBuilder()
    for name in KEYWORD_FIELDS:
        builder.add_text_field(name, stored=True, tokenizer_name="raw")
    for name in TEXT_FIELDS:
        builder.add_text_field(name, stored=True, tokenizer_name="default")
    for name in INTEGER_FIELDS:
        builder.add_integer_field(name, stored=True, indexed=True, fast=True)
    return builder.build()
