"""Boolean query composition over the index schema.

Usage:
    builder = (
        QueryBuilder()
        .of_kind("method")
        .and_("calculate total")
        .has_relation("calls", "add")
        .not_("deprecated", fields=["javadoc"])
    )
    results = engine.advanced_search(builder, max_results=20)
"""

from typing import Callable, Sequence

import tantivy

from ..errors import QueryParseError
from ..extraction.models.entities import RelationType
from . import schema as f

QueryFactory = Callable[[tantivy.Index, tantivy.Schema], tantivy.Query]

_REGEX_META = set("\\.+*?()|[]{}^$")


def escape_regex(text: str) -> str:
    return "".join(f"\\{ch}" if ch in _REGEX_META else ch for ch in text)


def wildcard_to_regex(pattern: str) -> str:
    """``get*Name?`` -> ``get.*Name.``; everything else is literal."""
    parts: list[str] = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(escape_regex(ch))
    return "".join(parts)


def normalize_term(field_name: str, value: str) -> str:
    """Analysed fields hold lower-cased tokens; keyword fields hold the exact value."""
    return value.lower() if field_name in f.TEXT_FIELDS else value


def parse_text_query(index: tantivy.Index, text: str, fields: Sequence[str]) -> tantivy.Query:
    """Parse a user query string against ``fields``.

    Raises:
        QueryParseError: Invalid syntax or unknown field
    """
    if not text or not text.strip():
        raise QueryParseError(text, "query must not be empty")
    try:
        return index.parse_query(text, list(fields))
    except ValueError as e:
        raise QueryParseError(text, str(e)) from e


def _check_field(name: str, allowed: Sequence[str] = f.ALL_FIELDS) -> None:
    if name not in allowed:
        raise QueryParseError(name, f"unknown or unsupported field {name!r}")


class QueryBuilder:
    """Composes AND / OR / NOT clauses and field primitives into one boolean query.

    Clauses are compiled against an index by :meth:`build`. Only OR clauses
    means at least one must match; when AND clauses exist, OR clauses only
    contribute to the score. An empty builder matches every document.
    """

    def __init__(self) -> None:
        self._clauses: list[tuple[tantivy.Occur, QueryFactory]] = []

    def __len__(self) -> int:
        return len(self._clauses)

    @property
    def is_empty(self) -> bool:
        return not self._clauses

    def _add(self, occur: tantivy.Occur, factory: QueryFactory) -> "QueryBuilder":
        self._clauses.append((occur, factory))
        return self

    # Parsed text clauses

    def and_(self, text: str, fields: Sequence[str] | None = None) -> "QueryBuilder":
        return self._text(tantivy.Occur.Must, text, fields)

    def or_(self, text: str, fields: Sequence[str] | None = None) -> "QueryBuilder":
        return self._text(tantivy.Occur.Should, text, fields)

    def not_(self, text: str, fields: Sequence[str] | None = None) -> "QueryBuilder":
        return self._text(tantivy.Occur.MustNot, text, fields)

    def _text(self, occur: tantivy.Occur, text: str, fields: Sequence[str] | None) -> "QueryBuilder":
        target_fields = tuple(fields) if fields else f.LEVEL_FIELDS[f.IndexLevel.ALL]
        for name in target_fields:
            _check_field(name)
        return self._add(occur, lambda index, _schema: parse_text_query(index, text, target_fields))

    # Field primitives (all required matches)

    def term(self, field_name: str, value: str) -> "QueryBuilder":
        """Exact term match."""
        _check_field(field_name, f.KEYWORD_FIELDS + f.TEXT_FIELDS)
        term = normalize_term(field_name, value)
        return self._add(
            tantivy.Occur.Must,
            lambda _index, schema: tantivy.Query.term_query(schema, field_name, term),
        )

    def prefix(self, field_name: str, prefix: str) -> "QueryBuilder":
        _check_field(field_name, f.KEYWORD_FIELDS + f.TEXT_FIELDS)
        regex = escape_regex(normalize_term(field_name, prefix)) + ".*"
        return self._add(
            tantivy.Occur.Must,
            lambda _index, schema: tantivy.Query.regex_query(schema, field_name, regex),
        )

    def wildcard(self, field_name: str, pattern: str) -> "QueryBuilder":
        """``*`` matches any run of characters, ``?`` exactly one."""
        _check_field(field_name, f.KEYWORD_FIELDS + f.TEXT_FIELDS)
        regex = wildcard_to_regex(normalize_term(field_name, pattern))
        return self._add(
            tantivy.Occur.Must,
            lambda _index, schema: tantivy.Query.regex_query(schema, field_name, regex),
        )

    def range(
        self,
        field_name: str,
        lower: int,
        upper: int,
        include_lower: bool = True,
        include_upper: bool = True,
    ) -> "QueryBuilder":
        """Numeric range over the line fields (``start_line``, ``end_line``)."""
        _check_field(field_name, f.INTEGER_FIELDS)
        if lower > upper:
            raise QueryParseError(f"{field_name}:[{lower} TO {upper}]", "lower bound exceeds upper bound")
        return self._add(
            tantivy.Occur.Must,
            lambda _index, schema: tantivy.Query.range_query(
                schema,
                field_name,
                tantivy.FieldType.Integer,
                int(lower),
                int(upper),
                include_lower,
                include_upper,
            ),
        )

    def of_kind(self, *kinds: str) -> "QueryBuilder":
        """Restrict to documents of any of the given kinds."""
        if not kinds:
            raise QueryParseError("", "of_kind requires at least one kind")
        values = [str(getattr(k, "value", k)).lower() for k in kinds]
        return self._add(tantivy.Occur.Must, lambda _index, schema: kind_filter(schema, values))

    def has_relation(self, relation: RelationType | str, target: str) -> "QueryBuilder":
        try:
            term = f.relation_term(relation, target)
        except ValueError as e:
            raise QueryParseError(str(relation), str(e)) from e
        return self._add(
            tantivy.Occur.Must,
            lambda _index, schema: tantivy.Query.term_query(schema, f.RELATIONS, term),
        )

    def build(self, index: tantivy.Index) -> tantivy.Query:
        """Compile the clauses into one query for ``index``."""
        schema = index.schema
        if not self._clauses:
            return tantivy.Query.all_query()

        subqueries = [(occur, factory(index, schema)) for occur, factory in self._clauses]
        if all(occur == tantivy.Occur.MustNot for occur, _ in subqueries):
            subqueries.insert(0, (tantivy.Occur.Must, tantivy.Query.all_query()))
        return tantivy.Query.boolean_query(subqueries)


def kind_filter(schema: tantivy.Schema, kinds: Sequence[str]) -> tantivy.Query:
    """Exact match on one kind, or any of several."""
    if len(kinds) == 1:
        return tantivy.Query.term_query(schema, f.KIND, kinds[0])
    return tantivy.Query.boolean_query(
        [(tantivy.Occur.Should, tantivy.Query.term_query(schema, f.KIND, kind)) for kind in kinds]
    )
