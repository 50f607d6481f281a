"""Concept extraction from documentation, identifiers and body text."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

import networkx as nx

from ..extraction.models.project import ProjectStructure
from ..utils.logging import get_logger
from ..utils.metrics import timed

logger = get_logger("concepts")

STOP_WORDS = frozenset(
    """
    a an the and or but if then else when at by for with about against between
    into through during before after above below from up down in out on off over
    under again further once here there all any both each few more most other
    some such no nor not only own same so than too very s t can will just don
    should now
    """.split()
)

MIN_TOKEN_LENGTH = 3

_SEPARATOR_PATTERN = re.compile(r"[^a-z0-9_]")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


class ConceptSource(str, Enum):
    DOCUMENTATION = "documentation"
    IDENTIFIER = "identifier"
    BODY = "body"


@dataclass(frozen=True)
class ConceptOccurrence:
    entity_id: str
    source: ConceptSource

    def to_dict(self) -> dict[str, Any]:
        return {"entityId": self.entity_id, "source": self.source.value}


def tokenize(text: str) -> list[str]:
    """Lower-case and split on every character outside ``[a-z0-9_]``."""
    return _SEPARATOR_PATTERN.sub(" ", text.lower()).split()


def split_identifier(name: str) -> str:
    """``calculateTotalPrice`` -> ``calculate Total Price``."""
    return _CAMEL_BOUNDARY.sub(" ", name)


def is_concept_token(token: str) -> bool:
    return len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS


class ConceptExtractor:
    """Concept -> occurrences map plus an undirected related-concept graph."""

    def __init__(self) -> None:
        self._occurrences: dict[str, dict[ConceptOccurrence, None]] = {}
        self._related = nx.Graph()

    def _record(self, concept: str, occurrence: ConceptOccurrence) -> None:
        self._occurrences.setdefault(concept, {})[occurrence] = None

    def process_text(self, entity_id: str, text: str, source: ConceptSource) -> None:
        """Record the unigram and bigram concepts of ``text``."""
        if not text:
            return
        tokens = tokenize(text)
        occurrence = ConceptOccurrence(entity_id, source)

        for token in tokens:
            if is_concept_token(token):
                self._record(token, occurrence)

        for first, second in zip(tokens, tokens[1:]):
            if first not in STOP_WORDS and second not in STOP_WORDS:
                self._record(f"{first} {second}", occurrence)
                if first != second:
                    self._related.add_edge(first, second)

    def get_entities(self, concept: str) -> list[ConceptOccurrence]:
        return list(self._occurrences.get(concept.strip().lower(), {}))

    def occurrence_count(self, concept: str) -> int:
        return len(self._occurrences.get(concept.strip().lower(), {}))

    def get_related_concepts(self, concept: str) -> list[str]:
        concept = concept.strip().lower()
        if concept not in self._related:
            return []
        return list(self._related.neighbors(concept))

    def rank_concepts(self, limit: int | None = None) -> list[tuple[str, int]]:
        """Concepts by descending occurrence count; ties keep first-seen order."""
        ranked = sorted(
            ((concept, len(occurrences)) for concept, occurrences in self._occurrences.items()),
            key=lambda item: -item[1],
        )
        return ranked[:limit] if limit is not None else ranked

    @property
    def concepts(self) -> list[str]:
        return list(self._occurrences)

    def items(self) -> list[tuple[str, list[ConceptOccurrence]]]:
        return [(concept, list(occ)) for concept, occ in self._occurrences.items()]

    @timed("concepts")
    def analyze(self, structure: ProjectStructure) -> None:
        for entity in structure.entities:
            entity_id = structure.ir_for(entity).id
            self.process_text(entity_id, entity.documentation, ConceptSource.DOCUMENTATION)
            self.process_text(entity_id, split_identifier(entity.name), ConceptSource.IDENTIFIER)
            self.process_text(
                entity_id,
                entity.body or structure.ir_for(entity).text,
                ConceptSource.BODY,
            )
        logger.debug(
            f"Concepts: {len(self._occurrences)} concepts, "
            f"{self._related.number_of_edges()} related pairs"
        )
