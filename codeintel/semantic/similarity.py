"""Bag-of-words similarity between methods.

Each method gets a term-frequency vector over its *own* vocabulary, in order
of first occurrence, L2-normalised. Vectors of different methods are not
aligned to a shared vocabulary, so the similarity is the dot product of the
two vectors truncated to the shorter length. This is an approximation of
cosine similarity, exact only when both methods list the same terms in the
same order.
"""

import re
from dataclasses import dataclass
from itertools import combinations
from typing import Any

import numpy as np

from ..extraction.models.entities import EntityKind
from ..extraction.models.project import ProjectStructure
from ..utils.logging import get_logger
from ..utils.metrics import timed

logger = get_logger("similarity")

_SEPARATOR_PATTERN = re.compile(r"[^a-z0-9_]")


def extract_terms(text: str) -> list[str]:
    """Lower-case and split on every character outside ``[a-z0-9_]``."""
    return _SEPARATOR_PATTERN.sub(" ", text.lower()).split()


def compute_feature_vector(text: str) -> np.ndarray:
    """L2-normalised term frequencies over the text's vocabulary."""
    counts: dict[str, int] = {}
    for term in extract_terms(text):
        counts[term] = counts.get(term, 0) + 1
    if not counts:
        return np.zeros(0, dtype=np.float64)
    vector = np.fromiter(counts.values(), dtype=np.float64, count=len(counts))
    return vector / np.linalg.norm(vector)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Dot product truncated to ``min(len(a), len(b))``. Symmetric."""
    length = min(len(a), len(b))
    if length == 0:
        return 0.0
    return float(np.dot(a[:length], b[:length]))


@dataclass(frozen=True)
class SimilarityPair:
    method1: str
    method2: str
    similarity: float

    def other(self, method_id: str) -> str:
        return self.method2 if self.method1 == method_id else self.method1

    def to_dict(self) -> dict[str, Any]:
        return {
            "method1": self.method1,
            "method2": self.method2,
            "similarity": round(self.similarity, 6),
        }


def _pair_key(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


class SimilarityAnalyzer:
    """Feature vectors per method id and a symmetric pair -> score cache."""

    def __init__(self) -> None:
        self._vectors: dict[str, np.ndarray] = {}
        self._scores: dict[tuple[str, str], float] = {}

    def compute_feature_vector(self, method_id: str, text: str) -> np.ndarray:
        vector = compute_feature_vector(text)
        self._vectors[method_id] = vector
        return vector

    def get_vector(self, method_id: str) -> np.ndarray | None:
        return self._vectors.get(method_id)

    @property
    def method_ids(self) -> list[str]:
        return list(self._vectors)

    def compute_similarities(self) -> int:
        """Score every unordered pair of methods. Returns the number of pairs."""
        self._scores.clear()
        for a, b in combinations(self._vectors, 2):
            self._scores[_pair_key(a, b)] = cosine_similarity(self._vectors[a], self._vectors[b])
        return len(self._scores)

    def get_similarity(self, a: str, b: str) -> float | None:
        if a == b and a in self._vectors:
            return cosine_similarity(self._vectors[a], self._vectors[a])
        return self._scores.get(_pair_key(a, b))

    def pairs(self, min_similarity: float = 0.0) -> list[SimilarityPair]:
        """Pairs at or above ``min_similarity``, best first."""
        result = [
            SimilarityPair(a, b, score)
            for (a, b), score in self._scores.items()
            if score >= min_similarity
        ]
        result.sort(key=lambda p: (-p.similarity, p.method1, p.method2))
        return result

    def find_potential_duplicates(self, threshold: float = 0.8) -> list[SimilarityPair]:
        return self.pairs(threshold)

    def find_similar(self, method_id: str, min_similarity: float = 0.0) -> list[SimilarityPair]:
        """Pairs involving ``method_id``, oriented so that ``method1`` is ``method_id``."""
        result: list[SimilarityPair] = []
        for (a, b), score in self._scores.items():
            if score < min_similarity or method_id not in (a, b):
                continue
            other = b if a == method_id else a
            result.append(SimilarityPair(method_id, other, score))
        result.sort(key=lambda p: (-p.similarity, p.method2))
        return result

    @timed("similarity")
    def analyze(self, structure: ProjectStructure) -> None:
        for ir in structure.irs:
            if ir.kind == EntityKind.METHOD:
                self.compute_feature_vector(ir.id, ir.text)
        pair_count = self.compute_similarities()
        logger.debug(f"Similarity: {len(self._vectors)} methods, {pair_count} pairs")
