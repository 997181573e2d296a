"""Fuzzy title matching used to find historical evidence for skill prediction.

Scoring follows trigram semantics: each word is lower-cased and padded with two
leading spaces and one trailing space before 3-character windows are taken.

- ``similarity`` is the Jaccard overlap of two trigram sets (whole-string match).
- ``word_similarity`` is the share of the query's trigrams found in the candidate
  (token-subset match), so short queries score well against longer titles that
  contain them regardless of word order.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Protocol

from taskmatch.models import SimilarTask

logger = logging.getLogger(__name__)

_WORD_PATTERN = re.compile(r"[^\W_]+", re.UNICODE)


class TaskCorpus(Protocol):
    """Source of stored task titles with their skills."""

    def list_with_skills(self) -> list[SimilarTask]:
        """Return every stored task in store iteration order."""
        raise NotImplementedError


def trigrams(text: str) -> set[str]:
    """Trigram set of a text, computed per word."""

    grams: set[str] = set()
    for word in _WORD_PATTERN.findall(text.lower()):
        padded = f"  {word} "
        for index in range(len(padded) - 2):
            grams.add(padded[index : index + 3])
    return grams


def similarity(left: str, right: str) -> float:
    """Whole-string trigram similarity in ``[0, 1]``."""

    left_grams = trigrams(left)
    right_grams = trigrams(right)
    union = left_grams | right_grams
    if not union:
        return 0.0
    return len(left_grams & right_grams) / len(union)


def word_similarity(query: str, candidate: str) -> float:
    """Share of the query's trigrams present in ``candidate``."""

    query_grams = trigrams(query)
    if not query_grams:
        return 0.0
    return len(query_grams & trigrams(candidate)) / len(query_grams)


class SimilarityFinder:
    """Return the stored tasks whose titles are most similar to a query title."""

    def __init__(
        self,
        corpus: TaskCorpus,
        *,
        similarity_threshold: float = 0.2,
        word_similarity_threshold: float = 0.3,
    ) -> None:
        self.corpus = corpus
        self.similarity_threshold = similarity_threshold
        self.word_similarity_threshold = word_similarity_threshold

    def find_similar(
        self,
        title: str,
        keywords: Sequence[str] | None = None,
        limit: int = 5,
    ) -> list[SimilarTask]:
        if limit <= 0:
            return []
        search_terms = " ".join(keywords) if keywords else title

        scored: list[tuple[float, SimilarTask]] = []
        for task in self.corpus.list_with_skills():
            whole = similarity(title, task.title)
            subset = word_similarity(search_terms, task.title)
            if whole > self.similarity_threshold or subset > self.word_similarity_threshold:
                scored.append((max(whole, subset), task))

        # sorted() is stable, so equal scores keep store order.
        scored = sorted(scored, key=lambda item: item[0], reverse=True)
        matches = [task for _, task in scored[:limit]]
        logger.debug("Found %d similar task(s) for title=%r", len(matches), title)
        return matches
