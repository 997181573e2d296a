from __future__ import annotations

import allure
import pytest

from taskmatch.models import SimilarTask, SkillView
from taskmatch.similarity import SimilarityFinder, similarity, trigrams, word_similarity

pytestmark = [
    allure.epic("Skill Inference"),
    allure.feature("Similar Task Search"),
]

FRONTEND = SkillView(id=1, name="Frontend")
BACKEND = SkillView(id=2, name="Backend")


class StaticCorpus:
    def __init__(self, *titles: str) -> None:
        self.tasks = [
            SimilarTask(id=index, title=title, skills=[FRONTEND])
            for index, title in enumerate(titles, start=1)
        ]

    def list_with_skills(self) -> list[SimilarTask]:
        return list(self.tasks)


def test_trigrams_pad_each_word() -> None:
    assert trigrams("Cat") == {"  c", " ca", "cat", "at "}
    assert trigrams("a-b") == {"  a", " a ", "  b", " b "}
    assert trigrams("  ") == set()


def test_similarity_ignores_case_and_word_order() -> None:
    assert similarity("Page Login", "login page") == pytest.approx(1.0)
    assert similarity("", "") == 0.0


def test_word_similarity_is_share_of_query_trigrams() -> None:
    assert word_similarity("login", "Build login page") == pytest.approx(1.0)
    assert similarity("login", "Build login page") == pytest.approx(6 / 17)
    assert word_similarity("", "anything") == 0.0


def test_find_similar_orders_by_score_descending() -> None:
    finder = SimilarityFinder(StaticCorpus("Login page styling", "Build login page"))

    matches = finder.find_similar("Build login page")

    assert [match.title for match in matches] == ["Build login page", "Login page styling"]


def test_find_similar_ties_keep_store_order() -> None:
    finder = SimilarityFinder(StaticCorpus("Build login page", "Login page styling"))

    matches = finder.find_similar("login page")

    assert [match.id for match in matches] == [1, 2]


def test_find_similar_excludes_unrelated_and_applies_limit() -> None:
    finder = SimilarityFinder(
        StaticCorpus("Build login page", "Login page styling", "Database backup"),
    )

    assert [match.title for match in finder.find_similar("login page", limit=1)] == [
        "Build login page",
    ]
    assert finder.find_similar("Quarterly tax report") == []
    assert finder.find_similar("login page", limit=0) == []


def test_find_similar_uses_keywords_for_subset_matching() -> None:
    finder = SimilarityFinder(StaticCorpus("Login page styling"))

    assert finder.find_similar("Something else") == []
    matches = finder.find_similar("Something else", keywords=["styling"])
    assert [match.title for match in matches] == ["Login page styling"]


def test_find_similar_respects_configured_thresholds() -> None:
    finder = SimilarityFinder(
        StaticCorpus("Login page styling"),
        similarity_threshold=1.0,
        word_similarity_threshold=1.0,
    )

    assert finder.find_similar("login styling") == []
