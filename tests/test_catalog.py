from __future__ import annotations

import allure
import pytest

from taskmatch.errors import EntityNotFoundError, InvalidRequestError

pytestmark = [
    allure.epic("Catalog"),
    allure.feature("Skills and Developers"),
]

PAYLOAD = {
    "skills": ["Frontend", "Backend", "DevOps"],
    "developers": [
        {"name": "Zoe", "skills": ["DevOps", "Backend"]},
        {"name": "Alice", "skills": ["Frontend"]},
    ],
}


def test_seed_inserts_and_lists_by_name(catalog_service) -> None:
    result = catalog_service.seed_catalog(PAYLOAD)

    assert result.skills_added == ["Frontend", "Backend", "DevOps"]
    assert result.developers_added == ["Zoe", "Alice"]
    assert [skill.name for skill in catalog_service.list_skills()] == [
        "Backend",
        "DevOps",
        "Frontend",
    ]
    developers = catalog_service.list_developers()
    assert [developer.name for developer in developers] == ["Alice", "Zoe"]
    assert sorted(skill.name for skill in developers[1].skills) == ["Backend", "DevOps"]


def test_seed_skips_existing_names(catalog_service) -> None:
    catalog_service.seed_catalog(PAYLOAD)

    again = catalog_service.seed_catalog(PAYLOAD)

    assert again.skills_added == []
    assert again.developers_added == []
    assert again.skipped == ["Frontend", "Backend", "DevOps", "Zoe", "Alice"]
    assert len(catalog_service.list_skills()) == 3


def test_seed_rejects_unknown_developer_skill_before_writing(catalog_service) -> None:
    payload = {"skills": ["Frontend"], "developers": [{"name": "Max", "skills": ["Haskell"]}]}

    with pytest.raises(InvalidRequestError, match=r"Unknown skill\(s\) for developer Max: Haskell"):
        catalog_service.seed_catalog(payload)

    assert catalog_service.list_skills() == []


@pytest.mark.parametrize(
    "payload",
    [
        {"skills": "Frontend"},
        {"skills": [""]},
        {"developers": [{"skills": []}]},
        {"developers": ["Alice"]},
    ],
)
def test_seed_rejects_malformed_payload(catalog_service, payload) -> None:
    with pytest.raises(InvalidRequestError):
        catalog_service.seed_catalog(payload)


def test_lookups(seeded_catalog, catalog_service) -> None:
    skill = catalog_service.get_skill(seeded_catalog["Backend"])
    developer = catalog_service.get_developer(seeded_catalog["Carol"])

    assert skill is not None
    assert skill.name == "Backend"
    assert catalog_service.get_skill(999) is None
    assert developer.skill_ids == {seeded_catalog["Frontend"], seeded_catalog["Backend"]}
    assert developer.to_payload()["name"] == "Carol"
    with pytest.raises(EntityNotFoundError, match="Developer with ID 999 not found"):
        catalog_service.get_developer(999)
