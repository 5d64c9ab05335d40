import pytest

from conftest import CampusUserFactory

pytestmark = pytest.mark.django_db


@pytest.mark.parametrize(
    "fields,expected",
    [
        ({"preferred_name": "Sammy", "first_name": "Sam", "last_name": "Student"}, "Sammy"),
        ({"first_name": "Sam", "last_name": "Student"}, "Sam Student"),
        ({"username": "sam_student@uni.test"}, "Sam Student"),
    ],
)
def test_display_name(campus_user_factory: CampusUserFactory, fields: dict[str, str], expected: str) -> None:
    defaults = {"first_name": "", "last_name": "", "preferred_name": ""}
    user = campus_user_factory(**{**defaults, **fields})

    assert user.display_name == expected


def test_institution_is_stripped_on_save(campus_user_factory: CampusUserFactory) -> None:
    user = campus_user_factory(institution="  University of Testing ")

    user.refresh_from_db()
    assert user.institution == "University of Testing"
    assert user.normalised_institution() == "university of testing"
