import pytest

from contextql.naming import python_name, record_type_name, singular


@pytest.mark.parametrize(
    "plural, expected",
    [
        ("Users", "User"),
        ("Tracks", "Track"),
        ("PlaylistTracks", "PlaylistTrack"),
        ("Categories", "Category"),
        ("Addresses", "Address"),
        ("Statuses", "Status"),
        ("Houses", "House"),
        ("Boxes", "Box"),
        ("Churches", "Church"),
        ("People", "Person"),
        ("Series", "Series"),
        ("Movies", "Movie"),
        ("Quizzes", "Quiz"),
        ("Analyses", "Analysis"),
        ("Indices", "Index"),
        ("Heroes", "Hero"),
        ("Aliases", "Alias"),
        ("Address", "Address"),
        ("Track", "Track"),
    ],
)
def test_singular(plural, expected):
    assert singular(plural) == expected


def test_record_type_name_marks_one_to_many():
    assert record_type_name("UserRoles", True) == "UserRoleRecordArray"
    assert record_type_name("Role", False) == "RoleRecord"


def test_python_name_is_a_legal_identifier():
    assert python_name("filterBy_Id") == "filterBy_Id"
    assert python_name("class") == "class_"
    assert python_name("1st") == "f_1st"
    assert python_name("_hidden") == "f__hidden"
    assert python_name("First Name") == "First_Name"


def test_python_name_dedupes_against_taken():
    taken = {"Name"}
    assert python_name("Name", taken) == "Name_1"
    assert python_name("Name", taken) == "Name_2"
    assert taken == {"Name", "Name_1", "Name_2"}
