from typing import Optional

import pytest

from contextql.core.types import ColumnDescriptor, Datatype, ScalarType, map_type, scalar_for
from contextql.errors import ConfigurationError, UnknownDatatype


@pytest.mark.parametrize(
    "datatype, graphql_name, python_type",
    [
        ("string", "String", str),
        ("int", "Int", int),
        ("float", "Float", float),
        ("boolean", "Boolean", bool),
        ("date", "String", str),
        (Datatype.INT, "Int", int),
    ],
)
def test_map_type_table(datatype, graphql_name, python_type):
    scalar = map_type(datatype, True)
    assert scalar.graphql_name == graphql_name
    assert scalar.python_type is python_type
    assert scalar.nullable is True


def test_map_type_non_null():
    scalar = map_type("string", False)
    assert scalar.nullable is False
    assert scalar.annotation is str
    assert map_type("string", True).annotation == Optional[str]


def test_dates_travel_as_strings():
    scalar = map_type("date", False)
    assert scalar.temporal is True
    assert scalar.graphql_name == "String"


def test_unknown_datatype_names_the_column():
    with pytest.raises(UnknownDatatype) as exc:
        map_type("largebinary", True, column="Data")
    assert "Could not determine type of Data" in str(exc.value)
    assert isinstance(exc.value, ConfigurationError)
    assert isinstance(exc.value, ValueError)


def test_scalar_for_user_types():
    assert scalar_for(int) == ScalarType("Int", int, True)
    assert scalar_for("float").graphql_name == "Float"
    assert scalar_for(Datatype.BOOLEAN).python_type is bool
    assert scalar_for(ScalarType("String", str, False)).nullable is True


def test_scalar_for_rejects_unsupported_types():
    with pytest.raises(UnknownDatatype):
        scalar_for(bytes)
    with pytest.raises(UnknownDatatype):
        scalar_for("uuid")


def test_column_insert_flags():
    identity = ColumnDescriptor("Id", "int", is_identity=True, is_primary=True)
    required = ColumnDescriptor("FirstName", "string")
    nullable = ColumnDescriptor("LastName", "string", is_nullable=True)
    virtual = ColumnDescriptor("FullName", "string", is_virtual=True)
    assert not identity.insertable and identity.optional_on_insert
    assert required.insertable and not required.optional_on_insert
    assert nullable.insertable and nullable.optional_on_insert
    assert not virtual.insertable and virtual.optional_on_insert
