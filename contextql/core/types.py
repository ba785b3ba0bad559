from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple

from ..errors import UnknownDatatype

__all__ = [
    'Datatype',
    'Cardinality',
    'ScalarType',
    'ColumnDescriptor',
    'RelationshipDescriptor',
    'map_type',
    'scalar_for',
]


class Datatype(str, Enum):
    STRING = 'string'
    INT = 'int'
    FLOAT = 'float'
    BOOLEAN = 'boolean'
    DATE = 'date'


class Cardinality(str, Enum):
    ONE_TO_MANY = 'one_to_many'
    ONE_TO_ONE = 'one_to_one'


@dataclass(frozen=True)
class ScalarType:
    """GraphQL scalar produced by the type mapper.

    Attributes:
        graphql_name: Built-in GraphQL scalar name (String, Int, Float, Boolean).
        python_type: The Python type Strawberry maps to that scalar.
        nullable: False renders the scalar as non-null (``String!``).
        temporal: True for ``date`` columns, whose values are ISO-8601 strings.
    """

    graphql_name: str
    python_type: type
    nullable: bool = True
    temporal: bool = False

    @property
    def annotation(self) -> Any:
        """Python annotation understood by Strawberry."""
        return Optional[self.python_type] if self.nullable else self.python_type

    def as_nullable(self) -> 'ScalarType':
        if self.nullable:
            return self
        return ScalarType(self.graphql_name, self.python_type, True, self.temporal)

    def __str__(self) -> str:  # pragma: no cover - debugging aid
        return self.graphql_name if self.nullable else f"{self.graphql_name}!"


_SCALARS = {
    Datatype.STRING: ('String', str, False),
    Datatype.INT: ('Int', int, False),
    Datatype.FLOAT: ('Float', float, False),
    Datatype.BOOLEAN: ('Boolean', bool, False),
    # no native date scalar: dates travel as strings
    Datatype.DATE: ('String', str, True),
}

_PYTHON_TYPES = {
    str: Datatype.STRING,
    int: Datatype.INT,
    float: Datatype.FLOAT,
    bool: Datatype.BOOLEAN,
}


def _coerce_datatype(datatype: Any) -> Optional[Datatype]:
    if isinstance(datatype, Datatype):
        return datatype
    if isinstance(datatype, str):
        try:
            return Datatype(datatype.lower())
        except ValueError:
            return None
    return None


def map_type(datatype: Any, nullable: bool, *, column: Optional[str] = None) -> ScalarType:
    """Map a column datatype to its GraphQL scalar.

    Raises:
        UnknownDatatype: ``datatype`` is not string, int, float, boolean or date.
    """
    dt = _coerce_datatype(datatype)
    if dt is None:
        raise UnknownDatatype(datatype, column or '<unnamed>')
    graphql_name, py_type, temporal = _SCALARS[dt]
    return ScalarType(graphql_name, py_type, bool(nullable), temporal)


def scalar_for(value_type: Any) -> ScalarType:
    """Nullable scalar for a user supplied argument type.

    Accepts ``str``/``int``/``float``/``bool``, a :class:`Datatype` (or its
    string value) or an existing :class:`ScalarType`.
    """
    if isinstance(value_type, ScalarType):
        return value_type.as_nullable()
    dt = _PYTHON_TYPES.get(value_type) if isinstance(value_type, type) else _coerce_datatype(value_type)
    if dt is None:
        raise UnknownDatatype(value_type)
    return map_type(dt, True)


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    datatype: Any
    is_nullable: bool = False
    is_identity: bool = False
    is_virtual: bool = False
    is_primary: bool = False
    description: Optional[str] = None

    @property
    def insertable(self) -> bool:
        """Whether the column takes a value on insert/update."""
        return not (self.is_identity or self.is_virtual)

    @property
    def optional_on_insert(self) -> bool:
        return self.is_nullable or self.is_identity or self.is_virtual


@dataclass(frozen=True)
class RelationshipDescriptor:
    """One edge of a table's relationship tree.

    Attributes:
        key: Name under which the related records are exposed (e.g. "UserRoles").
        cardinality: One-to-many relations expose a list, one-to-one a single record.
        table: Referenced table name.
        keys: ``(local_key, foreign_key)``; the local key lives on the parent table,
            the foreign key on ``table``.
        columns: Columns of the referenced table.
        relationships: Nested relationships of the referenced table.
    """

    key: str
    cardinality: Cardinality
    table: str
    keys: Tuple[str, str]
    columns: Tuple[ColumnDescriptor, ...] = ()
    relationships: Tuple['RelationshipDescriptor', ...] = ()

    @property
    def many(self) -> bool:
        return self.cardinality == Cardinality.ONE_TO_MANY
