from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..errors import CyclicRelationship
from ..naming import record_type_name
from .types import ColumnDescriptor, RelationshipDescriptor, ScalarType, map_type

__all__ = [
    'FieldDescriptor',
    'CompositeTypeDescriptor',
    'TypeCache',
    'build_record_type',
    'build_flat_type',
    'build_relationship_fields',
]


@dataclass(frozen=True)
class FieldDescriptor:
    """A field of a generated composite type: a column or a nested relation."""

    name: str
    description: Optional[str] = None
    scalar: Optional[ScalarType] = None
    composite: Optional['CompositeTypeDescriptor'] = None
    many: bool = False

    @property
    def is_relation(self) -> bool:
        return self.composite is not None


@dataclass(frozen=True)
class CompositeTypeDescriptor:
    """Structural type exposed to callers for a table or a relationship shape.

    ``origin`` is the table/relation path the descriptor was first built from;
    it is kept for diagnostics only.
    """

    name: str
    fields: Tuple[FieldDescriptor, ...]
    description: Optional[str] = None
    origin: Tuple[str, ...] = ()

    def field(self, name: str) -> Optional[FieldDescriptor]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]


class TypeCache:
    """Composite types generated during one schema build, keyed by name.

    A fresh cache is created for every build; two relationship paths that
    generate the same name share the first descriptor.
    """

    def __init__(self):
        self._types: Dict[str, CompositeTypeDescriptor] = {}

    def get(self, name: str) -> Optional[CompositeTypeDescriptor]:
        return self._types.get(name)

    def add(self, descriptor: CompositeTypeDescriptor) -> CompositeTypeDescriptor:
        return self._types.setdefault(descriptor.name, descriptor)

    def clear(self) -> None:
        self._types.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __iter__(self) -> Iterator[CompositeTypeDescriptor]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)


def _column_description(column: ColumnDescriptor, table: str) -> str:
    return column.description or (
        f'Property that represents the column, "{column.name}", within the table "{table}".'
    )


def _column_fields(columns: Iterable[ColumnDescriptor], table: str, *, identity_nullable: bool) -> List[FieldDescriptor]:
    out: List[FieldDescriptor] = []
    for col in columns:
        nullable = col.is_nullable or (identity_nullable and col.is_identity)
        out.append(FieldDescriptor(
            name=col.name,
            description=_column_description(col, table),
            scalar=map_type(col.datatype, nullable, column=col.name),
        ))
    return out


def build_relationship_fields(
    relationships: Sequence[RelationshipDescriptor],
    table: str,
    cache: TypeCache,
    path: Tuple[str, ...] = (),
) -> List[FieldDescriptor]:
    """Recursively build relation fields for ``table``'s relationship tree.

    ``path`` holds the tables above ``table`` (``table`` itself excluded).
    """
    lineage = path + (table,)
    out: List[FieldDescriptor] = []
    for rel in relationships or ():
        if rel.table in lineage:
            raise CyclicRelationship(lineage + (rel.table,))
        nested = _column_fields(rel.columns, rel.table, identity_nullable=False)
        nested.extend(build_relationship_fields(rel.relationships, rel.table, cache, lineage))
        composite = cache.add(CompositeTypeDescriptor(
            name=record_type_name(rel.key, rel.many),
            fields=tuple(nested),
            description=f'Model representing records from "{rel.key}" that is a relationship from the table, "{table}".',
            origin=lineage + (rel.key,),
        ))
        if rel.many:
            desc = f'Records from the table, "{rel.table}", that relate to another table, "{table}".'
        else:
            desc = f'Record from the table, "{rel.table}", that relates to another table, "{table}".'
        out.append(FieldDescriptor(name=rel.key, description=desc, composite=composite, many=rel.many))
    return out


def build_record_type(binding, cache: TypeCache) -> CompositeTypeDescriptor:
    """Query return shape for a table: its columns plus its relationship tree."""
    name = f"{binding.name}Records"
    cached = cache.get(name)
    if cached is not None:
        return cached
    fields = _column_fields(binding.columns, binding.table, identity_nullable=True)
    fields.extend(build_relationship_fields(binding.relationships, binding.table, cache))
    return cache.add(CompositeTypeDescriptor(
        name=name,
        fields=tuple(fields),
        description=f'Model representing records from "{binding.table}".',
        origin=(binding.table,),
    ))


def build_flat_type(binding, cache: TypeCache) -> CompositeTypeDescriptor:
    """Insert return shape for a table: columns only."""
    cached = cache.get(binding.name)
    if cached is not None:
        return cached
    return cache.add(CompositeTypeDescriptor(
        name=binding.name,
        fields=tuple(_column_fields(binding.columns, binding.table, identity_nullable=False)),
        description=f'Model representing records from "{binding.table}".',
        origin=(binding.table,),
    ))
