from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Optional, Tuple

import strawberry

from ..naming import singular
from .composite import CompositeTypeDescriptor, FieldDescriptor, TypeCache, build_flat_type, build_record_type
from .customization import (
    FILTER_PREFIX,
    AlteredArgument,
    CustomArgument,
    CustomizationSet,
    OperationKind,
)
from .types import ScalarType, map_type

__all__ = [
    'ArgumentRole',
    'ArgumentDescriptor',
    'OperationDescriptor',
    'RowsAffected',
    'ROWS_AFFECTED',
    'column_equals',
    'synthesize_query',
    'synthesize_insert',
    'synthesize_update',
    'synthesize_delete',
    'synthesize_operations',
]

_ARG_DESC_SKIP = 'Number of records to skip. (this will not work unless "take" is also provided)'
_ARG_DESC_TAKE = 'Number of records to retrieve.'
_INT = ScalarType('Int', int)


@strawberry.type(name="NumberOfRowsAffectedType", description="Number of rows affected by the database transaction.")
class RowsAffected:
    num_rows_affected: int = strawberry.field(
        name="numRowsAffected",
        description="Total number of rows affected by the transaction.",
    )


ROWS_AFFECTED = CompositeTypeDescriptor(
    name="NumberOfRowsAffectedType",
    fields=(
        FieldDescriptor(
            name="numRowsAffected",
            description="Total number of rows affected by the transaction.",
            scalar=ScalarType('Int', int, nullable=False),
        ),
    ),
    description="Number of rows affected by the database transaction.",
)


class ArgumentRole(str, Enum):
    PAGINATION = 'pagination'
    FILTER = 'filter'
    VALUE = 'value'


def _equals(column: str, model: Any, value: Any) -> Any:
    return model[column] == value


def column_equals(column: str) -> Callable[[Any, Any], Any]:
    """Default filter predicate: ``model[column] == value``."""
    return partial(_equals, column)


@dataclass(frozen=True)
class ArgumentDescriptor:
    """One argument of a synthesized operation.

    ``column`` is the column a filter or value argument targets; custom filter
    arguments have none. ``predicate`` is set for filter arguments only.
    """

    name: str
    value_type: ScalarType
    description: Optional[str] = None
    role: ArgumentRole = ArgumentRole.FILTER
    column: Optional[str] = None
    predicate: Optional[Callable[[Any, Any], Any]] = None

    @property
    def signature(self) -> Tuple[str, str, bool, Optional[str], str]:
        """Structural identity used to compare synthesized schemas."""
        return (self.name, self.value_type.graphql_name, self.value_type.nullable, self.description, self.role.value)


@dataclass(frozen=True)
class OperationDescriptor:
    kind: OperationKind
    name: str
    table: str
    arguments: Tuple[ArgumentDescriptor, ...]
    returns: CompositeTypeDescriptor
    many: bool = True
    description: Optional[str] = None

    def argument(self, name: str) -> Optional[ArgumentDescriptor]:
        for arg in self.arguments:
            if arg.name == name:
                return arg
        return None

    @property
    def argument_names(self):
        return [a.name for a in self.arguments]

    def filters(self) -> Tuple[ArgumentDescriptor, ...]:
        return tuple(a for a in self.arguments if a.role == ArgumentRole.FILTER)


def _alter(base: ArgumentDescriptor, alt: AlteredArgument) -> ArgumentDescriptor:
    return replace(
        base,
        name=alt.name,
        description=alt.description or base.description,
        value_type=alt.value_type or base.value_type,
        predicate=alt.predicate or base.predicate,
    )


def _custom(arg: CustomArgument) -> ArgumentDescriptor:
    return ArgumentDescriptor(
        name=arg.name,
        value_type=arg.value_type,
        description=arg.description,
        role=ArgumentRole.FILTER,
        predicate=arg.predicate,
    )


def _place(args: list, trailing: Dict[str, ArgumentDescriptor], base: ArgumentDescriptor, cset: CustomizationSet) -> None:
    """Append ``base`` (altered in place when changed without a rename)."""
    alt = cset.alteration(base.column)
    if alt is None:
        args.append(base)
    elif alt.renamed:
        trailing[alt.column] = _alter(base, alt)
    else:
        args.append(_alter(base, alt))


def _append_new_names(args: list, trailing: Dict[str, ArgumentDescriptor], cset: CustomizationSet) -> None:
    for item in cset.appended:
        if isinstance(item, CustomArgument):
            args.append(_custom(item))
        elif item.column in trailing:
            args.append(trailing[item.column])


def synthesize_query(binding, cache: TypeCache) -> OperationDescriptor:
    """List field named after the table: pagination, column filters, custom filters."""
    cset = binding.customization(OperationKind.QUERY)
    args = [
        ArgumentDescriptor('skip', _INT, _ARG_DESC_SKIP, ArgumentRole.PAGINATION),
        ArgumentDescriptor('take', _INT, _ARG_DESC_TAKE, ArgumentRole.PAGINATION),
    ]
    trailing: Dict[str, ArgumentDescriptor] = {}
    for col in binding.columns:
        if cset.is_removed(col.name):
            continue
        _place(args, trailing, ArgumentDescriptor(
            name=col.name,
            value_type=map_type(col.datatype, True, column=col.name),
            description=f'Use this argument to check equality for "{col.name}".',
            role=ArgumentRole.FILTER,
            column=col.name,
            predicate=column_equals(col.name),
        ), cset)
    _append_new_names(args, trailing, cset)
    return OperationDescriptor(
        kind=OperationKind.QUERY,
        name=binding.name,
        table=binding.table,
        arguments=tuple(args),
        returns=build_record_type(binding, cache),
        many=True,
        description=binding.description,
    )


def synthesize_insert(binding, cache: TypeCache) -> OperationDescriptor:
    cset = binding.customization(OperationKind.INSERT)
    args: list = []
    trailing: Dict[str, ArgumentDescriptor] = {}
    for col in binding.columns:
        if not col.insertable or cset.is_removed(col.name):
            continue
        required = '' if col.is_nullable else ' (required)'
        _place(args, trailing, ArgumentDescriptor(
            name=col.name,
            value_type=map_type(col.datatype, col.is_nullable, column=col.name),
            description=f'Use this argument for the initial value for the column, "{col.name}".{required}',
            role=ArgumentRole.VALUE,
            column=col.name,
        ), cset)
    _append_new_names(args, trailing, cset)
    return OperationDescriptor(
        kind=OperationKind.INSERT,
        name=f"insert{singular(binding.name)}",
        table=binding.table,
        arguments=tuple(args),
        returns=build_flat_type(binding, cache),
        many=True,
        description=f'Insert a record into the "{binding.table}" database table.',
    )


def synthesize_update(binding, cache: TypeCache) -> OperationDescriptor:
    """``filterBy_<col>`` filters first, then ``<col>`` values, then custom filters."""
    cset = binding.customization(OperationKind.UPDATE)
    args: list = []
    trailing: Dict[str, ArgumentDescriptor] = {}
    kept = [c for c in binding.columns if not cset.is_removed(c.name)]
    for col in kept:
        _place(args, trailing, ArgumentDescriptor(
            name=f"{FILTER_PREFIX}{col.name}",
            value_type=map_type(col.datatype, True, column=col.name),
            description=f'Use this argument to check equality for "{col.name}" to determine what record(s) to update.',
            role=ArgumentRole.FILTER,
            column=col.name,
            predicate=column_equals(col.name),
        ), cset)
    for col in kept:
        if not col.insertable:
            continue
        args.append(ArgumentDescriptor(
            name=col.name,
            value_type=map_type(col.datatype, True, column=col.name),
            description=f'Use this argument to set the column "{col.name}" for all records qualified for update.',
            role=ArgumentRole.VALUE,
            column=col.name,
        ))
    _append_new_names(args, trailing, cset)
    return OperationDescriptor(
        kind=OperationKind.UPDATE,
        name=f"update{singular(binding.name)}",
        table=binding.table,
        arguments=tuple(args),
        returns=ROWS_AFFECTED,
        many=False,
        description=f'Update a record in the "{binding.table}" database table.',
    )


def synthesize_delete(binding, cache: TypeCache) -> OperationDescriptor:
    cset = binding.customization(OperationKind.DELETE)
    args: list = []
    trailing: Dict[str, ArgumentDescriptor] = {}
    for col in binding.columns:
        if cset.is_removed(col.name):
            continue
        _place(args, trailing, ArgumentDescriptor(
            name=col.name,
            value_type=map_type(col.datatype, True, column=col.name),
            description=f'Delete a record from {binding.table} by checking equality of {col.name}.',
            role=ArgumentRole.FILTER,
            column=col.name,
            predicate=column_equals(col.name),
        ), cset)
    _append_new_names(args, trailing, cset)
    return OperationDescriptor(
        kind=OperationKind.DELETE,
        name=f"delete{singular(binding.name)}",
        table=binding.table,
        arguments=tuple(args),
        returns=ROWS_AFFECTED,
        many=False,
        description=f'Delete a record from the "{binding.table}" database table.',
    )


_SYNTHESIZERS = {
    OperationKind.QUERY: synthesize_query,
    OperationKind.INSERT: synthesize_insert,
    OperationKind.UPDATE: synthesize_update,
    OperationKind.DELETE: synthesize_delete,
}


def synthesize_operations(binding, cache: TypeCache, kinds=tuple(OperationKind)) -> Dict[OperationKind, OperationDescriptor]:
    return {OperationKind(k): _SYNTHESIZERS[OperationKind(k)](binding, cache) for k in kinds}
