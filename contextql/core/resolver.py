"""Translate resolved GraphQL arguments and selections into data-context calls.

Resolvers never mutate ``binding.context``: every ``where``/``include``/
``skip``/``take`` returns a new context, so each request works on its own
chain. ``arguments`` only holds the arguments the caller supplied (an explicit
``null`` is supplied, an omitted argument is not).
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from ..errors import UnscopedMutationRejected
from .customization import OperationKind
from .operations import ArgumentDescriptor, ArgumentRole, OperationDescriptor, RowsAffected
from .selection import Selection, plan_selection

__all__ = [
    'resolve_query',
    'resolve_insert',
    'resolve_update',
    'resolve_delete',
    'resolve_operation',
]

_logger = logging.getLogger("contextql.resolver")


def _condition(predicate: Callable[[Any, Any], Any], value: Any) -> Callable[[Any], Any]:
    return lambda model: predicate(model, value)


def _split(operation: OperationDescriptor, arguments: Mapping[str, Any]) -> List[Tuple[ArgumentDescriptor, Any]]:
    out = []
    for name, value in arguments.items():
        arg = operation.argument(name)
        if arg is None:
            raise ValueError(f"Unknown argument '{name}' for {operation.name}")
        out.append((arg, value))
    return out


def _apply_filters(context: Any, operation: OperationDescriptor, supplied: Sequence[Tuple[ArgumentDescriptor, Any]]):
    for arg, value in supplied:
        if arg.role != ArgumentRole.FILTER:
            continue
        _logger.debug("%s: where %s = %r", operation.name, arg.name, value)
        context = context.where(_condition(arg.predicate, value))
    return context


def _guard_scope(binding, operation: OperationDescriptor, supplied) -> None:
    if any(arg.role == ArgumentRole.FILTER for arg, _ in supplied):
        return
    if not binding.options.allow_unscoped:
        raise UnscopedMutationRejected(operation.kind.value, binding.table)
    _logger.warning("%s runs without filters against every record of '%s'", operation.name, binding.table)


async def resolve_query(binding, operation: OperationDescriptor, arguments: Mapping[str, Any], selections: Sequence[Selection]) -> List[Dict[str, Any]]:
    args = dict(arguments)
    skip = args.pop('skip', None)
    take = args.pop('take', None)
    context = _apply_filters(binding.context, operation, _split(operation, args))
    # skip only applies together with take
    if take is not None:
        _logger.debug("%s: take %s skip %s", operation.name, take, skip)
        context = context.take(take)
        if skip is not None:
            context = context.skip(skip)
    plan = plan_selection(selections, operation.returns)
    for path in plan.includes:
        _logger.debug("%s: include %s", operation.name, '.'.join(path))
        context = context.include(path)
    _logger.debug("%s: select %s", operation.name, plan.dotted_columns)
    return await context.select(plan.columns)


async def resolve_insert(binding, operation: OperationDescriptor, arguments: Mapping[str, Any], selections: Sequence[Selection] = ()) -> List[Dict[str, Any]]:
    record = {arg.column: value for arg, value in _split(operation, arguments)}
    _logger.debug("%s: insert %r", operation.name, record)
    rows = await binding.context.insert(record)
    _logger.debug("%s: inserted %d row(s)", operation.name, len(rows))
    return rows


async def resolve_update(binding, operation: OperationDescriptor, arguments: Mapping[str, Any], selections: Sequence[Selection] = ()) -> RowsAffected:
    supplied = _split(operation, arguments)
    _guard_scope(binding, operation, supplied)
    values = {arg.column: value for arg, value in supplied if arg.role == ArgumentRole.VALUE}
    if not values:
        _logger.debug("%s: nothing to set", operation.name)
        return RowsAffected(num_rows_affected=0)
    context = _apply_filters(binding.context, operation, supplied)
    count = await context.update(values)
    _logger.debug("%s: set %r on %d row(s)", operation.name, values, count)
    return RowsAffected(num_rows_affected=count)


async def resolve_delete(binding, operation: OperationDescriptor, arguments: Mapping[str, Any], selections: Sequence[Selection] = ()) -> RowsAffected:
    supplied = _split(operation, arguments)
    _guard_scope(binding, operation, supplied)
    context = _apply_filters(binding.context, operation, supplied)
    count = await context.delete()
    _logger.debug("%s: deleted %d row(s)", operation.name, count)
    return RowsAffected(num_rows_affected=count)


_RESOLVERS = {
    OperationKind.QUERY: resolve_query,
    OperationKind.INSERT: resolve_insert,
    OperationKind.UPDATE: resolve_update,
    OperationKind.DELETE: resolve_delete,
}


async def resolve_operation(binding, operation: OperationDescriptor, arguments: Mapping[str, Any], selections: Sequence[Selection] = ()):
    return await _RESOLVERS[operation.kind](binding, operation, arguments, selections)
