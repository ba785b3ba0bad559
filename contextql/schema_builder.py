"""Emit Strawberry types from synthesized descriptors.

One :class:`StrawberryBuilder` is used per schema build; it owns the map of
generated Strawberry classes so that two builds never share (or clash on)
generated types. Only ``NumberOfRowsAffectedType`` is module level.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime, time
from typing import Annotated, Any, Callable, Dict, Iterable, List, Optional, Tuple

import strawberry
from strawberry.types import Info as StrawberryInfo

from .core.binding import TableBinding
from .core.composite import CompositeTypeDescriptor
from .core.customization import OperationKind
from .core.operations import ROWS_AFFECTED, OperationDescriptor, RowsAffected
from .core.resolver import resolve_operation
from .core.selection import selections_from_info
from .naming import python_name

__all__ = ['StrawberryBuilder']

_logger = logging.getLogger("contextql.schema")


def _read(root: Any, key: str) -> Any:
    if isinstance(root, Mapping):
        return root.get(key)
    return getattr(root, key, None)


def _make_scalar_resolver(key: str, annotation: Any, temporal: bool) -> Callable:
    def _resolver(self) -> Any:  # noqa: D401
        value = _read(self, key)
        if temporal and isinstance(value, (date, datetime, time)):
            return value.isoformat()
        return value
    _resolver.__annotations__ = {'return': annotation}
    return _resolver


def _make_relation_resolver(key: str, annotation: Any, many: bool) -> Callable:
    def _resolver(self) -> Any:  # noqa: D401
        value = _read(self, key)
        if many:
            return list(value or [])
        return value
    _resolver.__annotations__ = {'return': annotation}
    return _resolver


class StrawberryBuilder:
    """Turns composite and operation descriptors into Strawberry classes."""

    def __init__(self):
        self._types: Dict[str, Any] = {ROWS_AFFECTED.name: RowsAffected}

    @property
    def types(self) -> Dict[str, Any]:
        return dict(self._types)

    def composite(self, descriptor: CompositeTypeDescriptor) -> Any:
        existing = self._types.get(descriptor.name)
        if existing is not None:
            return existing
        annotations: Dict[str, Any] = {}
        namespace: Dict[str, Any] = {'__doc__': descriptor.description}
        taken: set[str] = set()
        for fdesc in descriptor.fields:
            attr = python_name(fdesc.name, taken)
            if fdesc.is_relation:
                child = self.composite(fdesc.composite)
                ann = List[child] if fdesc.many else Optional[child]
                resolver = _make_relation_resolver(fdesc.name, ann, fdesc.many)
            else:
                ann = fdesc.scalar.annotation
                resolver = _make_scalar_resolver(fdesc.name, ann, fdesc.scalar.temporal)
            annotations[attr] = ann
            namespace[attr] = strawberry.field(name=fdesc.name, description=fdesc.description, resolver=resolver)
        namespace['__annotations__'] = annotations
        plain = type(python_name(descriptor.name), (), namespace)
        st_type = strawberry.type(plain, name=descriptor.name, description=descriptor.description)
        self._types[descriptor.name] = st_type
        return st_type

    def return_annotation(self, operation: OperationDescriptor) -> Any:
        st_type = self.composite(operation.returns)
        return List[st_type] if operation.many else st_type

    def resolver(self, binding: TableBinding, operation: OperationDescriptor, return_annotation: Any) -> Callable:
        """Generate an async resolver whose parameters mirror the operation's arguments.

        Parameters are named ``arg_<n>`` and carry the GraphQL name through
        ``strawberry.argument(name=...)``; omitted arguments stay ``UNSET`` and
        are not forwarded.
        """
        async def _resolve(info, arguments: Dict[str, Any]):
            selections = selections_from_info(info) if operation.kind == OperationKind.QUERY else ()
            return await resolve_operation(binding, operation, arguments, selections)

        params = [f"arg_{i}=_UNSET" for i in range(len(operation.arguments))]
        func_name = f"_resolve_{python_name(operation.name)}"
        src = f"async def {func_name}(self, info{', ' if params else ''}{', '.join(params)}):\n"
        src += "    _args = {}\n"
        for i, arg in enumerate(operation.arguments):
            src += f"    if arg_{i} is not _UNSET:\n"
            src += f"        _args[{arg.name!r}] = arg_{i}\n"
        src += "    return await _resolve(info, _args)\n"
        ns: Dict[str, Any] = {'_resolve': _resolve, '_UNSET': strawberry.UNSET}
        exec(src, ns)
        generated_fn = ns[func_name]
        generated_fn.__module__ = __name__
        ann: Dict[str, Any] = {'info': StrawberryInfo}
        for i, arg in enumerate(operation.arguments):
            ann[f"arg_{i}"] = Annotated[
                arg.value_type.annotation,
                strawberry.argument(name=arg.name, description=arg.description),
            ]
        ann['return'] = return_annotation
        generated_fn.__annotations__ = ann
        return generated_fn

    def root(self, name: str, description: Optional[str], entries: Iterable[Tuple[TableBinding, OperationDescriptor]]) -> Any:
        entries = list(entries)
        annotations: Dict[str, Any] = {}
        namespace: Dict[str, Any] = {'__doc__': description}
        taken: set[str] = set()
        for binding, operation in entries:
            ret = self.return_annotation(operation)
            attr = python_name(operation.name, taken)
            annotations[attr] = ret
            namespace[attr] = strawberry.field(
                name=operation.name,
                description=operation.description,
                resolver=self.resolver(binding, operation, ret),
            )
        namespace['__annotations__'] = annotations
        plain = type(python_name(name), (), namespace)
        root_type = strawberry.type(plain, name=name, description=description)
        _logger.info("built root type %s with fields %s", name, [op.name for _, op in entries])
        return root_type
