"""Per-table, per-operation argument customization.

Every registered table gets four :class:`CustomizationSet` handles (query,
insert, update, delete). They are handed to the ``configure`` callback of
:meth:`contextql.ContextQL.register_table` and support three primitives:

    def configure(c):
        c.query.add_argument('BytesLB', int, lambda m, v: m.Bytes >= v,
                             description='Lower bound for bytes to check.')
        c.query.remove_argument(lambda m: m.Composer)
        c.query.change_argument(
            lambda m: m.Bytes.as_('BytesRange')
                             .to(lambda m, v: m.Bytes.between(*map(int, v.split('-'))))
                             .typed_as(str)
        )

Columns are referenced through a :class:`ColumnSelector`; selectors return
:class:`ColumnRef` tokens (or an :class:`ArgumentChange` chained from one) and
only the returned value is used. Every primitive validates eagerly and raises a
:class:`contextql.errors.ConfigurationError` subclass on misuse.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from ..errors import (
    CannotRemoveRequiredInsertArgument,
    ConflictingCustomization,
    CustomizationNotSupported,
    DuplicateArgument,
    InvalidCustomization,
    SchemaFrozen,
    UnknownColumn,
)
from .types import ColumnDescriptor, ScalarType, scalar_for

__all__ = [
    'OperationKind',
    'Predicate',
    'ColumnRef',
    'ArgumentChange',
    'ColumnSelector',
    'CustomArgument',
    'AlteredArgument',
    'CustomizationSet',
    'Customizations',
    'FILTER_PREFIX',
    'PAGINATION_ARGUMENTS',
]

_logger = logging.getLogger("contextql.customization")

# predicate(model, value) -> condition understood by the data context
Predicate = Callable[[Any, Any], Any]

FILTER_PREFIX = 'filterBy_'
PAGINATION_ARGUMENTS = ('skip', 'take')


class OperationKind(str, Enum):
    QUERY = 'query'
    INSERT = 'insert'
    UPDATE = 'update'
    DELETE = 'delete'


@dataclass(frozen=True)
class ArgumentChange:
    """Immutable description of a change to a generated argument.

    Each chained call returns a new value; the registry commits the final one.
    """

    column: str
    name: Optional[str] = None
    description: Optional[str] = None
    value_type: Any = None
    predicate: Optional[Predicate] = None

    def as_(self, name: str) -> 'ArgumentChange':
        """Expose the argument under a new name."""
        return replace(self, name=name)

    def described_as(self, description: str) -> 'ArgumentChange':
        return replace(self, description=description)

    def typed_as(self, value_type: Any) -> 'ArgumentChange':
        return replace(self, value_type=value_type)

    def to(self, predicate: Predicate) -> 'ArgumentChange':
        """Replace the equality filter with ``predicate(model, value)``."""
        return replace(self, predicate=predicate)

    @property
    def is_empty(self) -> bool:
        return self.name is None and self.description is None and self.value_type is None and self.predicate is None


@dataclass(frozen=True)
class ColumnRef:
    """Token naming one column, returned by a :class:`ColumnSelector`."""

    column: str

    def change(self) -> ArgumentChange:
        return ArgumentChange(self.column)

    def as_(self, name: str) -> ArgumentChange:
        return self.change().as_(name)

    def described_as(self, description: str) -> ArgumentChange:
        return self.change().described_as(description)

    def typed_as(self, value_type: Any) -> ArgumentChange:
        return self.change().typed_as(value_type)

    def to(self, predicate: Predicate) -> ArgumentChange:
        return self.change().to(predicate)


class ColumnSelector:
    """Column namespace passed to selector callbacks (``m.Name`` or ``m['Name']``)."""

    def __init__(self, table: str, columns: Iterable[ColumnDescriptor]):
        self._table = table
        self._names = tuple(c.name for c in columns)

    def __getitem__(self, name: str) -> ColumnRef:
        if name not in self._names:
            raise UnknownColumn(self._table, name)
        return ColumnRef(name)

    def __getattr__(self, name: str) -> ColumnRef:
        if name.startswith('__'):
            raise AttributeError(name)
        return self[name]

    def __iter__(self):
        return (ColumnRef(n) for n in self._names)


@dataclass(frozen=True)
class CustomArgument:
    name: str
    value_type: ScalarType
    predicate: Predicate
    description: Optional[str] = None


@dataclass(frozen=True)
class AlteredArgument:
    """A generated argument redefined through ``change_argument``.

    ``name`` is the final argument name; ``renamed`` tells whether it differs
    from the generated one (the generated name is then suppressed). Unset
    ``description``/``value_type``/``predicate`` keep the generated defaults.
    """

    column: str
    name: str
    renamed: bool = False
    description: Optional[str] = None
    value_type: Optional[ScalarType] = None
    predicate: Optional[Predicate] = None


Selector = Union[str, ColumnRef, Callable[[ColumnSelector], Any]]


class CustomizationSet:
    """Suppressed, added and altered arguments of one operation of one table."""

    def __init__(self, kind: OperationKind, table: str, columns: Sequence[ColumnDescriptor]):
        self.kind = OperationKind(kind)
        self.table = table
        self._columns: Dict[str, ColumnDescriptor] = {c.name: c for c in columns}
        self._removed: List[str] = []
        self._custom: Dict[str, CustomArgument] = {}
        self._altered: Dict[str, AlteredArgument] = {}
        self._sequence: List[Union[CustomArgument, AlteredArgument]] = []
        self._frozen = False

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return (
            f"CustomizationSet({self.table}.{self.kind.value}, removed={self._removed}, "
            f"custom={list(self._custom)}, altered={list(self._altered)})"
        )

    # ----- read side -----
    @property
    def removed(self) -> Tuple[str, ...]:
        return tuple(self._removed)

    @property
    def custom(self) -> Tuple[CustomArgument, ...]:
        return tuple(self._custom.values())

    @property
    def altered(self) -> Tuple[AlteredArgument, ...]:
        return tuple(self._altered.values())

    @property
    def appended(self) -> Tuple[Union[CustomArgument, AlteredArgument], ...]:
        """Arguments that introduce a new name (custom and renamed), in registration order."""
        return tuple(a for a in self._sequence if isinstance(a, CustomArgument) or a.renamed)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def is_removed(self, column: str) -> bool:
        return column in self._removed

    def alteration(self, column: str) -> Optional[AlteredArgument]:
        return self._altered.get(column)

    def freeze(self) -> None:
        self._frozen = True

    def target_name(self, column: str) -> str:
        """Generated name of the argument a change of ``column`` applies to."""
        if self.kind == OperationKind.UPDATE:
            return f"{FILTER_PREFIX}{column}"
        return column

    def default_argument_names(self) -> List[str]:
        cols = list(self._columns.values())
        if self.kind == OperationKind.QUERY:
            return list(PAGINATION_ARGUMENTS) + [c.name for c in cols]
        if self.kind == OperationKind.INSERT:
            return [c.name for c in cols if c.insertable]
        if self.kind == OperationKind.UPDATE:
            return [f"{FILTER_PREFIX}{c.name}" for c in cols] + [c.name for c in cols if c.insertable]
        return [c.name for c in cols]

    def _taken_names(self) -> set[str]:
        taken = set(self.default_argument_names())
        taken.update(self._custom)
        taken.update(a.name for a in self._altered.values())
        return taken

    # ----- write side -----
    def _check_open(self) -> None:
        if self._frozen:
            raise SchemaFrozen(
                f"Cannot customize the {self.kind.value} arguments of '{self.table}' after schema synthesis has begun"
            )

    def _select(self, selector: Selector) -> List[Union[ColumnRef, ArgumentChange]]:
        if isinstance(selector, str):
            result: Any = ColumnSelector(self.table, self._columns.values())[selector]
        elif isinstance(selector, (ColumnRef, ArgumentChange)):
            result = selector
        elif callable(selector):
            result = selector(ColumnSelector(self.table, self._columns.values()))
        else:
            raise InvalidCustomization(f"Unsupported column selector: {selector!r}")
        items = list(result) if isinstance(result, (list, tuple)) else [result]
        if not items:
            raise InvalidCustomization("Column selector did not return any column")
        for item in items:
            if not isinstance(item, (ColumnRef, ArgumentChange)):
                raise InvalidCustomization(
                    f"Column selector must return column references, got {item!r}"
                )
            if item.column not in self._columns:
                raise UnknownColumn(self.table, item.column)
        return items

    def add_argument(
        self,
        name: str,
        value_type: Any,
        predicate: Predicate,
        *,
        description: Optional[str] = None,
    ) -> 'CustomizationSet':
        """Add a custom filter argument evaluated as ``predicate(model, value)``."""
        self._check_open()
        if self.kind == OperationKind.INSERT:
            raise CustomizationNotSupported(
                f"Custom arguments are not supported on insert ('{name}' on '{self.table}')"
            )
        if not name or not isinstance(name, str):
            raise InvalidCustomization("Custom arguments need a non-empty name")
        if not callable(predicate):
            raise InvalidCustomization(f"Predicate for argument '{name}' must be callable")
        if name in self._taken_names():
            raise DuplicateArgument(self.kind.value, name)
        scalar = scalar_for(value_type)
        self._custom[name] = CustomArgument(name, scalar, predicate, description)
        self._sequence.append(self._custom[name])
        _logger.debug("%s.%s: added argument %s (%s)", self.table, self.kind.value, name, scalar.graphql_name)
        return self

    def remove_argument(self, selector: Selector) -> 'CustomizationSet':
        """Suppress the generated argument(s) of the selected column(s)."""
        self._check_open()
        refs = self._select(selector)
        for ref in refs:
            column = self._columns[ref.column]
            if ref.column in self._altered:
                raise ConflictingCustomization(self.kind.value, ref.column, "the argument was already changed")
            if self.kind == OperationKind.INSERT and not column.optional_on_insert:
                raise CannotRemoveRequiredInsertArgument(self.table, ref.column)
        for ref in refs:
            if ref.column not in self._removed:
                self._removed.append(ref.column)
                _logger.debug("%s.%s: removed argument for %s", self.table, self.kind.value, ref.column)
        return self

    def change_argument(
        self,
        selector: Selector,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        value_type: Any = None,
        predicate: Optional[Predicate] = None,
    ) -> 'CustomizationSet':
        """Rename, redescribe, retype or redefine a generated argument.

        Keyword arguments overlay whatever the selector chained. For update the
        change applies to the ``filterBy_<column>`` argument.
        """
        self._check_open()
        items = self._select(selector)
        if len(items) != 1:
            raise InvalidCustomization("change_argument expects exactly one column")
        token = items[0]
        change = token if isinstance(token, ArgumentChange) else token.change()
        overrides = {
            k: v for k, v in (
                ('name', name), ('description', description), ('value_type', value_type), ('predicate', predicate)
            ) if v is not None
        }
        if overrides:
            change = replace(change, **overrides)
        if change.is_empty:
            raise InvalidCustomization(f"No change given for argument '{change.column}'")
        column = self._columns[change.column]
        if change.column in self._removed:
            raise ConflictingCustomization(self.kind.value, change.column, "the argument was already removed")
        if change.column in self._altered:
            raise ConflictingCustomization(self.kind.value, change.column, "the argument was already changed")
        if self.kind == OperationKind.INSERT:
            if change.value_type is not None or change.predicate is not None:
                raise CustomizationNotSupported(
                    f"Insert arguments can only be renamed or redescribed ('{change.column}' on '{self.table}')"
                )
            if not column.insertable:
                raise InvalidCustomization(f"Column '{change.column}' has no insert argument")
        if change.predicate is not None and not callable(change.predicate):
            raise InvalidCustomization(f"Predicate for argument '{change.column}' must be callable")

        target = self.target_name(change.column)
        final_name = change.name or target
        renamed = final_name != target
        if renamed and final_name in self._taken_names():
            raise DuplicateArgument(self.kind.value, final_name)
        scalar = scalar_for(change.value_type) if change.value_type is not None else None
        altered = AlteredArgument(
            column=change.column,
            name=final_name,
            renamed=renamed,
            description=change.description,
            value_type=scalar,
            predicate=change.predicate,
        )
        self._altered[change.column] = altered
        self._sequence.append(altered)
        _logger.debug(
            "%s.%s: changed argument %s -> %s", self.table, self.kind.value, target, final_name,
        )
        return self


class Customizations(NamedTuple):
    """The four handles passed to a ``configure`` callback."""

    query: CustomizationSet
    insert: CustomizationSet
    update: CustomizationSet
    delete: CustomizationSet
