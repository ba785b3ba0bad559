from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from strawberry.types.nodes import FragmentSpread, InlineFragment, SelectedField

from .composite import CompositeTypeDescriptor

__all__ = ['Selection', 'SelectionPlan', 'selections_from_info', 'plan_selection']


@dataclass(frozen=True)
class Selection:
    """Field name plus sub-selections, detached from the GraphQL AST."""

    name: str
    selections: Tuple['Selection', ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not self.selections


@dataclass(frozen=True)
class SelectionPlan:
    """Column paths to project and relation chains to include.

    ``columns`` holds paths such as ``("UserRoles", "Role", "Title")``;
    ``includes`` holds maximal chains such as ``("UserRoles", "Role")``.
    """

    columns: Tuple[Tuple[str, ...], ...] = ()
    includes: Tuple[Tuple[str, ...], ...] = ()

    @property
    def dotted_columns(self) -> List[str]:
        return ['.'.join(p) for p in self.columns]

    @property
    def dotted_includes(self) -> List[str]:
        return ['.'.join(p) for p in self.includes]


def _directive_allows(node: Any) -> bool:
    directives = getattr(node, 'directives', None) or {}
    skip = directives.get('skip')
    if skip and skip.get('if'):
        return False
    include = directives.get('include')
    if include is not None and not include.get('if', True):
        return False
    return True


def _flatten(nodes: Iterable[Any]) -> List[SelectedField]:
    out: List[SelectedField] = []
    for node in nodes or ():
        if not _directive_allows(node):
            continue
        if isinstance(node, (FragmentSpread, InlineFragment)):
            out.extend(_flatten(node.selections))
        elif isinstance(node, SelectedField):
            if node.name.startswith('__'):
                continue
            out.append(node)
    return out


def _convert(nodes: Iterable[Any]) -> Tuple[Selection, ...]:
    # same field selected twice (aliases, fragments) merges into one entry
    merged: Dict[str, List[Any]] = {}
    for node in _flatten(nodes):
        merged.setdefault(node.name, []).extend(node.selections or ())
    return tuple(Selection(name, _convert(children)) for name, children in merged.items())


def selections_from_info(info: Any) -> Tuple[Selection, ...]:
    """Sub-selections of the field being resolved."""
    children: List[Any] = []
    for field in info.selected_fields:
        children.extend(field.selections or ())
    return _convert(children)


def plan_selection(selections: Sequence[Selection], composite: CompositeTypeDescriptor) -> SelectionPlan:
    """Walk a selection tree against the composite type it was made on.

    Raises:
        ValueError: a selected name is not a field of the composite.
    """
    columns: Dict[Tuple[str, ...], None] = {}
    includes: Dict[Tuple[str, ...], None] = {}

    def walk(sels: Sequence[Selection], comp: CompositeTypeDescriptor, prefix: Tuple[str, ...]) -> bool:
        nested_relation = False
        for sel in sels:
            fdesc = comp.field(sel.name)
            if fdesc is None:
                raise ValueError(f"Unknown field '{sel.name}' on {comp.name}")
            path = prefix + (sel.name,)
            if fdesc.is_relation:
                nested_relation = True
                if not walk(sel.selections, fdesc.composite, path):
                    includes.setdefault(path)
            else:
                columns.setdefault(path)
        return nested_relation

    walk(selections, composite, ())
    return SelectionPlan(columns=tuple(columns), includes=tuple(includes))
