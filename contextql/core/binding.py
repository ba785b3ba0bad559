from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .customization import CustomizationSet, Customizations, OperationKind
from .types import ColumnDescriptor, RelationshipDescriptor

__all__ = ['MutationOptions', 'TableBinding']


@dataclass(frozen=True)
class MutationOptions:
    """Per-table switches for the generated mutations.

    The query field is always generated. ``allow_unscoped`` lets update and
    delete run without any filter argument, i.e. against every row.
    """

    disable_inserts: bool = False
    disable_updates: bool = False
    disable_deletes: bool = False
    allow_unscoped: bool = False


@dataclass
class TableBinding:
    """A registered data context together with its customization state."""

    name: str
    table: str
    context: Any
    columns: Tuple[ColumnDescriptor, ...]
    relationships: Tuple[RelationshipDescriptor, ...]
    description: Optional[str] = None
    options: MutationOptions = field(default_factory=MutationOptions)
    customizations: Dict[OperationKind, CustomizationSet] = field(default_factory=dict)

    def __post_init__(self):
        for kind in OperationKind:
            if kind not in self.customizations:
                self.customizations[kind] = CustomizationSet(kind, self.table, self.columns)

    def customization(self, kind: OperationKind) -> CustomizationSet:
        return self.customizations[OperationKind(kind)]

    def handles(self) -> Customizations:
        return Customizations(
            query=self.customizations[OperationKind.QUERY],
            insert=self.customizations[OperationKind.INSERT],
            update=self.customizations[OperationKind.UPDATE],
            delete=self.customizations[OperationKind.DELETE],
        )

    def freeze(self) -> None:
        for cset in self.customizations.values():
            cset.freeze()

    def column(self, name: str) -> Optional[ColumnDescriptor]:
        for col in self.columns:
            if col.name == name:
                return col
        return None
