from .types import Cardinality, ColumnDescriptor, Datatype, RelationshipDescriptor, ScalarType, map_type, scalar_for
from .customization import (
    ArgumentChange,
    ColumnRef,
    ColumnSelector,
    Customizations,
    CustomizationSet,
    OperationKind,
)
from .binding import MutationOptions, TableBinding
from .composite import CompositeTypeDescriptor, FieldDescriptor, TypeCache
from .operations import ArgumentDescriptor, ArgumentRole, OperationDescriptor, RowsAffected
from .selection import Selection, SelectionPlan, plan_selection, selections_from_info

__all__ = [
    'Cardinality',
    'ColumnDescriptor',
    'Datatype',
    'RelationshipDescriptor',
    'ScalarType',
    'map_type',
    'scalar_for',
    'ArgumentChange',
    'ColumnRef',
    'ColumnSelector',
    'Customizations',
    'CustomizationSet',
    'OperationKind',
    'MutationOptions',
    'TableBinding',
    'CompositeTypeDescriptor',
    'FieldDescriptor',
    'TypeCache',
    'ArgumentDescriptor',
    'ArgumentRole',
    'OperationDescriptor',
    'RowsAffected',
    'Selection',
    'SelectionPlan',
    'plan_selection',
    'selections_from_info',
]
