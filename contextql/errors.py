"""Exception hierarchy for contextql.

Configuration problems are raised while tables are registered and customized,
never while a request is being served. Runtime refusals derive from
:class:`MutationRejected` and are reported to GraphQL callers as field errors.
"""
from __future__ import annotations

from typing import Optional

__all__ = [
    'ContextQLError',
    'ConfigurationError',
    'UnknownDatatype',
    'UnknownColumn',
    'DuplicateArgument',
    'CannotRemoveRequiredInsertArgument',
    'ConflictingCustomization',
    'CustomizationNotSupported',
    'InvalidCustomization',
    'DuplicateTable',
    'NameClash',
    'CyclicRelationship',
    'SchemaFrozen',
    'MutationRejected',
    'UnscopedMutationRejected',
    'InsertRejected',
]


class ContextQLError(Exception):
    """Base class for every error raised by contextql."""


class ConfigurationError(ContextQLError, ValueError):
    """Invalid table metadata or customization."""


class UnknownDatatype(ConfigurationError):
    def __init__(self, datatype, column: Optional[str] = None):
        self.datatype = datatype
        self.column = column
        if column:
            msg = f"Could not determine type of {column}. (determined type: {datatype})"
        else:
            msg = f"Unsupported argument type: {datatype!r}"
        super().__init__(msg)


class UnknownColumn(ConfigurationError):
    def __init__(self, table: str, column: str):
        self.table = table
        self.column = column
        super().__init__(f"Table '{table}' has no column '{column}'")


class DuplicateArgument(ConfigurationError):
    def __init__(self, operation: str, name: str):
        self.operation = operation
        self.name = name
        super().__init__(f"Argument '{name}' already exists on the {operation} operation")


class CannotRemoveRequiredInsertArgument(ConfigurationError):
    def __init__(self, table: str, column: str):
        self.table = table
        self.column = column
        super().__init__(
            f"Column '{column}' of '{table}' is required for inserts and cannot be removed"
        )


class ConflictingCustomization(ConfigurationError):
    def __init__(self, operation: str, column: str, detail: str):
        self.operation = operation
        self.column = column
        super().__init__(f"Conflicting customization of '{column}' on the {operation} operation: {detail}")


class CustomizationNotSupported(ConfigurationError):
    pass


class InvalidCustomization(ConfigurationError):
    pass


class DuplicateTable(ConfigurationError):
    pass


class NameClash(ConfigurationError):
    def __init__(self, table: str, name: str, detail: str):
        self.table = table
        self.name = name
        super().__init__(f"'{name}' on '{table}' clashes with {detail}")


class CyclicRelationship(ConfigurationError):
    def __init__(self, path):
        self.path = tuple(path)
        super().__init__("Relationship cycle detected: " + " -> ".join(self.path))


class SchemaFrozen(ConfigurationError):
    pass


class MutationRejected(ContextQLError):
    """A mutation was refused; nothing was written."""


class UnscopedMutationRejected(MutationRejected, PermissionError):
    def __init__(self, operation: str, table: str):
        self.operation = operation
        self.table = table
        super().__init__(
            f"Refusing to {operation} every record in '{table}': supply at least one filter argument"
        )


class InsertRejected(MutationRejected):
    def __init__(self, table: str, reason: str):
        self.table = table
        self.reason = reason
        super().__init__(f"Insert into '{table}' was rejected: {reason}")
