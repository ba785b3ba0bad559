from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import strawberry
from strawberry.schema.config import StrawberryConfig

from .core.binding import MutationOptions, TableBinding
from .core.composite import TypeCache, build_relationship_fields
from .core.customization import FILTER_PREFIX, PAGINATION_ARGUMENTS, Customizations, OperationKind
from .core.operations import OperationDescriptor, synthesize_operations
from .core.types import map_type
from .errors import DuplicateTable, NameClash, SchemaFrozen
from .naming import singular
from .schema_builder import StrawberryBuilder

__all__ = ['ContextQL']

_logger = logging.getLogger("contextql.registry")

_MUTATION_KINDS = (OperationKind.INSERT, OperationKind.UPDATE, OperationKind.DELETE)


def _check_fields(table: str, columns, relationships) -> None:
    """Relation keys share a record type with the columns; neither may repeat."""
    names = {c.name for c in columns}
    for rel in relationships:
        if rel.key in names:
            raise NameClash(table, rel.key, "another field of its record type")
        names.add(rel.key)
        _check_fields(rel.table, rel.columns, rel.relationships)


def _check_arguments(table: str, columns) -> None:
    names = {c.name for c in columns}
    for col in columns:
        if col.name in PAGINATION_ARGUMENTS:
            raise NameClash(table, col.name, "the query pagination argument")
        if col.name.startswith(FILTER_PREFIX) and col.name[len(FILTER_PREFIX):] in names:
            raise NameClash(table, col.name, f"the update filter for '{col.name[len(FILTER_PREFIX):]}'")


class ContextQL:
    """Registry of data contexts that builds the GraphQL root types for them.

    Usage:
        gql = ContextQL('chinook')
        gql.register_table(tracks, configure=lambda c: c.query.remove_argument('Composer'))
        schema = gql.to_strawberry()

    Tables are read (schema and relationships) when registered. The first
    synthesis call freezes the registry: later registrations or customizations
    raise :class:`contextql.errors.SchemaFrozen`.
    """

    def __init__(self, name: str):
        self.name = name
        self._bindings: Dict[str, TableBinding] = {}
        self._frozen = False

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"ContextQL({self.name!r}, tables={list(self._bindings)})"

    @property
    def bindings(self) -> Dict[str, TableBinding]:
        return dict(self._bindings)

    def binding(self, name: str) -> TableBinding:
        return self._bindings[name]

    def register_table(
        self,
        context: Any,
        configure: Optional[Callable[[Customizations], Any]] = None,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        options: Optional[MutationOptions] = None,
    ) -> 'ContextQL':
        if self._frozen:
            raise SchemaFrozen(f"Cannot register tables on '{self.name}' after schema synthesis has begun")
        table = context.table_name
        display = name or table
        if display in self._bindings:
            raise DuplicateTable(f"A table named '{display}' is already registered on '{self.name}'")
        for other in self._bindings.values():
            if singular(other.name) == singular(display):
                raise DuplicateTable(
                    f"'{display}' and '{other.name}' would generate the same mutation names on '{self.name}'"
                )
        columns = tuple(context.get_schema())
        relationships = tuple(context.get_relationships())
        # surface unsupported datatypes and relationship cycles now
        for col in columns:
            map_type(col.datatype, col.is_nullable, column=col.name)
        build_relationship_fields(relationships, table, TypeCache())
        _check_arguments(table, columns)
        _check_fields(table, columns, relationships)

        binding = TableBinding(
            name=display,
            table=table,
            context=context,
            columns=columns,
            relationships=relationships,
            description=description or f'All records from the data context representing the database table, "{table}".',
            options=options or MutationOptions(),
        )
        if configure is not None:
            configure(binding.handles())
        self._bindings[display] = binding
        _logger.debug("registered table %s as %s (%d columns)", table, display, len(columns))
        return self

    def _freeze(self) -> None:
        if not self._frozen:
            self._frozen = True
            for binding in self._bindings.values():
                binding.freeze()

    def _query_entries(self, cache: TypeCache) -> List[Tuple[TableBinding, OperationDescriptor]]:
        self._freeze()
        out = []
        for binding in self._bindings.values():
            ops = synthesize_operations(binding, cache, (OperationKind.QUERY,))
            out.append((binding, ops[OperationKind.QUERY]))
        return out

    def _mutation_entries(self, cache: TypeCache) -> List[Tuple[TableBinding, OperationDescriptor]]:
        self._freeze()
        out = []
        for binding in self._bindings.values():
            opts = binding.options
            disabled = {
                OperationKind.INSERT: opts.disable_inserts,
                OperationKind.UPDATE: opts.disable_updates,
                OperationKind.DELETE: opts.disable_deletes,
            }
            kinds = [k for k in _MUTATION_KINDS if not disabled[k]]
            ops = synthesize_operations(binding, cache, kinds)
            out.extend((binding, ops[k]) for k in kinds)
        return out

    def query_operations(self) -> Dict[str, OperationDescriptor]:
        return {op.name: op for _, op in self._query_entries(TypeCache())}

    def mutation_operations(self) -> Dict[str, OperationDescriptor]:
        return {op.name: op for _, op in self._mutation_entries(TypeCache())}

    def _query_root(self, builder: StrawberryBuilder, cache: TypeCache, name: Optional[str], description: Optional[str]):
        name = name or self.name
        description = description or f'Represents the method type to query records from all contexts connected to "{name}".'
        return builder.root(f"{name}_query", description, self._query_entries(cache))

    def _mutation_root(self, builder: StrawberryBuilder, cache: TypeCache, name: Optional[str], description: Optional[str]):
        name = name or self.name
        entries = self._mutation_entries(cache)
        if not entries:
            _logger.info("no mutation fields on %s; skipping the mutation root", name)
            return None
        description = description or (
            f'Represents the method type to insert/update/delete records in all contexts connected to "{name}".'
        )
        return builder.root(f"{name}_mutation", description, entries)

    def build_root_query(self, name: Optional[str] = None, description: Optional[str] = None):
        """Strawberry type ``<name>_query`` with one list field per table."""
        return self._query_root(StrawberryBuilder(), TypeCache(), name, description)

    def build_root_mutation(self, name: Optional[str] = None, description: Optional[str] = None):
        """Strawberry type ``<name>_mutation``, or None when every mutation is disabled."""
        return self._mutation_root(StrawberryBuilder(), TypeCache(), name, description)

    def to_strawberry(self, strawberry_config: Optional[StrawberryConfig] = None) -> strawberry.Schema:
        """Build a complete schema; query and mutation roots share one type map."""
        builder = StrawberryBuilder()
        cache = TypeCache()
        query = self._query_root(builder, cache, None, None)
        mutation = self._mutation_root(builder, cache, None, None)
        return strawberry.Schema(query=query, mutation=mutation, config=strawberry_config)
