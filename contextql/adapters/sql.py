"""SQLAlchemy asyncio data context.

    users = (
        SqlContext(engine, UserTable)
        .has_many('UserRoles', UserRoleTable, ('Id', 'UserId'),
                  then=[relation('Role', RoleTable, ('RoleId', 'Id'), many=False)])
    )

Relationships are declared explicitly as ``(local_key, foreign_key)`` pairs and
loaded with one ``IN`` query per relation level. Temporal columns accept and
return ISO-8601 strings.
"""
from __future__ import annotations

import copy
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, Numeric, String, Table, Time, select, type_coerce
from sqlalchemy import delete as sa_delete
from sqlalchemy import insert as sa_insert
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.types import TypeDecorator

from ..core.types import Cardinality, ColumnDescriptor, Datatype, RelationshipDescriptor
from ..errors import InsertRejected
from .base import ColumnPath, Condition, DataContext

__all__ = ['SqlContext', 'Relation', 'relation', 'IsoDate', 'IsoDateTime', 'IsoTime']

logger = logging.getLogger("contextql.sql")


def _as_table(table: Any) -> Table:
    return getattr(table, '__table__', table)


def _unwrap(sa_type: Any) -> Any:
    while isinstance(sa_type, TypeDecorator):
        sa_type = sa_type.impl
    return sa_type


def _parse_datetime(value: str, *, keep_tz: bool) -> datetime:
    s = value.replace('Z', '+00:00') if 'Z' in value else value
    dv = datetime.fromisoformat(s)
    if not keep_tz and dv.tzinfo is not None:
        dv = dv.replace(tzinfo=None)
    return dv


def _to_python(sa_type: Any, value: Any) -> Any:
    """Parse an ISO string bound to a temporal column."""
    if not isinstance(value, str):
        return value
    base = _unwrap(sa_type)
    if isinstance(base, DateTime):
        return _parse_datetime(value, keep_tz=bool(getattr(base, 'timezone', False)))
    if isinstance(base, Date):
        return _parse_datetime(value, keep_tz=False).date() if 'T' in value else date.fromisoformat(value)
    if isinstance(base, Time):
        return time.fromisoformat(value)
    return value


def _plain(value: Any) -> Any:
    if isinstance(value, (date, datetime, time)):
        return value.isoformat()
    return value


class _IsoMixin:
    def process_bind_param(self, value, dialect):
        return _to_python(self.impl, value)

    def process_result_value(self, value, dialect):
        return _plain(value)


class IsoDate(_IsoMixin, TypeDecorator):
    impl = Date
    cache_ok = True


class IsoDateTime(_IsoMixin, TypeDecorator):
    impl = DateTime
    cache_ok = True


class IsoTime(_IsoMixin, TypeDecorator):
    impl = Time
    cache_ok = True


def _iso_type(sa_type: Any) -> Optional[TypeDecorator]:
    base = _unwrap(sa_type)
    if isinstance(base, DateTime):
        return IsoDateTime(timezone=bool(getattr(base, 'timezone', False)))
    if isinstance(base, Date):
        return IsoDate()
    if isinstance(base, Time):
        return IsoTime()
    return None


def datatype_of(sa_type: Any) -> str:
    """Column datatype for a SQLAlchemy type; unsupported types keep their own name."""
    base = _unwrap(sa_type)
    if isinstance(base, Boolean):
        return Datatype.BOOLEAN.value
    if isinstance(base, Integer):
        return Datatype.INT.value
    if isinstance(base, (Float, Numeric)):
        return Datatype.FLOAT.value
    if isinstance(base, (Date, DateTime, Time)):
        return Datatype.DATE.value
    if isinstance(base, String):
        return Datatype.STRING.value
    return type(base).__name__.lower()


def describe_columns(table: Table) -> List[ColumnDescriptor]:
    auto = table.autoincrement_column
    out = []
    for col in table.columns:
        out.append(ColumnDescriptor(
            name=col.key,
            datatype=datatype_of(col.type),
            is_nullable=bool(col.nullable),
            is_identity=col is auto or col.identity is not None,
            is_virtual=col.computed is not None,
            is_primary=bool(col.primary_key),
            description=col.comment,
        ))
    return out


class ColumnModel:
    """Column namespace handed to conditions: ``m.Name`` or ``m['Name']``.

    Temporal columns are coerced so that ISO strings compare against them.
    """

    def __init__(self, table: Table):
        self._table = table

    def __getitem__(self, name: str):
        col = self._table.c[name]
        iso = _iso_type(col.type)
        return type_coerce(col, iso) if iso is not None else col

    def __getattr__(self, name: str):
        if name.startswith('__'):
            raise AttributeError(name)
        return self[name]


@dataclass(frozen=True)
class Relation:
    key: str
    table: Table
    keys: Tuple[str, str]
    cardinality: Cardinality = Cardinality.ONE_TO_MANY
    then: Tuple['Relation', ...] = ()

    @property
    def many(self) -> bool:
        return self.cardinality == Cardinality.ONE_TO_MANY

    def describe(self) -> RelationshipDescriptor:
        return RelationshipDescriptor(
            key=self.key,
            cardinality=self.cardinality,
            table=self.table.name,
            keys=self.keys,
            columns=tuple(describe_columns(self.table)),
            relationships=tuple(r.describe() for r in self.then),
        )


def relation(key: str, table: Any, keys: Tuple[str, str], *, many: bool = True, then: Iterable[Relation] = ()) -> Relation:
    """Declare a relation; ``keys`` is ``(local_key, foreign_key)``."""
    table = _as_table(table)
    local, foreign = keys
    if foreign not in table.c:
        raise ValueError(f"Table '{table.name}' has no column '{foreign}' for relation '{key}'")
    return Relation(
        key=key,
        table=table,
        keys=(local, foreign),
        cardinality=Cardinality.ONE_TO_MANY if many else Cardinality.ONE_TO_ONE,
        then=tuple(then),
    )


def _include_tree(paths: Iterable[Tuple[str, ...]]) -> Dict[str, dict]:
    tree: Dict[str, dict] = {}
    for path in paths:
        node = tree
        for key in path:
            node = node.setdefault(key, {})
    return tree


def _ordered(names: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(names))


class SqlContext(DataContext):
    """Data context over one SQLAlchemy table (or declarative model)."""

    def __init__(self, engine: AsyncEngine, table: Any, relationships: Iterable[Relation] = ()):
        self._engine = engine
        self._table = _as_table(table)
        self._relations: Tuple[Relation, ...] = tuple(relationships)
        self._conditions: Tuple[Any, ...] = ()
        self._includes: Tuple[Tuple[str, ...], ...] = ()
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"SqlContext({self._table.name!r}, conditions={len(self._conditions)}, includes={self._includes})"

    def _replace(self, **changes) -> 'SqlContext':
        new = copy.copy(self)
        for key, value in changes.items():
            setattr(new, f"_{key}", value)
        return new

    @property
    def table(self) -> Table:
        return self._table

    @property
    def table_name(self) -> str:
        return self._table.name

    # ----- relationships -----
    def has_many(self, key: str, table: Any, keys: Tuple[str, str], *, then: Iterable[Relation] = ()) -> 'SqlContext':
        return self._with_relation(relation(key, table, keys, many=True, then=then))

    def has_one(self, key: str, table: Any, keys: Tuple[str, str], *, then: Iterable[Relation] = ()) -> 'SqlContext':
        return self._with_relation(relation(key, table, keys, many=False, then=then))

    def _with_relation(self, rel: Relation) -> 'SqlContext':
        if rel.keys[0] not in self._table.c:
            raise ValueError(f"Table '{self._table.name}' has no column '{rel.keys[0]}' for relation '{rel.key}'")
        if any(r.key == rel.key for r in self._relations):
            raise ValueError(f"Relation '{rel.key}' is already declared on '{self._table.name}'")
        return self._replace(relations=self._relations + (rel,))

    # ----- metadata -----
    def get_schema(self) -> List[ColumnDescriptor]:
        return describe_columns(self._table)

    def get_relationships(self) -> List[RelationshipDescriptor]:
        return [r.describe() for r in self._relations]

    # ----- builders -----
    def where(self, condition: Condition) -> 'SqlContext':
        clause = condition(ColumnModel(self._table))
        if clause is None:
            raise TypeError(f"Condition on '{self._table.name}' did not return an expression")
        return self._replace(conditions=self._conditions + (clause,))

    def include(self, path: Sequence[str]) -> 'SqlContext':
        path = tuple(path)
        relations = self._relations
        for key in path:
            match = next((r for r in relations if r.key == key), None)
            if match is None:
                raise ValueError(f"Unknown relation '{'.'.join(path)}' on '{self._table.name}'")
            relations = match.then
        if path in self._includes:
            return self
        return self._replace(includes=self._includes + (path,))

    def skip(self, count: int) -> 'SqlContext':
        return self._replace(offset=count)

    def take(self, count: int) -> 'SqlContext':
        return self._replace(limit=count)

    # ----- reads -----
    def _row(self, row: Any, table: Table, names: Sequence[str]) -> Dict[str, Any]:
        mapping = row._mapping
        return {n: _plain(mapping[table.c[n]]) for n in names}

    def _wanted(self, columns: Sequence[ColumnPath], tree: Dict[str, dict]) -> Dict[Tuple[str, ...], List[str]]:
        wanted: Dict[Tuple[str, ...], List[str]] = defaultdict(list)
        for path in columns:
            path = tuple(path)
            prefix, name = path[:-1], path[-1]
            node = tree
            for key in prefix:
                if key not in node:
                    raise ValueError(f"Column '{'.'.join(path)}' needs relation '{'.'.join(prefix)}' to be included")
                node = node[key]
            wanted[prefix].append(name)
        return wanted

    def _check_columns(self, table: Table, names: Iterable[str]) -> None:
        for name in names:
            if name not in table.c:
                raise ValueError(f"Table '{table.name}' has no column '{name}'")

    async def _load(
        self,
        conn: AsyncConnection,
        rows: List[Dict[str, Any]],
        relations: Tuple[Relation, ...],
        tree: Dict[str, dict],
        prefix: Tuple[str, ...],
        wanted: Dict[Tuple[str, ...], List[str]],
    ) -> None:
        by_key = {r.key: r for r in relations}
        for key, subtree in tree.items():
            rel = by_key[key]
            local, foreign = rel.keys
            path = prefix + (key,)
            parents = _ordered(r[local] for r in rows if r.get(local) is not None)
            children: List[Dict[str, Any]] = []
            if parents:
                names = _ordered(
                    wanted.get(path, []) + [foreign] + [r.keys[0] for r in rel.then if r.key in subtree]
                )
                self._check_columns(rel.table, names)
                stmt = (
                    select(*[rel.table.c[n] for n in names])
                    .where(rel.table.c[foreign].in_(parents))
                    .order_by(*rel.table.primary_key.columns)
                )
                logger.debug("load %s.%s for %d parent(s)", self._table.name, '.'.join(path), len(parents))
                result = await conn.execute(stmt)
                children = [self._row(r, rel.table, names) for r in result.all()]
                await self._load(conn, children, rel.then, subtree, path, wanted)
            grouped: Dict[Any, List[Dict[str, Any]]] = defaultdict(list)
            for child in children:
                grouped[child[foreign]].append(child)
            for row in rows:
                matches = grouped.get(row.get(local), [])
                row[key] = list(matches) if rel.many else (matches[0] if matches else None)

    def _project(self, row: Dict[str, Any], prefix: Tuple[str, ...], tree: Dict[str, dict], wanted) -> Dict[str, Any]:
        out = {name: row[name] for name in wanted.get(prefix, [])}
        for key, subtree in tree.items():
            value = row.get(key)
            path = prefix + (key,)
            if isinstance(value, list):
                out[key] = [self._project(v, path, subtree, wanted) for v in value]
            elif value is None:
                out[key] = None
            else:
                out[key] = self._project(value, path, subtree, wanted)
        return out

    async def select(self, columns: Sequence[ColumnPath]) -> List[Dict[str, Any]]:
        tree = _include_tree(self._includes)
        wanted = self._wanted(columns, tree)
        top = {r.key: r for r in self._relations}
        names = _ordered(wanted.get((), []) + [top[k].keys[0] for k in tree])
        if not names:
            names = [c.key for c in self._table.primary_key.columns] or [c.key for c in self._table.columns][:1]
        self._check_columns(self._table, names)
        stmt = select(*[self._table.c[n] for n in names]).where(*self._conditions)
        stmt = stmt.order_by(*self._table.primary_key.columns)
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
            if self._offset is not None:
                stmt = stmt.offset(self._offset)
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            rows = [self._row(r, self._table, names) for r in result.all()]
            await self._load(conn, rows, self._relations, tree, (), wanted)
        logger.debug("select %s: %d row(s)", self._table.name, len(rows))
        return [self._project(r, (), tree, wanted) for r in rows]

    # ----- writes -----
    def _bind(self, values: Dict[str, Any]) -> Dict[str, Any]:
        self._check_columns(self._table, values)
        return {k: _to_python(self._table.c[k].type, v) for k, v in values.items()}

    async def insert(self, record: Dict[str, Any]) -> List[Dict[str, Any]]:
        names = [c.key for c in self._table.columns]
        stmt = sa_insert(self._table).values(**self._bind(record)).returning(*self._table.columns)
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(stmt)
                rows = [self._row(r, self._table, names) for r in result.all()]
        except IntegrityError as exc:
            raise InsertRejected(self._table.name, str(exc.orig)) from exc
        logger.debug("insert %s: %d row(s)", self._table.name, len(rows))
        return rows

    async def update(self, values: Dict[str, Any]) -> int:
        stmt = sa_update(self._table).where(*self._conditions).values(**self._bind(values))
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
            return result.rowcount

    async def delete(self) -> int:
        stmt = sa_delete(self._table).where(*self._conditions)
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
            return result.rowcount
