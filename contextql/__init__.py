"""contextql public API and lazy exports.

The registry and the SQLAlchemy data context are imported on first attribute
access, so code that only declares customizations never loads SQLAlchemy.

Exposes:
- ContextQL, MutationOptions, StrawberryConfig
- SqlContext, relation (SQLAlchemy asyncio data context)
- DataContext (contract for custom contexts)
- errors (exception hierarchy)
"""
from __future__ import annotations

from . import errors
from .core.binding import MutationOptions
from .core.customization import OperationKind


def __getattr__(name: str):  # PEP 562 lazy exports
    import importlib as _importlib
    if name in {'registry', 'schema_builder', 'adapters'}:
        return _importlib.import_module(__name__ + '.' + name)
    if name == 'ContextQL':
        return _importlib.import_module(__name__ + '.registry').ContextQL
    if name == 'StrawberryConfig':
        from strawberry.schema.config import StrawberryConfig as _StrawberryConfig
        return _StrawberryConfig
    if name in {'SqlContext', 'relation'}:
        _sql = _importlib.import_module(__name__ + '.adapters.sql')
        return getattr(_sql, name)
    if name == 'DataContext':
        from .adapters.base import DataContext as _DataContext
        return _DataContext
    raise AttributeError(name)


__all__ = [
    'ContextQL', 'MutationOptions', 'OperationKind', 'StrawberryConfig',
    'SqlContext', 'relation', 'DataContext',
    'errors', 'registry', 'schema_builder', 'adapters',
]
