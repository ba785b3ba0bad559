from __future__ import annotations

from .base import DataContext
from .sql import Relation, SqlContext, relation

__all__ = [
    'DataContext',
    'SqlContext',
    'Relation',
    'relation',
]
