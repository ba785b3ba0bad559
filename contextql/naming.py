"""Naming utilities for generated GraphQL types, fields and Python attributes."""
from __future__ import annotations

import keyword
import re

import inflection

__all__ = ["singular", "record_type_name", "python_name"]

_NON_WORD = re.compile(r"\W")


def singular(name: str) -> str:
    """Singular form of ``name`` for mutation and relation type names.

    ``Users -> User``, ``Movies -> Movie``, ``Indices -> Index``. Only the
    trailing word of a CamelCase name is inflected.
    """
    if not name:
        return name
    return inflection.singularize(name)


def record_type_name(relation_key: str, many: bool) -> str:
    """Generated composite type name for a relationship shape."""
    return f"{singular(relation_key)}Record{'Array' if many else ''}"


def python_name(name: str, taken: set[str] | None = None) -> str:
    """Turn a GraphQL field/argument name into a unique Python identifier.

    GraphQL names are always passed to Strawberry explicitly, so the Python side
    only has to be a legal, non-private attribute name.
    """
    base = _NON_WORD.sub('_', name or 'field')
    if base[0].isdigit() or base.startswith('_'):
        base = f"f_{base}"
    if keyword.iskeyword(base) or base in {'self', 'info'}:
        base = f"{base}_"
    candidate = base
    if taken is not None:
        index = 1
        while candidate in taken:
            candidate = f"{base}_{index}"
            index += 1
        taken.add(candidate)
    return candidate
