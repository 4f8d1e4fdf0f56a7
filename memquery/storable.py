"""Selector algebra.

Every function here takes a selector and returns a new one; the selector
passed in is never modified, so one base selector can seed any number of
independent derivations.

Merge rules:

- a new field key is appended as ``field: value``
- a field key that is already present keeps its value, and the new clause
  ``{field: value}`` is appended to ``$and``
- an operator key holding a list is extended by concatenation; a missing one
  is added as a sibling of the existing keys
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Sequence

from .errors import InvalidExpression, InvalidFieldKey

OPERATOR_SIGIL = '$'
AND = '$and'
OR = '$or'
NOR = '$nor'

Selector = Dict[str, Any]


def is_operator_key(key: Any) -> bool:
    """Check if a selector key is an operator (starts with $)."""
    return isinstance(key, str) and key.startswith(OPERATOR_SIGIL)


def add_field_expression(selector: Mapping, field: str, value: Any) -> Selector:
    """Add ``field: value``, escalating to ``$and`` when the field is already restricted."""
    if not isinstance(field, str):
        raise InvalidFieldKey(field, f"Field must be a string: {field!r}")
    if is_operator_key(field):
        raise InvalidFieldKey(field)

    if field in selector:
        return add_logical_operator_expression(selector, AND, [{field: value}])

    result = dict(selector)
    result[field] = value
    return result


def add_logical_operator_expression(selector: Mapping, operator: str, value: Sequence[Mapping]) -> Selector:
    """Add a list of sub-selectors under a logical operator such as ``$and`` or ``$or``."""
    if not is_operator_key(operator):
        raise InvalidFieldKey(operator, f"Operator must begin with $: {operator!r}")
    clauses = _clauses(operator, value)

    result = dict(selector)
    existing = result.get(operator)
    if isinstance(existing, (list, tuple)):
        result[operator] = list(existing) + clauses
    else:
        result[operator] = clauses
    return result


def add_operator_expression(selector: Mapping, operator: str, value: Sequence[Mapping]) -> Selector:
    """Add an operator expression; same merge rule as logical operators."""
    return add_logical_operator_expression(selector, operator, value)


def add_expression(selector: Mapping, key: str, value: Any) -> Selector:
    """Route a single key to the operator or field entry point."""
    if is_operator_key(key):
        return add_logical_operator_expression(selector, key, value)
    return add_field_expression(selector, key, value)


def merge_conditions(selector: Mapping, conditions: Mapping) -> Selector:
    """Fold every key of ``conditions`` into ``selector``, in order."""
    result = dict(selector)
    for key, value in conditions.items():
        result = add_expression(result, key, value)
    return result


def _clauses(operator: str, value: Any) -> List[Selector]:
    if not isinstance(value, (list, tuple)):
        raise InvalidExpression(f"Value of {operator} must be an array: {value!r}")
    for clause in value:
        if not isinstance(clause, Mapping):
            raise InvalidExpression(f"Elements of {operator} must be documents: {clause!r}")
    return [dict(clause) for clause in value]
