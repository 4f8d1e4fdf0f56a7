from collections.abc import Mapping
from functools import cmp_to_key
from typing import Any, Callable, Iterable, List, Optional

from .normalize import SortSpec
from .paths import retrieve_value_at_path


def _type_order(value: Any) -> int:
    """Rank used when two values have no natural ordering between them."""
    if isinstance(value, (int, float)):
        return 1
    if isinstance(value, str):
        return 2
    if isinstance(value, Mapping):
        return 3
    if isinstance(value, (list, tuple)):
        return 4
    return 5


def compare_operand(value: Any) -> Any:
    """Booleans sort as numbers: False before True."""
    if value is True:
        return 1
    if value is False:
        return 0
    return value


def compare(a: Any, b: Any) -> int:
    """Compare two values for sorting; None sorts after everything else."""
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1

    a, b = compare_operand(a), compare_operand(b)
    try:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    except TypeError:
        pass

    # Heterogeneous types: fall back to a fixed type rank
    a_order, b_order = _type_order(a), _type_order(b)
    if a_order != b_order:
        return -1 if a_order < b_order else 1
    return 0


def multi_key_comparator(spec: SortSpec, locale: Optional[str] = None) -> Callable[[Any, Any], int]:
    """Compile (path, direction) pairs into a record comparison function"""
    if not spec:
        return lambda a, b: 0

    def sort_comparator(a: Any, b: Any) -> int:
        for path, direction in spec:
            result = compare(
                retrieve_value_at_path(a, path, locale),
                retrieve_value_at_path(b, path, locale),
            )
            if result != 0:
                return direction * result
        return 0

    return sort_comparator


def sort_records(records: Iterable[Any], spec: SortSpec, locale: Optional[str] = None) -> List[Any]:
    """Stable sort of records by the spec; returns a new list"""
    if not spec:
        return list(records)
    return sorted(records, key=cmp_to_key(multi_key_comparator(spec, locale)))
