"""Boolean matching of a selector against one record.

Selectors are compiled into closures once and applied per record. Field keys
look values up along dotted paths, branching through arrays; operator keys
(``$and``, ``$or``, ``$nor``) combine sub-selectors.
"""

import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Dict, List

from .document import Document
from .errors import InvalidExpression

Matcher = Callable[[Any], bool]


def is_array(x: Any) -> bool:
    return isinstance(x, (list, tuple))


def any_if_array(x: Any, f: Callable) -> bool:
    """Apply function to array elements or single value."""
    if is_array(x):
        return any(f(item) for item in x)
    return f(x)


def any_if_array_plus(x: Any, f: Callable) -> bool:
    """Apply function to value, or if array, to any element."""
    if f(x):
        return True
    return is_array(x) and any(f(item) for item in x)


def deep_equal(a: Any, b: Any) -> bool:
    if is_array(a) and is_array(b):
        return len(a) == len(b) and all(deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return a.keys() == b.keys() and all(deep_equal(a[k], b[k]) for k in a)
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return a == b


def get_type(v: Any) -> int:
    """BSON type number of a value."""
    if isinstance(v, bool):
        return 8
    if isinstance(v, (int, float)):
        return 1
    if isinstance(v, str):
        return 2
    if is_array(v):
        return 4
    if v is None:
        return 10
    if isinstance(v, re.Pattern):
        return 11
    if isinstance(v, datetime):
        return 9
    return 3


# Server sort order of BSON types
_TYPE_ORDER = {10: 0, 1: 1, 2: 2, 3: 3, 4: 4, 8: 7, 9: 8, 11: 9}


def bson_compare(a: Any, b: Any) -> int:
    """Compare two values with server ordering, None lowest."""
    ta, tb = get_type(a), get_type(b)
    oa, ob = _TYPE_ORDER.get(ta, -1), _TYPE_ORDER.get(tb, -1)
    if oa != ob:
        return -1 if oa < ob else 1

    if ta == 10:
        return 0
    if ta == 3:
        return bson_compare(_flatten_items(a), _flatten_items(b))
    if ta == 4:
        for x, y in zip(a, b):
            result = bson_compare(x, y)
            if result != 0:
                return result
        return (len(a) > len(b)) - (len(a) < len(b))
    if ta == 11:
        a, b = a.pattern, b.pattern
    try:
        return (a > b) - (a < b)
    except TypeError:
        return 0


def _flatten_items(obj: Mapping) -> List[Any]:
    result = []
    for k, v in obj.items():
        result.extend([k, v])
    return result


def has_operators(value_selector: Any) -> bool:
    """Check if a value selector is made of operators ($-keys) only."""
    if not isinstance(value_selector, Mapping) or not value_selector:
        return False

    flags = {str(key).startswith('$') for key in value_selector}
    if len(flags) > 1:
        raise InvalidExpression(f"Inconsistent selector: {value_selector!r}")
    return flags.pop()


def _require_array(operator: str, operand: Any):
    if not is_array(operand):
        raise InvalidExpression(f"{operator} operand must be array: {operand!r}")


def _comparison(predicate: Callable[[int], bool]):
    def build(operand, value_selector):
        return lambda value: any_if_array(
            value, lambda x: x is not None and get_type(x) == get_type(operand) and predicate(bson_compare(x, operand))
        )
    return build


def _in(operand, value_selector):
    _require_array('$in', operand)
    elements = [compile_value_selector(element) if isinstance(element, re.Pattern) else element for element in operand]

    def test(x):
        return any(element(x) if callable(element) else deep_equal(x, element) for element in elements)

    return lambda value: any_if_array_plus(value, test)


def _nin(operand, value_selector):
    _require_array('$nin', operand)
    matcher = _in(operand, value_selector)
    return lambda value: not matcher(value)


def _all(operand, value_selector):
    _require_array('$all', operand)
    return lambda value: is_array(value) and all(
        any(deep_equal(element, x) for x in value) for element in operand
    )


def _eq(operand, value_selector):
    return lambda value: any_if_array_plus(value, lambda x: deep_equal(x, operand))


def _ne(operand, value_selector):
    matcher = _eq(operand, value_selector)
    return lambda value: not matcher(value)


def _exists(operand, value_selector):
    return lambda value: bool(operand) == (value is not None)


def _mod(operand, value_selector):
    if not is_array(operand) or len(operand) != 2:
        raise InvalidExpression(f"$mod operand must be [divisor, remainder]: {operand!r}")
    divisor, remainder = operand
    return lambda value: any_if_array(
        value, lambda x: isinstance(x, (int, float)) and not isinstance(x, bool) and x % divisor == remainder
    )


def _size(operand, value_selector):
    return lambda value: is_array(value) and len(value) == operand


def _type(operand, value_selector):
    return lambda value: value is not None and any_if_array(value, lambda x: get_type(x) == operand)


def _regex(operand, value_selector):
    options = value_selector.get('$options') or ''
    flags = 0
    if 'i' in options:
        flags |= re.IGNORECASE
    if 'm' in options:
        flags |= re.MULTILINE
    if 's' in options:
        flags |= re.DOTALL
    if 'x' in options:
        flags |= re.VERBOSE
    pattern = re.compile(operand.pattern if isinstance(operand, re.Pattern) else operand, flags)
    return lambda value: value is not None and any_if_array(
        value, lambda x: isinstance(x, str) and pattern.search(x) is not None
    )


def _options(operand, value_selector):
    if '$regex' not in value_selector:
        raise InvalidExpression("$options needs a $regex")
    return lambda value: True


def _elem_match(operand, value_selector):
    if has_operators(operand):
        element_matcher = compile_value_selector(operand)
    else:
        element_matcher = compile_document_selector(operand)
    return lambda value: is_array(value) and any(element_matcher(x) for x in value)


def _not(operand, value_selector):
    matcher = compile_value_selector(operand)
    return lambda value: not matcher(value)


VALUE_OPERATORS: Dict[str, Callable[[Any, Mapping], Matcher]] = {
    '$in': _in,
    '$nin': _nin,
    '$all': _all,
    '$eq': _eq,
    '$ne': _ne,
    '$lt': _comparison(lambda c: c < 0),
    '$lte': _comparison(lambda c: c <= 0),
    '$gt': _comparison(lambda c: c > 0),
    '$gte': _comparison(lambda c: c >= 0),
    '$exists': _exists,
    '$mod': _mod,
    '$size': _size,
    '$type': _type,
    '$regex': _regex,
    '$options': _options,
    '$elemMatch': _elem_match,
    '$not': _not,
}


def _logical(operator: str, combine: Callable[[List[bool]], bool]):
    def build(sub_selectors):
        if not is_array(sub_selectors) or not sub_selectors:
            raise InvalidExpression(f"{operator} must be nonempty array")
        matchers = [compile_document_selector(sub_selector) for sub_selector in sub_selectors]
        return lambda doc: combine(m(doc) for m in matchers)
    return build


LOGICAL_OPERATORS: Dict[str, Callable[[Any], Matcher]] = {
    '$and': _logical('$and', all),
    '$or': _logical('$or', any),
    '$nor': _logical('$nor', lambda results: not any(results)),
}


def compile_value_selector(value_selector: Any) -> Matcher:
    """Compile a value selector into a matching function."""
    if value_selector is None:
        return lambda value: any_if_array(value, lambda x: x is None)

    if isinstance(value_selector, re.Pattern):
        return lambda value: value is not None and any_if_array(
            value, lambda x: isinstance(x, str) and value_selector.search(x) is not None
        )

    if is_array(value_selector):
        return lambda value: is_array(value) and any_if_array_plus(
            value, lambda x: deep_equal(value_selector, x)
        )

    if has_operators(value_selector):
        matchers = []
        for operator, operand in value_selector.items():
            if operator not in VALUE_OPERATORS:
                raise InvalidExpression(f"Unrecognized operator: {operator}")
            matchers.append(VALUE_OPERATORS[operator](operand, value_selector))
        return lambda value: all(m(value) for m in matchers)

    return lambda value: any_if_array(value, lambda x: deep_equal(value_selector, x))


def make_lookup_function(key: str) -> Callable[[Any], List[Any]]:
    """Create a lookup function for a dotted key, returning every branch value."""
    first, _, rest = key.partition('.')
    lookup_rest = make_lookup_function(rest) if rest else None
    next_is_numeric = bool(rest) and bool(re.match(r'^\d+(\.|$)', rest))

    def lookup(doc: Any) -> List[Any]:
        if isinstance(doc, Mapping):
            first_level = doc.get(first)
        elif is_array(doc) and first.isdigit() and int(first) < len(doc):
            first_level = doc[int(first)]
        else:
            first_level = None

        if lookup_rest is None:
            return [first_level]

        if is_array(first_level) and not first_level:
            return [None]

        if not is_array(first_level) or next_is_numeric:
            first_level = [first_level]

        result = []
        for item in first_level:
            result.extend(lookup_rest(item))
        return result

    return lookup


def compile_document_selector(doc_selector: Any) -> Matcher:
    """Compile a document selector into a matching function."""
    if not isinstance(doc_selector, Mapping):
        raise InvalidExpression(f"Invalid selector: {doc_selector!r}")

    matchers = []
    for key, sub_selector in doc_selector.items():
        if key.startswith('$'):
            if key not in LOGICAL_OPERATORS:
                raise InvalidExpression(f"Unrecognized logical operator: {key}")
            matchers.append(LOGICAL_OPERATORS[key](sub_selector))
            continue

        lookup = make_lookup_function(key)
        value_matcher = compile_value_selector(sub_selector)
        matchers.append(
            lambda doc, lookup=lookup, value_matcher=value_matcher: any(
                value_matcher(value) for value in lookup(doc)
            )
        )

    return lambda doc: all(m(doc) for m in matchers)


def compile_selector(selector: Any) -> Matcher:
    """Compile a selector into a record matching function."""
    if callable(selector):
        return selector

    if selector is None:
        return lambda doc: True

    # Bare values are shorthand for an _id match
    if not isinstance(selector, Mapping):
        if isinstance(selector, (bool, list, tuple)):
            raise InvalidExpression(f"Invalid selector: {selector!r}")
        return lambda doc: isinstance(doc, Mapping) and doc.get('_id') == selector

    return compile_document_selector(selector)


def _as_matchable(record: Any) -> Any:
    if isinstance(record, Document):
        return record.as_attributes()
    return record


def matches(record: Any, selector: Any) -> bool:
    """Test if a record matches a selector."""
    return compile_selector(selector)(_as_matchable(record))
