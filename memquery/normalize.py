import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union

from dateutil import parser as dt_parser

from .config import DEFAULT_CONFIG, QueryConfig
from .errors import InvalidDate, InvalidSortDirection
from .storable import OPERATOR_SIGIL

ASCENDING = 1
DESCENDING = -1

_DIRECTIONS = {
    'asc': ASCENDING,
    'ascending': ASCENDING,
    'a': ASCENDING,
    '1': ASCENDING,
    'desc': DESCENDING,
    'descending': DESCENDING,
    'd': DESCENDING,
    '-1': DESCENDING,
}

SortSpec = List[Tuple[str, int]]


def is_regexp(value: Any) -> bool:
    """Check if value is a compiled pattern or a {'$regex': ...} wrapper."""
    if isinstance(value, re.Pattern):
        return True
    return isinstance(value, Mapping) and '$regex' in value


def _parse(value: str) -> Optional[datetime]:
    if not value.strip():
        return None
    try:
        return dt_parser.parse(value)
    except (dt_parser.ParserError, ValueError, OverflowError) as e:
        raise InvalidDate(value) from e


def evolve_date(value: str, config: Optional[QueryConfig] = None) -> Optional[datetime]:
    """Evolve a date string into UTC midnight of that calendar date.

    "2012-1-1" -> 2012-01-01 00:00:00+00:00. Blank strings give None.
    Strings with an offset take their calendar date in the configured zone.
    """
    parsed = _parse(value)
    if parsed is None:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone((config or DEFAULT_CONFIG).tzinfo)
    return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)


def evolve_time(value: str, config: Optional[QueryConfig] = None) -> Optional[datetime]:
    """Evolve a time string into a UTC instant.

    Naive strings are read as wall-clock time in the configured zone.
    """
    if evolve_date(value, config) is None:
        return None

    config = config or DEFAULT_CONFIG
    parsed = _parse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=config.tzinfo)
    return parsed.astimezone(timezone.utc)


def evolve_string(value: Any) -> Any:
    """Keep patterns as they are and stringify everything else."""
    if value is None or is_regexp(value):
        return value
    return str(value)


def to_direction(token: Any) -> int:
    """Map a direction token (asc/desc/a/d/1/-1 or an int) to +1 or -1."""
    if token is None:
        return ASCENDING
    if isinstance(token, bool):
        raise InvalidSortDirection(token)
    if isinstance(token, (int, float)):
        if token == 0:
            raise InvalidSortDirection(token)
        return ASCENDING if token > 0 else DESCENDING
    if isinstance(token, str):
        direction = _DIRECTIONS.get(token.strip().lower())
        if direction is not None:
            return direction
    raise InvalidSortDirection(token)


def sort_option(value: str) -> Dict[str, int]:
    """Parse "name asc, age desc" into {'name': 1, 'age': -1}."""
    spec = {}
    for segment in value.split(','):
        parts = segment.split()
        if not parts:
            continue
        if len(parts) > 2:
            raise InvalidSortDirection(' '.join(parts[1:]))
        field = parts[0]
        spec[field] = to_direction(parts[1] if len(parts) > 1 else None)
    return spec


def normalize_sort_spec(spec: Union[str, Mapping, list, tuple, None]) -> SortSpec:
    """Normalize any accepted sort specification into (path, direction) pairs."""
    if spec is None:
        return []
    if isinstance(spec, str):
        return list(sort_option(spec).items())
    if isinstance(spec, Mapping):
        return [(str(field), to_direction(direction)) for field, direction in spec.items()]
    if isinstance(spec, (list, tuple)):
        pairs = []
        for item in spec:
            if isinstance(item, str):
                pairs.append((item, ASCENDING))
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                pairs.append((str(item[0]), to_direction(item[1])))
            else:
                raise InvalidSortDirection(item)
        return pairs
    raise InvalidSortDirection(spec)


def expr_part(key: str, value: Any, negating: bool = False) -> Dict[str, Any]:
    """Build {key: value}, or its $not / $ne negation."""
    if not negating:
        return {key: value}
    operator = '$not' if is_regexp(value) else '$ne'
    return {key: {operator: value}}


def mongo_expression(name: str) -> str:
    """Prefix a name with $ unless it already has one."""
    return name if name.startswith(OPERATOR_SIGIL) else f"{OPERATOR_SIGIL}{name}"
