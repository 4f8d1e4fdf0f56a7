from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from . import storable
from .memory import Memory
from .normalize import expr_part, normalize_sort_spec


def _conditions(conditions: Optional[Mapping], kwargs: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(conditions or {})
    merged.update(kwargs)
    return merged


class Query:
    """Fluent builder for a selector and its options.

    Every method returns a new Query, so a base query can be shared:

        adults = Query().gte(age=18)
        adults.where(city='Berlin').order_by('name asc')
        adults.excludes(status='banned')
    """

    def __init__(self, selector: Optional[Dict] = None, options: Optional[Dict] = None):
        self.selector = dict(selector or {})
        self.options = dict(options or {})

    def _with(self, selector: Optional[Dict] = None, **options) -> 'Query':
        return Query(self.selector if selector is None else selector, dict(self.options, **options))

    def add_field_expression(self, field: str, value: Any) -> 'Query':
        return self._with(storable.add_field_expression(self.selector, field, value))

    def add_operator_expression(self, operator: str, value: List[Dict]) -> 'Query':
        return self._with(storable.add_operator_expression(self.selector, operator, value))

    def add_logical_operator_expression(self, operator: str, value: List[Dict]) -> 'Query':
        return self._with(storable.add_logical_operator_expression(self.selector, operator, value))

    def where(self, conditions: Optional[Mapping] = None, **kwargs) -> 'Query':
        return self._with(storable.merge_conditions(self.selector, _conditions(conditions, kwargs)))

    def and_(self, *clauses: Mapping) -> 'Query':
        return self.add_logical_operator_expression(storable.AND, list(clauses))

    all_of = and_

    def or_(self, *clauses: Mapping) -> 'Query':
        return self.add_logical_operator_expression(storable.OR, list(clauses))

    any_of = or_

    def nor(self, *clauses: Mapping) -> 'Query':
        return self.add_logical_operator_expression(storable.NOR, list(clauses))

    def excludes(self, conditions: Optional[Mapping] = None, **kwargs) -> 'Query':
        """Negate each condition: $ne for values, $not for patterns"""
        selector = self.selector
        for field, value in _conditions(conditions, kwargs).items():
            for key, expr in expr_part(field, value, negating=True).items():
                selector = storable.add_field_expression(selector, key, expr)
        return self._with(selector)

    def _field_operator(self, operator: str, conditions: Optional[Mapping], kwargs: Dict[str, Any]) -> 'Query':
        selector = self.selector
        for field, value in _conditions(conditions, kwargs).items():
            selector = storable.add_field_expression(selector, field, {operator: value})
        return self._with(selector)

    def gt(self, conditions: Optional[Mapping] = None, **kwargs) -> 'Query':
        return self._field_operator('$gt', conditions, kwargs)

    def gte(self, conditions: Optional[Mapping] = None, **kwargs) -> 'Query':
        return self._field_operator('$gte', conditions, kwargs)

    def lt(self, conditions: Optional[Mapping] = None, **kwargs) -> 'Query':
        return self._field_operator('$lt', conditions, kwargs)

    def lte(self, conditions: Optional[Mapping] = None, **kwargs) -> 'Query':
        return self._field_operator('$lte', conditions, kwargs)

    def in_(self, conditions: Optional[Mapping] = None, **kwargs) -> 'Query':
        return self._field_operator('$in', conditions, {k: list(v) for k, v in kwargs.items()})

    def nin(self, conditions: Optional[Mapping] = None, **kwargs) -> 'Query':
        return self._field_operator('$nin', conditions, {k: list(v) for k, v in kwargs.items()})

    def order_by(self, spec: Any) -> 'Query':
        """Append sort keys; accepts 'name asc, age desc', a mapping or a list"""
        sort = list(normalize_sort_spec(self.options.get('sort')))
        sort.extend(normalize_sort_spec(spec))
        return self._with(sort=sort)

    def skip(self, value: int) -> 'Query':
        return self._with(skip=value)

    def limit(self, value: int) -> 'Query':
        return self._with(limit=value)

    def collation(self, value: Dict) -> 'Query':
        return self._with(collation=value)

    def context(self, documents: List[Any], **kwargs) -> Memory:
        """Evaluate this query over records already in memory"""
        return Memory(documents, self.selector, self.options, **kwargs)

    def __eq__(self, other):
        return isinstance(other, Query) and self.selector == other.selector and self.options == other.options

    def __repr__(self):
        return f"<Query selector={self.selector!r} options={self.options!r}>"
