"""In-memory evaluation of a selector over a candidate record set.

A ``Memory`` context filters its candidates once, at construction, then sorts
and pages the matches. Reads and aggregations run over the paged window;
batched updates and deletes are written through to the collection owned by
the root of the embedded records.

    context = Memory(person.children('addresses'), {'city': 'Berlin'}, {'sort': 'street asc', 'limit': 10})
    context.pluck('street')
    context.update_all({'country': 'DE'})
"""

from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterator, List, Optional

from .config import DEFAULT_CONFIG, QueryConfig
from .document import Document
from .errors import NotFound, Unbound, UnsupportedOption
from .log import log
from .matcher import matches
from .normalize import SortSpec, normalize_sort_spec
from .paths import pluck_from, retrieve_value_at_path
from .sorting import sort_records
from .storable import merge_conditions

_NONE = object()

# Options with no in-memory semantics
UNSUPPORTED_OPTIONS = ('collation',)


def _freeze(value: Any, typed: bool = False) -> Any:
    """Make a value usable as a dict key.

    With typed, scalars are tagged with their type so 1, 1.0 and True stay apart.
    """
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v, typed) for v in value)
    if isinstance(value, Mapping):
        return tuple(sorted((str(k), _freeze(v, typed)) for k, v in value.items()))
    if isinstance(value, set):
        return frozenset(_freeze(v, typed) for v in value)
    if typed:
        return (type(value), value)
    return value


class Memory:
    """Query context over records that are already loaded into memory"""

    def __init__(self, documents: List[Any], selector: Optional[Dict] = None, options: Optional[Dict] = None,
                 matcher: Callable[[Any, Any], bool] = matches, collection: Any = None,
                 config: Optional[QueryConfig] = None):
        self.candidates = list(documents)
        self.selector = dict(selector or {})
        self.options = dict(options or {})
        self.matcher = matcher
        self.config = config or DEFAULT_CONFIG
        self._collection = collection

        self.root: Optional[Document] = None
        self.atomic_selector: Optional[Dict] = None
        self.path: Optional[str] = None
        self.skipping: Optional[int] = None
        self.limiting: Optional[int] = None
        self.sort_spec: SortSpec = []

        for option in UNSUPPORTED_OPTIONS:
            if self.options.get(option):
                raise UnsupportedOption(option)

        self.documents = [doc for doc in self.candidates if self.matcher(doc, self.selector)]
        for doc in self.documents:
            if isinstance(doc, Document):
                self.root = doc.root
                break
        log.debug(f"Memory context matched {len(self.documents)} of {len(self.candidates)} records")

        self._apply_sorting()
        self._apply_options()

    @property
    def locale(self) -> str:
        return self.config.locale

    @property
    def collection(self) -> Any:
        if self._collection is None and self.root is not None:
            self._collection = self.root.collection
        return self._collection

    @property
    def klass(self) -> Optional[type]:
        return type(self.documents[0]) if self.documents else None

    def _apply_sorting(self):
        if self.options.get('sort'):
            self.sort(self.options['sort'])

    def _apply_options(self):
        self.skip(self.options.get('skip')).limit(self.options.get('limit'))

    def skip(self, value: Optional[int]) -> 'Memory':
        """Skip the first ``value`` records of the working set"""
        self.skipping = value
        return self

    def limit(self, value: Optional[int]) -> 'Memory':
        """Return at most ``value`` records"""
        self.limiting = value
        return self

    def sort(self, spec: Any) -> 'Memory':
        """Sort the working set, e.g. sort({'name': -1, 'title': 1}) or sort('name desc')"""
        self.sort_spec = normalize_sort_spec(spec)
        self.documents = sort_records(self.documents, self.sort_spec, self.locale)
        log.debug(f"Memory context sorted by {self.sort_spec}")
        return self

    def _window(self) -> List[Any]:
        """The filtered, sorted working set after skip and limit"""
        skip = self.skipping or 0
        if skip < 0 or skip >= len(self.documents):
            return []
        docs = self.documents[skip:]
        if self.limiting is None:
            return docs
        if self.limiting <= 0:
            return []
        return docs[:self.limiting]

    @property
    def entries(self) -> List[Any]:
        return self._window()

    def __iter__(self) -> Iterator[Any]:
        return iter(self._window())

    def __len__(self) -> int:
        return len(self._window())

    def __eq__(self, other):
        if not hasattr(other, 'entries'):
            return False
        return self.entries == other.entries

    def each(self, fn: Optional[Callable[[Any], Any]] = None):
        """Call fn with every record, or return an iterator when fn is None"""
        if fn is None:
            return iter(self)
        for doc in self._window():
            fn(doc)
        return self

    def length(self) -> int:
        return len(self)

    size = length

    def count(self) -> int:
        return len(self)

    def first(self, limit: Optional[int] = None) -> Any:
        docs = self._window()
        if limit is not None:
            return docs[:limit] if limit > 0 else []
        return docs[0] if docs else None

    one = first
    find_first = first

    def last(self, limit: Optional[int] = None) -> Any:
        docs = self._window()
        if limit is not None:
            return docs[-limit:] if limit > 0 else []
        return docs[-1] if docs else None

    def take(self, limit: Optional[int] = None) -> Any:
        return self.first(limit)

    def _at(self, index: int) -> Any:
        docs = self._window()
        try:
            return docs[index]
        except IndexError:
            return None

    def second(self) -> Any:
        return self._at(1)

    def third(self) -> Any:
        return self._at(2)

    def fourth(self) -> Any:
        return self._at(3)

    def fifth(self) -> Any:
        return self._at(4)

    def second_to_last(self) -> Any:
        return self._at(-2)

    def third_to_last(self) -> Any:
        return self._at(-3)

    def _required(self, doc: Any) -> Any:
        if doc is None:
            raise NotFound(self.klass, self.selector)
        return doc

    def first_required(self) -> Any:
        return self._required(self.first())

    def last_required(self) -> Any:
        return self._required(self.last())

    def take_required(self) -> Any:
        return self._required(self.take())

    def second_required(self) -> Any:
        return self._required(self.second())

    def third_required(self) -> Any:
        return self._required(self.third())

    def fourth_required(self) -> Any:
        return self._required(self.fourth())

    def fifth_required(self) -> Any:
        return self._required(self.fifth())

    def second_to_last_required(self) -> Any:
        return self._required(self.second_to_last())

    def third_to_last_required(self) -> Any:
        return self._required(self.third_to_last())

    def pluck(self, *fields: str) -> List[Any]:
        return [pluck_from(doc, fields, self.locale) for doc in self._window()]

    def pluck_each(self, *fields: str, fn: Optional[Callable[[Any], Any]] = None):
        values = self.pluck(*fields)
        if fn is None:
            return iter(values)
        for value in values:
            fn(value)
        return self

    def pick(self, *fields: str) -> Any:
        doc = self.first()
        if doc is None:
            return None
        return pluck_from(doc, fields, self.locale)

    def tally(self, field: str, unwind: bool = False) -> Dict[Any, int]:
        """Count records per value at field; with unwind, array values count per element"""
        tallies: Dict[Any, int] = {}
        for doc in self._window():
            value = retrieve_value_at_path(doc, field, self.locale)
            keys = value if unwind and isinstance(value, (list, tuple)) else [value]
            for key in keys:
                key = _freeze(key)
                tallies[key] = tallies.get(key, 0) + 1
        return tallies

    def distinct(self, field: str) -> List[Any]:
        """Plucked values, deduplicated in first-seen order"""
        result = []
        seen = set()
        for value in self.pluck(field):
            try:
                key = _freeze(value, typed=True)
                if key in seen:
                    continue
                seen.add(key)
            except TypeError:
                if value in result:
                    continue
            result.append(value)
        return result

    def _numeric_values(self, field: str) -> List[Any]:
        values = (retrieve_value_at_path(doc, field, self.locale) for doc in self._window())
        return [value for value in values if value is not None]

    def sum(self, field: str):
        return sum(self._numeric_values(field))

    def avg(self, field: str):
        values = self._numeric_values(field)
        if not values:
            return None
        return sum(values) / float(len(values))

    def min(self, field: str):
        values = self._numeric_values(field)
        return min(values) if values else None

    def max(self, field: str):
        values = self._numeric_values(field)
        return max(values) if values else None

    def aggregates(self, field: str) -> Dict[str, Any]:
        return {
            'count': len(self._numeric_values(field)),
            'sum': self.sum(field),
            'avg': self.avg(field),
            'min': self.min(field),
            'max': self.max(field),
        }

    def exists(self, id_or_conditions: Any = _NONE) -> bool:
        """Check for any matching record.

        No argument checks the current window, None or False is always False,
        a mapping adds conditions and any other value is treated as an _id.
        """
        if id_or_conditions is _NONE:
            return len(self) > 0
        if id_or_conditions is None or id_or_conditions is False:
            return False
        if isinstance(id_or_conditions, Mapping):
            conditions = id_or_conditions
        else:
            conditions = {'_id': id_or_conditions}
        scoped = Memory(
            self.candidates, merge_conditions(self.selector, conditions), self.options,
            matcher=self.matcher, collection=self._collection, config=self.config,
        )
        return scoped.exists()

    def update(self, attributes: Optional[Dict] = None) -> bool:
        """Update the first matching record"""
        first = self.first()
        return self._update_documents(attributes, [first] if first is not None else [])

    def update_all(self, attributes: Optional[Dict] = None) -> bool:
        """Update every matching record with one combined $set"""
        return self._update_documents(attributes, self.entries)

    def _update_documents(self, attributes: Optional[Dict], docs: List[Document]) -> bool:
        if not attributes or not docs:
            return False

        collection = self._writable(docs)
        updates = {}
        for doc in docs:
            updates.update(doc.apply_attributes(attributes))

        if updates:
            log.debug(f"Flushing $set of {len(updates)} paths for {self.atomic_selector}")
            collection.update_one(self.atomic_selector, {'$set': updates})
        return True

    def delete(self) -> int:
        """Remove every matching record with one combined $pullAll; returns the count"""
        docs = list(self.entries)
        if not docs:
            return 0
        collection = self._writable(docs)
        deleted = len(docs)
        removed = [self._prepare_remove(doc) for doc in docs]
        log.debug(f"Flushing $pullAll of {len(removed)} records at {self.path!r}")
        collection.update_one(self.atomic_selector, {'$pullAll': {self.path: removed}})
        return deleted

    delete_all = delete

    def destroy(self) -> int:
        """Destroy every matching record one by one; returns the count"""
        docs = list(self.entries)
        for doc in docs:
            if not isinstance(doc, Document):
                raise Unbound(doc)
        for doc in docs:
            doc.destroy()
            self._discard(doc)
        return len(docs)

    destroy_all = destroy

    def inc(self, increments: Dict[str, Any]) -> 'Memory':
        docs = self.entries
        if docs:
            self._writable(docs)
        for doc in docs:
            doc.inc(increments)
        return self

    def _writable(self, docs: List[Any]) -> Any:
        """The collection that batched writes for docs are flushed to"""
        for doc in docs:
            if not isinstance(doc, Document):
                raise Unbound(doc)
        if self.atomic_selector is None:
            self.atomic_selector = docs[0].root.atomic_selector()
        collection = self.collection
        if collection is None:
            raise Unbound(docs[0].root)
        return collection

    def _discard(self, doc: Any):
        # candidates too, exists() rescans them
        for records in (self.documents, self.candidates):
            for i, candidate in enumerate(records):
                if candidate is doc:
                    del records[i]
                    break

    def _prepare_remove(self, doc: Document) -> Dict[str, Any]:
        if self.path is None:
            self.path = doc.atomic_path()
        self._discard(doc)
        if doc.parent is not None:
            doc.parent.remove_child(doc)
        doc.destroyed = True
        return doc.as_attributes()


def new_context(candidate_records: List[Any], selector: Optional[Dict] = None,
                options: Optional[Dict] = None, **kwargs) -> Memory:
    """Build an evaluation context over candidate records"""
    return Memory(candidate_records, selector, options, **kwargs)
