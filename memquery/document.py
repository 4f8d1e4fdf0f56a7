import copy
import uuid
from typing import Any, Dict, FrozenSet, List, Optional, Type

from .errors import Unbound
from .log import log


class Document:
    """A record with aliases, localized fields and embedded children.

    Subclasses declare their shape on the class:

        class Address(Document):
            aliased_fields = {'st': 'street'}
            localized_fields = frozenset({'name'})

        class Person(Document):
            embedded = {'addresses': Address}

    Embedded children live in ``attributes`` as lists of documents; the root
    document owns the collection that batched writes are flushed to.
    """

    aliased_fields: Dict[str, str] = {}
    localized_fields: FrozenSet[str] = frozenset()
    embedded: Dict[str, Type['Document']] = {}

    def __init__(self, locale: str = 'en', collection: Any = None, **attributes):
        self.locale = locale
        self.collection = collection
        self.parent: Optional['Document'] = None
        self.association_name: Optional[str] = None
        self.destroyed = False
        self.attributes: Dict[str, Any] = {'_id': attributes.pop('_id', None) or str(uuid.uuid4())}
        self.write_attributes(attributes)

    @classmethod
    def instantiate(cls, raw: Dict[str, Any], locale: str = 'en', collection: Any = None) -> 'Document':
        """Build a document tree from stored attributes"""
        doc = cls(locale=locale, collection=collection, _id=raw.get('_id'))
        for key, value in raw.items():
            if key == '_id':
                continue
            if key in cls.embedded:
                child_class = cls.embedded[key]
                doc._set_children(key, [child_class.instantiate(item, locale) for item in value or []])
            else:
                doc.attributes[key] = copy.deepcopy(value)
        return doc

    @classmethod
    def aliased_field(cls, name: str) -> str:
        return cls.aliased_fields.get(name, name)

    @classmethod
    def is_localized(cls, field: str) -> bool:
        return cls.aliased_field(field) in cls.localized_fields

    @property
    def id(self) -> Any:
        return self.attributes['_id']

    @property
    def root(self) -> 'Document':
        doc = self
        while doc.parent is not None:
            doc = doc.parent
        return doc

    def translations_for(self, field: str) -> Dict[str, Any]:
        """Raw locale -> value map of a localized field"""
        return self.attributes.get(self.aliased_field(field)) or {}

    def read_attribute(self, name: str, locale: Optional[str] = None) -> Any:
        field = self.aliased_field(name)
        value = self.attributes.get(field)
        if field in self.localized_fields and isinstance(value, dict):
            return value.get(locale or self.locale)
        return value

    def __getitem__(self, name: str) -> Any:
        return self.read_attribute(name)

    def write_attributes(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """Write attributes locally; return {field: stored value} for fields that changed"""
        changed = {}
        for name, value in attributes.items():
            field = self.aliased_field(name)
            if field in self.embedded:
                self._set_children(field, value)
                changed[field] = [child.as_attributes() for child in value]
                continue

            if field in self.localized_fields and not isinstance(value, dict):
                translations = dict(self.attributes.get(field) or {})
                translations[self.locale] = value
                value = translations

            if field not in self.attributes or self.attributes[field] != value:
                self.attributes[field] = value
                changed[field] = value
        return changed

    def apply_attributes(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """Write attributes and return the $set delta keyed by atomic path"""
        prefix = self.atomic_position()
        changed = self.write_attributes(attributes)
        return {f"{prefix}.{field}" if prefix else field: value for field, value in changed.items()}

    def _set_children(self, name: str, children: List['Document']):
        for child in children:
            child.parent = self
            child.association_name = name
        self.attributes[name] = list(children)

    def children(self, name: str) -> List['Document']:
        return self.attributes.setdefault(name, [])

    def add_child(self, name: str, child: 'Document') -> 'Document':
        child.parent = self
        child.association_name = name
        self.children(name).append(child)
        return child

    def remove_child(self, child: 'Document'):
        siblings = self.attributes.get(child.association_name) or []
        for i, sibling in enumerate(siblings):
            if sibling is child:
                del siblings[i]
                return

    def atomic_path(self) -> str:
        """Dotted path of the array holding this document ('' for roots)"""
        if self.parent is None:
            return ''
        prefix = self.parent.atomic_position()
        return f"{prefix}.{self.association_name}" if prefix else self.association_name

    def atomic_position(self) -> str:
        """Dotted path of this document itself, with its array index"""
        if self.parent is None:
            return ''
        siblings = self.parent.children(self.association_name)
        index = next(i for i, sibling in enumerate(siblings) if sibling is self)
        return f"{self.atomic_path()}.{index}"

    def atomic_selector(self) -> Dict[str, Any]:
        return {'_id': self.root.id}

    def as_attributes(self) -> Dict[str, Any]:
        """Raw attributes, with embedded children as plain dicts"""
        raw = {}
        for key, value in self.attributes.items():
            if key in self.embedded:
                raw[key] = [child.as_attributes() for child in value]
            else:
                raw[key] = copy.deepcopy(value)
        return raw

    def _store(self):
        collection = self.root.collection
        if collection is None:
            raise Unbound(self.root)
        return collection

    def save(self):
        """Upsert the root document into its collection"""
        root = self.root
        root._store().upsert(root.as_attributes())
        return root

    def inc(self, increments: Dict[str, Any]):
        """Increment numeric fields locally and in the store"""
        store = self._store()
        prefix = self.atomic_position()
        updates = {}
        for name, amount in increments.items():
            field = self.aliased_field(name)
            self.attributes[field] = (self.attributes.get(field) or 0) + amount
            updates[f"{prefix}.{field}" if prefix else field] = amount
        store.update_one(self.atomic_selector(), {'$inc': updates})
        return self

    def destroy(self):
        """Remove this document from its parent (or collection) and the store"""
        store = self._store()
        if self.parent is None:
            store.remove(self.id)
        else:
            path = self.atomic_path()
            self.parent.remove_child(self)
            store.update_one(self.atomic_selector(), {'$pull': {path: {'_id': self.id}}})
        self.destroyed = True
        log.debug(f"Destroyed {type(self).__name__} {self.id}")
        return True

    def __eq__(self, other):
        return type(self) is type(other) and self.id == other.id

    def __hash__(self):
        return hash((type(self), self.id))

    def __lt__(self, other: 'Document'):
        return str(self.id) < str(other.id)

    def __repr__(self):
        return f"<{type(self).__name__} {self.attributes!r}>"
