import copy
import uuid
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Union

from .log import log
from .matcher import compile_selector, deep_equal
from .memory import Memory


class Database:
    """Named set of in-memory collections"""

    def __init__(self, name: str = 'memquery'):
        self.name = name
        self.collections: Dict[str, 'Collection'] = {}

    def add_collection(self, name: str) -> 'Collection':
        """Add a collection to the database"""
        collection = Collection(name)
        setattr(self, name, collection)
        self.collections[name] = collection
        return collection

    def remove_collection(self, name: str):
        """Remove a collection from the database"""
        if hasattr(self, name):
            delattr(self, name)
        self.collections.pop(name, None)

    def get_collection_names(self) -> List[str]:
        return list(self.collections.keys())


def _split(path: str) -> List[Union[str, int]]:
    return [int(part) if part.isdigit() else part for part in path.split('.')]


def _walk(doc: Any, parts: List[Union[str, int]], create: bool) -> Any:
    """Follow all but the last path part, creating dicts on the way if asked"""
    current = doc
    for part in parts[:-1]:
        if isinstance(current, list) and isinstance(part, int):
            if part >= len(current):
                return None
            current = current[part]
        elif isinstance(current, dict):
            if part not in current and create:
                current[part] = {}
            current = current.get(part)
        else:
            return None
    return current


def _get_path(doc: Dict, path: str) -> Any:
    parts = _split(path)
    parent = _walk(doc, parts, create=False)
    last = parts[-1]
    if isinstance(parent, list) and isinstance(last, int):
        return parent[last] if last < len(parent) else None
    if isinstance(parent, dict):
        return parent.get(last)
    return None


def _set_path(doc: Dict, path: str, value: Any):
    parts = _split(path)
    parent = _walk(doc, parts, create=True)
    last = parts[-1]
    if isinstance(parent, list) and isinstance(last, int) and last < len(parent):
        parent[last] = value
    elif isinstance(parent, dict):
        parent[str(last)] = value
    else:
        raise ValueError(f"Cannot set {path!r}: parent is not a document or array")


def _set(doc: Dict, operand: Mapping):
    for path, value in operand.items():
        _set_path(doc, path, copy.deepcopy(value))


def _inc(doc: Dict, operand: Mapping):
    for path, amount in operand.items():
        _set_path(doc, path, (_get_path(doc, path) or 0) + amount)


def _pull(doc: Dict, operand: Mapping):
    for path, condition in operand.items():
        array = _get_path(doc, path)
        if not isinstance(array, list):
            continue
        matcher = compile_selector(condition) if isinstance(condition, Mapping) else None
        array[:] = [
            item for item in array
            if not (matcher(item) if matcher else deep_equal(item, condition))
        ]


def _pull_all(doc: Dict, operand: Mapping):
    for path, values in operand.items():
        array = _get_path(doc, path)
        if not isinstance(array, list):
            continue
        array[:] = [item for item in array if not any(deep_equal(item, value) for value in values)]


UPDATE_OPERATORS = {
    '$set': _set,
    '$inc': _inc,
    '$pull': _pull,
    '$pullAll': _pull_all,
}


class Collection:
    """Collection of raw root documents, keyed by _id"""

    def __init__(self, name: str):
        self.name = name
        self.items: Dict[Any, Dict] = {}

    def find(self, selector: Any = None, options: Optional[Dict] = None) -> List[Dict]:
        """Find documents matching selector; returns copies"""
        # Deep clone to prevent modification
        docs = copy.deepcopy(list(self.items.values()))
        if selector is not None and not isinstance(selector, Mapping):
            selector = {'_id': selector}
        return Memory(docs, selector, options).entries

    def find_one(self, selector: Any = None, options: Optional[Dict] = None) -> Optional[Dict]:
        """Find one document matching selector"""
        results = self.find(selector, dict(options or {}, limit=1))
        return results[0] if results else None

    def count(self, selector: Any = None) -> int:
        return len(self.find(selector))

    def insert_one(self, doc: Dict) -> Dict:
        doc = copy.deepcopy(doc)
        if '_id' not in doc:
            doc['_id'] = str(uuid.uuid4())
        if doc['_id'] in self.items:
            raise ValueError(f"Duplicate _id {doc['_id']!r} in {self.name}")
        self.items[doc['_id']] = doc
        return copy.deepcopy(doc)

    def upsert(self, docs: Union[Dict, List[Dict]]) -> Union[Dict, List[Dict]]:
        """Insert or replace documents"""
        single_doc = not isinstance(docs, list)
        if single_doc:
            docs = [docs]

        # Keep independent copies to prevent modification
        docs = copy.deepcopy(docs)
        for doc in docs:
            if '_id' not in doc:
                doc['_id'] = str(uuid.uuid4())
            self.items[doc['_id']] = doc

        return docs[0] if single_doc else docs

    def update_one(self, selector: Any, update: Dict[str, Any]) -> int:
        """Apply update operators to the first matching document; returns the matched count"""
        for operator in update:
            if operator not in UPDATE_OPERATORS:
                raise ValueError(f"Unsupported update operator: {operator}")

        matcher = compile_selector(selector)
        for doc in self.items.values():
            if matcher(doc):
                for operator, operand in update.items():
                    UPDATE_OPERATORS[operator](doc, operand)
                log.debug(f"{self.name}: applied {list(update)} to {doc['_id']!r}")
                return 1
        log.debug(f"{self.name}: no document matched {selector!r}")
        return 0

    def remove(self, id_or_selector: Any):
        """Remove documents by _id or selector"""
        if isinstance(id_or_selector, Mapping):
            for doc in self.find(id_or_selector):
                self.remove(doc['_id'])
            return

        if self.items.pop(id_or_selector, None) is not None:
            log.debug(f"{self.name}: removed {id_or_selector!r}")
