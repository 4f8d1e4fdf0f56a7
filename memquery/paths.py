from collections.abc import Mapping
from typing import Any, Optional, Sequence

from .document import Document


def _lookup_document(doc: Document, segment: str, remaining: Optional[str], locale: Optional[str]) -> Any:
    field = doc.aliased_field(segment)
    # Descending into a localized field walks its raw translations instead of
    # the value projected onto the active locale
    if remaining and doc.is_localized(field):
        return doc.translations_for(field)
    return doc.read_attribute(field, locale)


def _lookup_mapping(doc: Mapping, segment: str) -> Any:
    if segment in doc:
        return doc[segment]
    if segment.isdigit():
        return doc.get(int(segment))
    return None


def retrieve_value_at_path(document: Any, field_path: Optional[str], locale: Optional[str] = None) -> Any:
    """Retrieve the value at a dotted field path.

    Arrays met on the way are flattened: the rest of the path is resolved
    against every element and elements resolving to None are dropped, so

        retrieve_value_at_path({'accounts': [{'n': 1}, {}, {'n': 2}]}, 'accounts.n')

    gives [1, 2]. A list nested in a list gives a list of lists. Any miss
    gives None.
    """
    if not field_path or document is None:
        return None

    segment, _, remaining = str(field_path).partition('.')

    if isinstance(document, Document):
        current = _lookup_document(document, segment, remaining, locale)
    elif isinstance(document, Mapping):
        current = _lookup_mapping(document, segment)
    else:
        return None

    if not remaining:
        return current

    if isinstance(current, (list, tuple)):
        values = (retrieve_value_at_path(item, remaining, locale) for item in current)
        return [value for value in values if value is not None]
    return retrieve_value_at_path(current, remaining, locale)


def pluck_from(document: Any, fields: Sequence[str], locale: Optional[str] = None) -> Any:
    """One field gives its value, several give a list of values."""
    if len(fields) == 1:
        return retrieve_value_at_path(document, fields[0], locale)
    return [retrieve_value_at_path(document, field, locale) for field in fields]
