"""memquery: MongoDB-style selectors built and evaluated in memory."""

from .config import QueryConfig
from .db import Collection, Database
from .document import Document
from .errors import (
    InvalidConfiguration,
    InvalidDate,
    InvalidExpression,
    InvalidFieldKey,
    InvalidSortDirection,
    MemQueryError,
    NotFound,
    Unbound,
    UnsupportedOption,
)
from .log import configure_logging
from .matcher import matches
from .memory import Memory, new_context
from .paths import retrieve_value_at_path
from .query import Query
from .sorting import compare
from .storable import (
    add_field_expression as build_field_expression,
    add_logical_operator_expression as build_logical_expression,
    add_operator_expression as build_operator_expression,
)

__all__ = [
    'Collection',
    'Database',
    'Document',
    'InvalidConfiguration',
    'InvalidDate',
    'InvalidExpression',
    'InvalidFieldKey',
    'InvalidSortDirection',
    'MemQueryError',
    'Memory',
    'NotFound',
    'Query',
    'QueryConfig',
    'Unbound',
    'UnsupportedOption',
    'build_field_expression',
    'build_logical_expression',
    'build_operator_expression',
    'compare',
    'configure_logging',
    'matches',
    'new_context',
    'retrieve_value_at_path',
]
