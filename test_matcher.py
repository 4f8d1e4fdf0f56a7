import re

import pytest

from memquery.errors import InvalidExpression
from memquery.matcher import matches

DOC = {
    '_id': '1',
    'name': 'Alice',
    'age': 30,
    'tags': ['a', 'b'],
    'address': {'city': 'Berlin'},
    'accounts': [{'kind': 'gold', 'balance': 10}, {'kind': 'basic', 'balance': 0}],
    'active': True,
}


def test_plain_values_and_paths():
    assert matches(DOC, {'name': 'Alice'})
    assert matches(DOC, {'address.city': 'Berlin'})
    assert matches(DOC, {'accounts.kind': 'basic'})
    assert matches(DOC, {'tags': 'a'})
    assert not matches(DOC, {'name': 'Bob'})
    assert matches(DOC, {'missing': None})


def test_empty_selector_matches():
    assert matches(DOC, {})
    assert matches(DOC, None)


def test_id_shorthand():
    assert matches(DOC, '1')
    assert not matches(DOC, '2')


def test_comparison_operators():
    assert matches(DOC, {'age': {'$gt': 18, '$lte': 30}})
    assert not matches(DOC, {'age': {'$lt': 30}})
    assert not matches(DOC, {'age': {'$gt': '18'}})
    assert matches(DOC, {'accounts.balance': {'$gte': 10}})


def test_membership_operators():
    assert matches(DOC, {'name': {'$in': ['Alice', 'Bob']}})
    assert matches(DOC, {'tags': {'$in': ['b']}})
    assert matches(DOC, {'name': {'$nin': ['Bob']}})
    assert matches(DOC, {'tags': {'$all': ['b', 'a']}})
    assert not matches(DOC, {'tags': {'$all': ['c']}})
    assert matches(DOC, {'name': {'$in': [re.compile('^Al')]}})


def test_equality_operators():
    assert matches(DOC, {'name': {'$eq': 'Alice'}})
    assert matches(DOC, {'name': {'$ne': 'Bob'}})
    assert not matches(DOC, {'tags': {'$ne': 'a'}})
    assert not matches(DOC, {'active': 1})


def test_element_operators():
    assert matches(DOC, {'age': {'$exists': True}})
    assert matches(DOC, {'nope': {'$exists': False}})
    assert matches(DOC, {'tags': {'$size': 2}})
    assert matches(DOC, {'age': {'$type': 1}})
    assert matches(DOC, {'age': {'$mod': [7, 2]}})


def test_regex():
    assert matches(DOC, {'name': re.compile('^al', re.IGNORECASE)})
    assert matches(DOC, {'name': {'$regex': '^al', '$options': 'i'}})
    assert not matches(DOC, {'name': {'$regex': '^al'}})
    assert matches(DOC, {'name': {'$not': re.compile('^Bo')}})
    assert not matches(DOC, {'name': {'$not': {'$regex': '^Al'}}})


def test_elem_match():
    assert matches(DOC, {'accounts': {'$elemMatch': {'kind': 'gold', 'balance': {'$gt': 5}}}})
    assert not matches(DOC, {'accounts': {'$elemMatch': {'kind': 'basic', 'balance': {'$gt': 5}}}})


def test_logical_operators():
    assert matches(DOC, {'$or': [{'name': 'Bob'}, {'age': 30}]})
    assert not matches(DOC, {'$and': [{'name': 'Alice'}, {'age': 31}]})
    assert matches(DOC, {'$nor': [{'name': 'Bob'}]})
    assert matches(DOC, {'name': 'Alice', '$and': [{'name': {'$ne': 'x'}}]})


def test_invalid_expressions():
    with pytest.raises(InvalidExpression):
        matches(DOC, {'$and': []})
    with pytest.raises(InvalidExpression):
        matches(DOC, {'$where': 'true'})
    with pytest.raises(InvalidExpression):
        matches(DOC, {'age': {'$near': 1}})
    with pytest.raises(InvalidExpression):
        matches(DOC, {'age': {'$gt': 1, 'x': 2}})
