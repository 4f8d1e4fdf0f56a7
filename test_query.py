import re

import pytest

from memquery.errors import InvalidFieldKey, UnsupportedOption
from memquery.query import Query


def test_query_is_persistent():
    base = Query().where(name='x')
    derived = base.where(age=3)
    assert base.selector == {'name': 'x'}
    assert derived.selector == {'name': 'x', 'age': 3}


def test_where_escalates_repeated_fields():
    query = Query().where(foo='bar').where(foo='zoom')
    assert query.selector == {'foo': 'bar', '$and': [{'foo': 'zoom'}]}


def test_where_with_operator_keys():
    query = Query().where({'$and': [{'zoom': 'zoom'}]}).where({'$and': [{'foo': 'bar'}]})
    assert query.selector == {'$and': [{'zoom': 'zoom'}, {'foo': 'bar'}]}


def test_storable_entry_points():
    query = Query().add_field_expression('zoom', 'zoom').add_logical_operator_expression('$or', [{'foo': 'bar'}])
    assert query.selector == {'zoom': 'zoom', '$or': [{'foo': 'bar'}]}
    with pytest.raises(InvalidFieldKey):
        Query().add_field_expression('$eq', {'foo': 'bar'})


def test_logical_helpers():
    query = Query().or_({'a': 1}, {'b': 2}).or_({'c': 3}).nor({'d': 4}).and_({'e': 5})
    assert query.selector == {
        '$or': [{'a': 1}, {'b': 2}, {'c': 3}],
        '$nor': [{'d': 4}],
        '$and': [{'e': 5}],
    }


def test_field_operators():
    query = Query().gte(age=18).lt(age=65).in_(city=('Berlin', 'London'))
    assert query.selector == {
        'age': {'$gte': 18},
        '$and': [{'age': {'$lt': 65}}],
        'city': {'$in': ['Berlin', 'London']},
    }


def test_excludes():
    pattern = re.compile('^spam')
    query = Query().excludes(status='banned').excludes({'title': pattern})
    assert query.selector == {'status': {'$ne': 'banned'}, 'title': {'$not': pattern}}


def test_order_by_appends_keys():
    query = Query().order_by('name asc').order_by({'age': -1})
    assert query.options['sort'] == [('name', 1), ('age', -1)]


def test_context_evaluates_query():
    records = [
        {'name': 'ann', 'age': 31, 'city': 'Berlin'},
        {'name': 'bob', 'age': 17, 'city': 'Berlin'},
        {'name': 'cid', 'age': 44, 'city': 'London'},
        {'name': 'dee', 'age': 52, 'city': 'Paris'},
    ]
    query = Query().gte(age=18).in_(city=['Berlin', 'London']).order_by('age desc')
    assert query.context(records).pluck('name') == ['cid', 'ann']
    assert query.skip(1).context(records).pluck('name') == ['ann']
    assert query.limit(1).context(records).pick('name') == 'cid'


def test_context_with_collation_is_unsupported():
    with pytest.raises(UnsupportedOption):
        Query().collation({'locale': 'fr'}).context([])
