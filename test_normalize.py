import re
from datetime import datetime, timezone

import pytest

from memquery.config import QueryConfig
from memquery.errors import InvalidDate, InvalidSortDirection
from memquery.normalize import (
    evolve_date,
    evolve_string,
    evolve_time,
    expr_part,
    is_regexp,
    mongo_expression,
    normalize_sort_spec,
    sort_option,
    to_direction,
)


def test_evolve_date_gives_utc_midnight():
    assert evolve_date('2012-1-1') == datetime(2012, 1, 1, tzinfo=timezone.utc)
    assert evolve_date('2012-03-04 17:45') == datetime(2012, 3, 4, tzinfo=timezone.utc)


def test_evolve_date_takes_calendar_date_in_configured_zone():
    utc = QueryConfig(time_zone='UTC')
    tokyo = QueryConfig(time_zone='Asia/Tokyo')
    assert evolve_date('2012-01-01T23:00:00-05:00', utc) == datetime(2012, 1, 2, tzinfo=timezone.utc)
    assert evolve_date('2012-01-01T23:00:00Z', tokyo) == datetime(2012, 1, 2, tzinfo=timezone.utc)
    assert evolve_date('2012-01-01T23:00:00-05:00') == datetime(2012, 1, 2, tzinfo=timezone.utc)
    assert evolve_date('2012-01-01 23:00', tokyo) == datetime(2012, 1, 1, tzinfo=timezone.utc)


def test_evolve_date_blank_is_no_value():
    assert evolve_date('') is None
    assert evolve_date('   ') is None


def test_evolve_date_rejects_garbage():
    with pytest.raises(InvalidDate):
        evolve_date('not a date')


def test_evolve_time_reads_naive_strings_in_configured_zone():
    config = QueryConfig(time_zone='America/New_York')
    assert evolve_time('2012-01-01 10:30', config) == datetime(2012, 1, 1, 15, 30, tzinfo=timezone.utc)


def test_evolve_time_keeps_explicit_offsets():
    assert evolve_time('2012-01-01T10:30:00+02:00') == datetime(2012, 1, 1, 8, 30, tzinfo=timezone.utc)


def test_evolve_time_short_circuits_on_blank_dates():
    assert evolve_time('') is None


def test_evolve_time_rejects_garbage():
    with pytest.raises(InvalidDate):
        evolve_time('tomorrowish')


def test_sort_option():
    assert sort_option('name asc, age desc') == {'name': 1, 'age': -1}
    assert sort_option('name ASC,age D') == {'name': 1, 'age': -1}
    assert list(sort_option('b desc, a asc')) == ['b', 'a']


def test_sort_option_defaults_to_ascending():
    assert sort_option('name') == {'name': 1}


def test_sort_option_rejects_unknown_direction():
    with pytest.raises(InvalidSortDirection):
        sort_option('name sideways')


def test_to_direction():
    assert to_direction(1) == 1
    assert to_direction(-5) == -1
    assert to_direction('descending') == -1
    assert to_direction('a') == 1
    with pytest.raises(InvalidSortDirection):
        to_direction(0)
    with pytest.raises(InvalidSortDirection):
        to_direction(True)


def test_normalize_sort_spec_shapes():
    expected = [('age', -1), ('name', 1)]
    assert normalize_sort_spec('age desc, name asc') == expected
    assert normalize_sort_spec({'age': -1, 'name': 1}) == expected
    assert normalize_sort_spec([['age', 'desc'], ['name', 'asc']]) == expected
    assert normalize_sort_spec(['age', 'name']) == [('age', 1), ('name', 1)]
    assert normalize_sort_spec(None) == []
    with pytest.raises(InvalidSortDirection):
        normalize_sort_spec(42)


def test_is_regexp():
    assert is_regexp(re.compile('^a'))
    assert is_regexp({'$regex': '^a', '$options': 'i'})
    assert not is_regexp('^a')
    assert not is_regexp({'$ne': 'a'})


def test_expr_part():
    pattern = re.compile('^a')
    assert expr_part('name', 'x') == {'name': 'x'}
    assert expr_part('name', 'x', negating=True) == {'name': {'$ne': 'x'}}
    assert expr_part('name', pattern, negating=True) == {'name': {'$not': pattern}}
    wrapped = {'$regex': '^a'}
    assert expr_part('name', wrapped, negating=True) == {'name': {'$not': wrapped}}


def test_mongo_expression():
    assert mongo_expression('test') == '$test'
    assert mongo_expression('$test') == '$test'


def test_evolve_string():
    pattern = re.compile('x')
    assert evolve_string(1) == '1'
    assert evolve_string(pattern) is pattern
    assert evolve_string(None) is None
