from datetime import datetime

from memquery.sorting import compare, multi_key_comparator, sort_records


def test_compare_nils():
    assert compare(None, None) == 0
    assert compare(None, 1) == 1
    assert compare(1, None) == -1


def test_compare_booleans_sort_false_first():
    assert compare(False, True) == -1
    assert compare(True, False) == 1
    assert compare(True, True) == 0


def test_compare_natural_ordering():
    assert compare(1, 2) == -1
    assert compare(2.5, 2) == 1
    assert compare('b', 'a') == 1
    assert compare(datetime(2020, 1, 1), datetime(2021, 1, 1)) == -1


def test_compare_is_antisymmetric():
    values = [None, False, True, 0, 1, 2.5, 'a', 'b', {'x': 1}, [1], datetime(2020, 1, 1)]
    for a in values:
        for b in values:
            assert compare(a, b) == -compare(b, a), (a, b)


def test_compare_heterogeneous_types_use_type_rank():
    assert compare(1, 'a') == -1
    assert compare('a', [1]) == -1


def test_multi_key_comparator_uses_first_difference():
    cmp = multi_key_comparator([('age', -1), ('name', 1)])
    assert cmp({'age': 30, 'name': 'a'}, {'age': 20, 'name': 'b'}) == -1
    assert cmp({'age': 30, 'name': 'a'}, {'age': 30, 'name': 'b'}) == -1
    assert cmp({'age': 30, 'name': 'a'}, {'age': 30, 'name': 'a'}) == 0


def test_sort_records_puts_nil_last_ascending():
    records = [{'n': 2}, {}, {'n': 1}]
    assert sort_records(records, [('n', 1)]) == [{'n': 1}, {'n': 2}, {}]
    assert sort_records(records, [('n', -1)]) == [{}, {'n': 2}, {'n': 1}]


def test_sort_records_is_stable():
    records = [{'k': 1, 'id': 'a'}, {'k': 0, 'id': 'b'}, {'k': 1, 'id': 'c'}, {'k': 0, 'id': 'd'}]
    ids = [r['id'] for r in sort_records(records, [('k', 1)])]
    assert ids == ['b', 'd', 'a', 'c']


def test_sort_records_without_spec_keeps_order():
    records = [{'n': 2}, {'n': 1}]
    assert sort_records(records, []) == records
