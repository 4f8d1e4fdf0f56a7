import pytest

from memquery.db import Database
from memquery.document import Document


class Phone(Document):
    pass


class Address(Document):
    aliased_fields = {'st': 'street'}
    localized_fields = frozenset({'name'})
    embedded = {'phones': Phone}


class Person(Document):
    embedded = {'addresses': Address}


@pytest.fixture
def db():
    database = Database('test')
    database.add_collection('people')
    return database


@pytest.fixture
def person(db):
    """A saved person with three embedded addresses"""
    person = Person(
        collection=db.people,
        _id='p1',
        title='Sir',
        addresses=[
            Address(_id='a1', street='Bond', city='London', number=7, name={'en': 'Home', 'de': 'Zuhause'}),
            Address(_id='a2', street='Abbey', city='London', number=3, name={'en': 'Studio'}),
            Address(_id='a3', street='Unter den Linden', city='Berlin', number=None,
                    phones=[Phone(_id='ph1', number='123'), Phone(_id='ph2')]),
        ],
    )
    person.save()
    return person
