"""
Core Helpers Tests
==================

Test Coverage:
1. Email / phone normalisation
2. Range checks name the field and bound
3. Timestamp parsing
4. store_operation error translation
5. Error bodies

Run tests:
    python manage.py test apps.core.tests.test_validators
"""

import uuid
from datetime import date, datetime

from django.db import IntegrityError, OperationalError
from django.test import SimpleTestCase
from django.utils import timezone

from apps.core.db import store_operation
from apps.core.exceptions import ConstraintViolation, NotFound, TransientStoreError, ValidationError
from apps.core.validators import (
    as_uuid,
    check_ranges,
    check_unknown_fields,
    normalize_email,
    normalize_phone,
    parse_timestamp,
)


class NormaliseTest(SimpleTestCase):

    def test_email(self):
        self.assertEqual(normalize_email(' Sara@Clinic.COM '), 'sara@clinic.com')
        self.assertEqual(normalize_email(None), '')
        for value in ('sara', 'sara@clinic', 'sa ra@clinic.com'):
            with self.assertRaises(ValidationError):
                normalize_email(value)

    def test_phone(self):
        self.assertEqual(normalize_phone('+20 100-123 4567'), '+201001234567')
        self.assertEqual(normalize_phone(''), '')
        for value in ('123456789', '1234567890123456', '12345abcde'):
            with self.assertRaises(ValidationError) as ctx:
                normalize_phone(value, field='secondary_phone')
            self.assertEqual(ctx.exception.field, 'secondary_phone')


class CheckRangesTest(SimpleTestCase):
    ranges = {'score': (1, 10), 'level': (1, None)}

    def test_in_range_and_none(self):
        check_ranges({'score': 1, 'level': 500}, self.ranges)
        check_ranges({'score': None}, self.ranges)

    def test_out_of_range(self):
        with self.assertRaises(ConstraintViolation) as ctx:
            check_ranges({'score': 11}, self.ranges, ConstraintViolation)
        self.assertEqual(ctx.exception.field, 'score')
        self.assertEqual(ctx.exception.constraint, '1 <= score <= 10')

        with self.assertRaises(ValidationError) as ctx:
            check_ranges({'level': 0}, self.ranges)
        self.assertEqual(ctx.exception.constraint, 'level >= 1')

    def test_not_coerced(self):
        for value in ('5', 5.0, True):
            with self.assertRaises(ValidationError):
                check_ranges({'score': value}, self.ranges)

    def test_unknown_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            check_unknown_fields({'a': 1, 'z': 2}, ['a'], 'thing')
        self.assertEqual(ctx.exception.field, 'z')


class ParseTimestampTest(SimpleTestCase):

    def test_iso_string(self):
        value = parse_timestamp('2026-01-15T08:00:00+02:00', 'when')
        self.assertTrue(timezone.is_aware(value))
        self.assertEqual(value.hour, 8)

    def test_date_and_naive_datetime_become_aware(self):
        self.assertTrue(timezone.is_aware(parse_timestamp(date(2026, 1, 15), 'when')))
        self.assertTrue(timezone.is_aware(parse_timestamp(datetime(2026, 1, 15, 9), 'when')))
        self.assertEqual(parse_timestamp('2026-01-15', 'when').day, 15)

    def test_none_passes_through(self):
        self.assertIsNone(parse_timestamp(None, 'when'))

    def test_garbage(self):
        for value in ('yesterday', '2026-13-45', 12):
            with self.assertRaises(ValidationError) as ctx:
                parse_timestamp(value, 'when')
            self.assertEqual(ctx.exception.constraint, 'datetime')

    def test_as_uuid(self):
        value = uuid.uuid4()
        self.assertEqual(as_uuid(str(value)), value)
        self.assertIsNone(as_uuid('nope'))
        self.assertIsNone(as_uuid(None))


class StoreOperationTest(SimpleTestCase):

    def test_integrity_error(self):
        @store_operation
        def write():
            raise IntegrityError('UNIQUE constraint failed')

        with self.assertRaises(ConstraintViolation) as ctx:
            write()
        self.assertEqual(ctx.exception.constraint, 'integrity')

    def test_operational_error(self):
        @store_operation
        def read():
            raise OperationalError('database is locked')

        with self.assertRaises(TransientStoreError) as ctx:
            read()
        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(ctx.exception.status_code, 503)

    def test_own_errors_pass_through(self):
        @store_operation
        def lookup():
            raise NotFound.for_object('Person', 'abc')

        with self.assertRaises(NotFound):
            lookup()

    def test_error_body(self):
        error = ValidationError('bad', field='email', constraint='email_format')
        self.assertEqual(error.to_dict(), {
            'code': 'validation_error',
            'message': 'bad',
            'field': 'email',
            'constraint': 'email_format',
        })
        self.assertEqual(NotFound.for_object('Person', 'abc').to_dict()['details'], {'kind': 'Person', 'id': 'abc'})
