"""
Primary Referrer Attribution Tests

Run tests:
    python manage.py test apps.network.tests.test_attribution
"""

import uuid

from django.test import TestCase

from apps.contacts import services as contacts
from apps.core.exceptions import ConstraintViolation, NotFound
from apps.network import services
from apps.network.attribution import mark_primary_referrer, primary_referrer_for
from apps.network.models import Relationship


class MarkPrimaryReferrerTest(TestCase):
    """
    Two members referred the same person

    Flow:
    1. First referral is primary (100%), second is not (0%)
    2. Marking the second flips the split
    3. Marking it again changes nothing
    """

    def setUp(self):
        """Setup test data before each test"""
        self.first = contacts.create_person({'first_name': 'First', 'last_name': 'Referrer'}, extensions={'member': {}})
        self.second = contacts.create_person({'first_name': 'Second', 'last_name': 'Referrer'}, extensions={'member': {}})
        self.referred = contacts.create_person({'first_name': 'New', 'last_name': 'Friend', 'is_lead': True})

        self.edge1 = services.record_referral(self.first.pk, self.referred.pk)
        self.edge2 = services.record_referral(self.second.pk, self.referred.pk, is_primary_referrer=False)

    def split(self):
        return {
            edge.pk: (edge.is_primary_referrer, edge.attribution_percentage)
            for edge in Relationship.objects.referrals().filter(person_b=self.referred)
        }

    def test_initial_split(self):
        self.assertEqual(self.split(), {self.edge1.pk: (True, 100), self.edge2.pk: (False, 0)})
        self.assertEqual(primary_referrer_for(self.referred.pk), self.edge1)

    def test_flip_primary(self):
        edges = mark_primary_referrer(self.edge2.pk, self.referred.pk)

        self.assertEqual([edge.pk for edge in edges], [self.edge1.pk, self.edge2.pk])
        self.assertEqual(self.split(), {self.edge1.pk: (False, 0), self.edge2.pk: (True, 100)})
        self.assertEqual(primary_referrer_for(self.referred.pk), self.edge2)

    def test_marking_twice_is_idempotent(self):
        mark_primary_referrer(self.edge2.pk, self.referred.pk)
        mark_primary_referrer(self.edge2.pk, self.referred.pk)

        self.assertEqual(self.split(), {self.edge1.pk: (False, 0), self.edge2.pk: (True, 100)})

    def test_exactly_one_primary(self):
        third = contacts.create_person({'first_name': 'Third', 'last_name': 'Referrer', 'is_member': True})
        services.record_referral(third.pk, self.referred.pk)

        primaries = [value for value in self.split().values() if value[0]]
        self.assertEqual(primaries, [(True, 100)])

    def test_edge_into_another_person(self):
        other = contacts.create_person({'first_name': 'Other', 'last_name': 'Person', 'is_lead': True})
        elsewhere = services.record_referral(self.first.pk, other.pk)

        with self.assertRaises(ConstraintViolation):
            mark_primary_referrer(elsewhere.pk, self.referred.pk)

    def test_non_referral_edge(self):
        friend = services.create_relationship({
            'person_a': self.second.pk,
            'person_b': self.referred.pk,
            'relationship_type': 'friend',
        })
        with self.assertRaises(ConstraintViolation):
            mark_primary_referrer(friend.pk, self.referred.pk)

    def test_unknown_ids(self):
        with self.assertRaises(NotFound):
            mark_primary_referrer(uuid.uuid4(), self.referred.pk)
        with self.assertRaises(NotFound):
            mark_primary_referrer(self.edge1.pk, uuid.uuid4())

    def test_no_referrer(self):
        self.assertIsNone(primary_referrer_for(self.first.pk))
