"""
Relationship Graph Tests
========================

Test Coverage:
1. create_relationship
   - Self-loops, duplicate triples, unknown endpoints, ranges
   - Idempotent create with a client id
2. update / delete / relationships_for directions
3. record_referral defaults and side effects on both persons
   - Primary referral flag stays unique through create and update
4. referral_relationships filters

Run tests:
    python manage.py test apps.network.tests.test_services
"""

import uuid

from django.test import TestCase

from apps.contacts import services as contacts
from apps.contacts.models import MemberExtension, Person
from apps.core.exceptions import ConstraintViolation, DuplicateEdge, NotFound, ValidationError
from apps.network import services
from apps.network.models import Relationship


def make_person(first_name, **extra):
    data = {'first_name': first_name, 'last_name': 'Test', 'is_lead': True}
    data.update(extra)
    return contacts.create_person(data)


class CreateRelationshipTest(TestCase):
    """
    Test create_relationship validation
    """

    def setUp(self):
        """Setup test data before each test"""
        self.alice = make_person('Alice')
        self.bob = make_person('Bob')

    def edge(self, **overrides):
        data = {'person_a': self.alice.pk, 'person_b': self.bob.pk, 'relationship_type': 'friend'}
        data.update(overrides)
        return data

    def test_create_defaults(self):
        relationship = services.create_relationship(self.edge())

        self.assertEqual(relationship.direction, 'a_to_b')
        self.assertEqual(relationship.status, 'active')
        self.assertEqual(relationship.relationship_level, 1)
        self.assertIsNone(relationship.referral_date)

    def test_id_aliases(self):
        relationship = services.create_relationship({
            'person_a_id': str(self.alice.pk),
            'person_b_id': str(self.bob.pk),
            'relationship_type': 'Family',
        })
        self.assertEqual(relationship.person_a, self.alice)
        self.assertEqual(relationship.relationship_type, 'family')

    def test_self_relationship_rejected(self):
        with self.assertRaises(ConstraintViolation) as ctx:
            services.create_relationship(self.edge(person_b=self.alice.pk))
        self.assertEqual(ctx.exception.constraint, 'no_self_relationship')
        self.assertEqual(Relationship.objects.count(), 0)

    def test_duplicate_triple_rejected(self):
        services.create_relationship(self.edge())
        with self.assertRaises(DuplicateEdge):
            services.create_relationship(self.edge())

        # Same pair, other type or other direction is fine
        services.create_relationship(self.edge(relationship_type='colleague'))
        services.create_relationship(self.edge(person_a=self.bob.pk, person_b=self.alice.pk))
        self.assertEqual(Relationship.objects.count(), 3)

    def test_duplicate_is_a_constraint_violation(self):
        services.create_relationship(self.edge())
        with self.assertRaises(ConstraintViolation):
            services.create_relationship(self.edge())

    def test_unknown_endpoint(self):
        with self.assertRaises(NotFound):
            services.create_relationship(self.edge(person_b=uuid.uuid4()))

    def test_missing_endpoint(self):
        data = self.edge()
        del data['person_b']
        with self.assertRaises(ValidationError) as ctx:
            services.create_relationship(data)
        self.assertEqual(ctx.exception.field, 'person_b')

    def test_ranges(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_relationship(self.edge(attribution_percentage=101))
        self.assertEqual(ctx.exception.field, 'attribution_percentage')

        with self.assertRaises(ValidationError) as ctx:
            services.create_relationship(self.edge(relationship_level=0))
        self.assertEqual(ctx.exception.field, 'relationship_level')

    def test_bad_direction(self):
        with self.assertRaises(ValidationError):
            services.create_relationship(self.edge(direction='sideways'))

    def test_client_id_is_idempotent(self):
        relationship_id = uuid.uuid4()
        first = services.create_relationship(self.edge(id=str(relationship_id)))
        second = services.create_relationship(self.edge(id=str(relationship_id)))

        self.assertEqual(first.pk, relationship_id)
        self.assertEqual(second.pk, relationship_id)
        self.assertEqual(Relationship.objects.count(), 1)

    def test_referral_gets_a_date(self):
        relationship = services.create_relationship(self.edge(relationship_type='referral'))
        self.assertIsNotNone(relationship.referral_date)


class UpdateDeleteRelationshipTest(TestCase):

    def setUp(self):
        """Setup test data before each test"""
        self.alice = make_person('Alice')
        self.bob = make_person('Bob')
        self.friend = services.create_relationship({'person_a': self.alice.pk, 'person_b': self.bob.pk, 'relationship_type': 'friend'})
        self.family = services.create_relationship({'person_a': self.alice.pk, 'person_b': self.bob.pk, 'relationship_type': 'family'})

    def test_update_fields(self):
        relationship = services.update_relationship(self.friend.pk, {'relationship_strength': 'strong', 'relationship_level': 2})
        self.assertEqual(relationship.relationship_strength, 'strong')
        self.assertEqual(relationship.relationship_level, 2)

    def test_update_into_duplicate(self):
        with self.assertRaises(DuplicateEdge):
            services.update_relationship(self.friend.pk, {'relationship_type': 'family'})

    def test_update_into_self_loop(self):
        with self.assertRaises(ConstraintViolation):
            services.update_relationship(self.friend.pk, {'person_b': self.alice.pk})

    def test_id_is_immutable(self):
        with self.assertRaises(ValidationError):
            services.update_relationship(self.friend.pk, {'id': str(uuid.uuid4())})

    def test_delete(self):
        services.delete_relationship(self.friend.pk)
        with self.assertRaises(NotFound):
            services.get_relationship(self.friend.pk)

    def test_orphaned_edges_do_not_collide(self):
        first = services.record_referral(self.alice.pk, self.bob.pk)
        second = services.record_referral(make_person('Carol').pk, self.bob.pk)
        contacts.delete_person(self.alice.pk, policy='orphan')
        contacts.delete_person(second.person_a_id, policy='orphan')

        relationship = services.update_relationship(first.pk, {'notes': 'Referrer left the club'})

        self.assertIsNone(relationship.person_a_id)
        self.assertEqual(relationship.status, 'orphaned')
        self.assertEqual(relationship.notes, 'Referrer left the club')


class RelationshipsForTest(TestCase):

    def setUp(self):
        """Setup test data before each test"""
        self.alice = make_person('Alice')
        self.bob = make_person('Bob')
        self.carol = make_person('Carol')
        self.outgoing = services.create_relationship({'person_a': self.alice.pk, 'person_b': self.bob.pk, 'relationship_type': 'friend'})
        self.incoming = services.record_referral(self.carol.pk, self.alice.pk)

    def test_both_directions_newest_first(self):
        relationships = services.relationships_for(self.alice.pk)

        self.assertEqual([r.pk for r in relationships], [self.incoming.pk, self.outgoing.pk])
        self.assertEqual([r.query_direction for r in relationships], ['incoming', 'outgoing'])

    def test_single_direction(self):
        self.assertEqual(services.relationships_for(self.alice.pk, 'outgoing'), [self.outgoing])
        self.assertEqual(services.relationships_for(self.alice.pk, 'incoming'), [self.incoming])

    def test_type_filter(self):
        relationships = services.relationships_for(self.alice.pk, 'both', {'relationship_type': 'referral'})
        self.assertEqual(relationships, [self.incoming])

    def test_type_filter_ignores_case(self):
        family = services.create_relationship({'person_a': self.alice.pk, 'person_b': self.carol.pk, 'relationship_type': 'Family'})

        relationships = services.relationships_for(self.alice.pk, 'both', {'relationship_type': 'Family'})

        self.assertEqual(family.relationship_type, 'family')
        self.assertEqual(relationships, [family])

    def test_bad_direction(self):
        with self.assertRaises(ValidationError):
            services.relationships_for(self.alice.pk, 'sideways')

    def test_unknown_person(self):
        with self.assertRaises(NotFound):
            services.relationships_for(uuid.uuid4())


class RecordReferralTest(TestCase):
    """
    Test record_referral and the referral side effects
    """

    def setUp(self):
        """Setup test data before each test"""
        self.referrer = contacts.create_person({'first_name': 'Member', 'last_name': 'One'}, extensions={'member': {}})
        self.prospect = make_person('Prospect')

    def test_defaults(self):
        relationship = services.record_referral(self.referrer.pk, self.prospect.pk)

        self.assertEqual(relationship.relationship_type, 'referral')
        self.assertEqual(relationship.referral_channel, 'app')
        self.assertEqual(relationship.relationship_strength, 'medium')
        self.assertTrue(relationship.is_primary_referrer)
        self.assertEqual(relationship.attribution_percentage, 100)
        self.assertIsNotNone(relationship.referral_date)

    def test_referred_person_is_flagged(self):
        services.record_referral(self.referrer.pk, self.prospect.pk)

        prospect = Person.objects.get(pk=self.prospect.pk)
        self.assertTrue(prospect.is_referral)
        self.assertTrue(prospect.is_lead)
        self.assertEqual(prospect.referral_source, str(self.referrer.pk))

    def test_referrer_count_incremented(self):
        services.record_referral(self.referrer.pk, self.prospect.pk)
        services.record_referral(self.referrer.pk, make_person('Second').pk, referral_channel='whatsapp')

        member = MemberExtension.objects.get(person=self.referrer)
        self.assertEqual(member.referral_count, 2)

    def test_non_referral_edge_has_no_side_effects(self):
        services.create_relationship({'person_a': self.referrer.pk, 'person_b': self.prospect.pk, 'relationship_type': 'friend'})

        self.assertFalse(Person.objects.get(pk=self.prospect.pk).is_referral)
        self.assertEqual(MemberExtension.objects.get(person=self.referrer).referral_count, 0)

    def test_self_referral_rejected(self):
        with self.assertRaises(ConstraintViolation):
            services.record_referral(self.referrer.pk, self.referrer.pk)

    def test_referral_filters(self):
        services.record_referral(self.referrer.pk, self.prospect.pk, referral_campaign='spring')
        other = make_person('Other')
        services.record_referral(self.referrer.pk, other.pk, referral_channel='sms')

        self.assertEqual(len(services.referral_relationships()), 2)
        self.assertEqual(len(services.referral_relationships({'referrer_id': str(self.referrer.pk)})), 2)
        self.assertEqual([r.person_b_id for r in services.referral_relationships({'channel': 'sms'})], [other.pk])
        self.assertEqual([r.person_b_id for r in services.referral_relationships({'campaign': 'spring'})], [self.prospect.pk])

    def test_unknown_referral_filter(self):
        with self.assertRaises(ValidationError):
            services.referral_relationships({'colour': 'red'})


class PrimaryReferralWriteTest(TestCase):
    """
    Test that plain edge writes keep one primary referrer per person
    """

    def setUp(self):
        """Setup test data before each test"""
        self.first = make_person('First')
        self.second = make_person('Second')
        self.prospect = make_person('Prospect')

    def referral(self, referrer, **extra):
        data = {
            'person_a': referrer.pk,
            'person_b': self.prospect.pk,
            'relationship_type': 'referral',
            'is_primary_referrer': True,
            'attribution_percentage': 100,
        }
        data.update(extra)
        return services.create_relationship(data)

    def primaries(self):
        return list(Relationship.objects.filter(person_b=self.prospect, is_primary_referrer=True))

    def test_create_takes_the_primary_flag(self):
        older = self.referral(self.first)
        newer = self.referral(self.second)

        self.assertEqual(self.primaries(), [newer])
        older.refresh_from_db()
        self.assertFalse(older.is_primary_referrer)
        self.assertEqual(older.attribution_percentage, 0)
        self.assertEqual(newer.attribution_percentage, 100)

    def test_update_takes_the_primary_flag(self):
        older = self.referral(self.first)
        newer = self.referral(self.second, is_primary_referrer=False, attribution_percentage=0)
        self.assertEqual(self.primaries(), [older])

        updated = services.update_relationship(newer.pk, {'is_primary_referrer': True})

        self.assertTrue(updated.is_primary_referrer)
        self.assertEqual(updated.attribution_percentage, 100)
        self.assertEqual(self.primaries(), [newer])
        older.refresh_from_db()
        self.assertEqual(older.attribution_percentage, 0)

    def test_non_primary_create_leaves_existing_primary(self):
        older = self.referral(self.first)
        self.referral(self.second, is_primary_referrer=False, attribution_percentage=0)

        self.assertEqual(self.primaries(), [older])
