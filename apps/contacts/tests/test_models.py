"""
Contacts Models Tests
=====================

Test Coverage:
1. Person Model
   - Full name, roles, extension lookup
   - PersonQuerySet.fetch / search / with_role

2. Extension Models
   - Status field mapping and current_status (incl. legacy values)
   - Append-only history helper
   - ExtensionQuerySet.for_person not-found cases

Run tests:
    python manage.py test apps.contacts.tests.test_models
"""

import uuid

from django.test import TestCase

from apps.contacts.models import (
    EXTENSION_MODELS,
    LeadExtension,
    MemberExtension,
    Person,
    ReferralExtension,
)
from apps.core.exceptions import NotFound
from apps.pipeline.states import LeadStatus, LegacyStatus, Role


class PersonModelTest(TestCase):
    """
    Test Person model helpers

    Tests:
    - Display helpers
    - Role list
    - Extension lookup
    """

    def setUp(self):
        """Setup test data before each test"""
        self.person = Person.objects.create(
            first_name='Ada',
            last_name='Lovelace',
            email='ada@example.com',
            phone='5551234567',
            is_lead=True,
            is_member=True,
        )

    def test_full_name(self):
        self.assertEqual(self.person.get_full_name(), 'Ada Lovelace')

    def test_roles_follow_flags(self):
        self.assertEqual(self.person.roles, ['lead', 'member'])

    def test_str_lists_roles(self):
        self.assertEqual(str(self.person), 'Ada Lovelace (lead, member)')

    def test_uuid_primary_key(self):
        self.assertIsInstance(self.person.pk, uuid.UUID)

    def test_get_extension_missing_returns_none(self):
        self.assertIsNone(self.person.get_extension(Role.LEAD))
        self.assertFalse(self.person.has_extension('lead'))

    def test_get_extension_present(self):
        lead = LeadExtension.objects.create(person=self.person)
        person = Person.objects.get(pk=self.person.pk)

        self.assertEqual(person.get_extension('lead'), lead)
        self.assertTrue(person.has_extension(Role.LEAD))

    def test_extension_models_cover_every_role(self):
        self.assertEqual(set(EXTENSION_MODELS), set(Role))
        self.assertIs(EXTENSION_MODELS[Role.MEMBER], MemberExtension)


class PersonQuerySetTest(TestCase):
    """
    Test PersonQuerySet lookups
    """

    def setUp(self):
        """Setup test data before each test"""
        self.ada = Person.objects.create(first_name='Ada', last_name='Lovelace', email='ada@example.com', is_lead=True)
        self.alan = Person.objects.create(first_name='Alan', last_name='Turing', phone='+441234567890', is_member=True)

    def test_fetch_returns_person(self):
        self.assertEqual(Person.objects.fetch(self.ada.pk), self.ada)
        self.assertEqual(Person.objects.fetch(str(self.ada.pk)), self.ada)

    def test_fetch_unknown_id_raises_not_found(self):
        with self.assertRaises(NotFound):
            Person.objects.fetch(uuid.uuid4())

    def test_fetch_malformed_id_raises_not_found(self):
        with self.assertRaises(NotFound):
            Person.objects.fetch('not-a-uuid')

    def test_search_matches_name_email_and_phone(self):
        self.assertEqual(list(Person.objects.search('lovelace')), [self.ada])
        self.assertEqual(list(Person.objects.search('ADA@EXAMPLE')), [self.ada])
        self.assertEqual(list(Person.objects.search('4412345')), [self.alan])

    def test_search_matches_first_and_last_name_together(self):
        self.assertEqual(list(Person.objects.search('alan turing')), [self.alan])

    def test_blank_search_returns_nothing(self):
        self.assertEqual(list(Person.objects.search('   ')), [])

    def test_with_role(self):
        self.assertEqual(list(Person.objects.with_role('member')), [self.alan])


class ExtensionModelTest(TestCase):
    """
    Test the shared extension behaviour
    """

    def setUp(self):
        """Setup test data before each test"""
        self.person = Person.objects.create(first_name='Grace', last_name='Hopper', is_lead=True, is_referral=True)
        self.lead = LeadExtension.objects.create(person=self.person)

    def test_status_field_per_role(self):
        self.assertEqual(LeadExtension.status_field(), 'lead_status')
        self.assertEqual(ReferralExtension.status_field(), 'referral_status')
        self.assertEqual(MemberExtension.status_field(), 'membership_status')

    def test_defaults(self):
        self.assertEqual(self.lead.lead_status, 'new')
        self.assertEqual(self.lead.status_history, [])
        self.assertEqual(self.lead.version, 1)

    def test_current_status_is_enum_member(self):
        self.assertEqual(self.lead.current_status, LeadStatus.NEW)

    def test_legacy_status_still_loads(self):
        LeadExtension.objects.filter(pk=self.lead.pk).update(lead_status='qualified')
        self.lead.refresh_from_db()

        status = self.lead.current_status
        self.assertIsInstance(status, LegacyStatus)
        self.assertEqual(status, 'qualified')

    def test_append_history_keeps_earlier_entries(self):
        self.lead.append_history(LeadStatus.NEW, 'created')
        first = dict(self.lead.status_history[0])
        self.lead.append_history(LeadStatus.CONTACTED, 'called')

        self.assertEqual(len(self.lead.status_history), 2)
        self.assertEqual(self.lead.status_history[0], first)
        self.assertEqual(self.lead.status_history[1]['status'], 'contacted')
        self.assertEqual(self.lead.status_history[1]['note'], 'called')

    def test_for_person_unknown_person(self):
        with self.assertRaises(NotFound) as ctx:
            LeadExtension.objects.for_person(uuid.uuid4())
        self.assertEqual(ctx.exception.details['kind'], 'Person')

    def test_for_person_missing_extension(self):
        with self.assertRaises(NotFound) as ctx:
            ReferralExtension.objects.for_person(self.person.pk)
        self.assertEqual(ctx.exception.details['kind'], 'referral_extension')
