"""
Network API Tests

Run tests:
    python manage.py test apps.network.tests.test_views
"""

import json

from django.contrib.auth import get_user_model
from django.test import Client, TestCase
from django.urls import reverse

from apps.contacts import services as contacts
from apps.network import services
from apps.network.models import Relationship

User = get_user_model()


class NetworkAPITest(TestCase):

    def setUp(self):
        """Setup test environment"""
        self.client = Client()
        self.client.force_login(User.objects.create_user(username='agent', password='agent123'))
        self.alice = contacts.create_person({'first_name': 'Alice', 'last_name': 'A', 'is_member': True})
        self.bob = contacts.create_person({'first_name': 'Bob', 'last_name': 'B', 'is_lead': True})

    def post_json(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')

    def test_create_relationship(self):
        response = self.post_json(reverse('network:relationship_create'), {
            'person_a_id': str(self.alice.pk),
            'person_b_id': str(self.bob.pk),
            'relationship_type': 'friend',
        })

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['relationship']['person_b_id'], str(self.bob.pk))

    def test_self_relationship_is_409(self):
        response = self.post_json(reverse('network:relationship_create'), {
            'person_a_id': str(self.alice.pk),
            'person_b_id': str(self.alice.pk),
            'relationship_type': 'friend',
        })
        self.assertEqual(response.status_code, 409)

    def test_duplicate_is_409(self):
        data = {'person_a_id': str(self.alice.pk), 'person_b_id': str(self.bob.pk), 'relationship_type': 'friend'}
        self.post_json(reverse('network:relationship_create'), data)

        response = self.post_json(reverse('network:relationship_create'), data)

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error']['code'], 'duplicate_edge')

    def test_record_and_list_referrals(self):
        response = self.post_json(reverse('network:referrals'), {
            'referrer_id': str(self.alice.pk),
            'referred_id': str(self.bob.pk),
            'referral_campaign': 'summer',
        })
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.json()['relationship']['is_primary_referrer'])

        response = self.client.get(reverse('network:referrals'), {'campaign': 'summer'})
        self.assertEqual(len(response.json()['relationships']), 1)

    def test_person_relationships(self):
        services.record_referral(self.alice.pk, self.bob.pk)

        response = self.client.get(reverse('network:person_relationships', kwargs={'pk': self.bob.pk}), {'direction': 'incoming'})

        relationships = response.json()['relationships']
        self.assertEqual(len(relationships), 1)
        self.assertEqual(relationships[0]['query_direction'], 'incoming')

    def test_bad_direction_is_400(self):
        response = self.client.get(reverse('network:person_relationships', kwargs={'pk': self.bob.pk}), {'direction': 'up'})
        self.assertEqual(response.status_code, 400)

    def test_network(self):
        services.record_referral(self.alice.pk, self.bob.pk)

        response = self.client.get(reverse('network:person_network', kwargs={'pk': self.alice.pk}), {'levels': 2})

        body = response.json()
        self.assertEqual(len(body['nodes']), 2)
        self.assertEqual(len(body['edges']), 1)

    def test_mark_primary(self):
        carol = contacts.create_person({'first_name': 'Carol', 'last_name': 'C', 'is_member': True})
        services.record_referral(self.alice.pk, self.bob.pk)
        second = services.record_referral(carol.pk, self.bob.pk, is_primary_referrer=False)

        response = self.post_json(reverse('network:relationship_primary', kwargs={'pk': second.pk}), {})

        self.assertEqual(response.status_code, 200)
        primary = Relationship.objects.get(is_primary_referrer=True)
        self.assertEqual(primary.pk, second.pk)

    def test_delete_relationship(self):
        relationship = services.create_relationship({'person_a': self.alice.pk, 'person_b': self.bob.pk, 'relationship_type': 'friend'})

        response = self.client.delete(reverse('network:relationship_detail', kwargs={'pk': relationship.pk}))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Relationship.objects.filter(pk=relationship.pk).exists())
