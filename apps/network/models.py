# Models:
# 1. Relationship - directed, typed edge between two persons

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q

from apps.contacts.models import Person
from apps.core.exceptions import NotFound
from apps.core.models import TimeStampedModel
from apps.core.validators import as_uuid


REFERRAL = 'referral'
ATTRIBUTION_RANGE = (0, 100)
RELATIONSHIP_LEVEL_RANGE = (1, None)


class Direction(models.TextChoices):
    A_TO_B = 'a_to_b', 'A → B'
    B_TO_A = 'b_to_a', 'B → A'
    BIDIRECTIONAL = 'bidirectional', 'Bidirectional'


class RelationshipStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'
    ORPHANED = 'orphaned', 'Orphaned'


class RelationshipQuerySet(models.QuerySet):

    def fetch(self, relationship_id, lock=False):
        pk = as_uuid(relationship_id)
        if pk is None:
            raise NotFound.for_object('Relationship', relationship_id)

        queryset = self.select_for_update() if lock else self
        try:
            return queryset.get(pk=pk)
        except self.model.DoesNotExist:
            raise NotFound.for_object('Relationship', relationship_id)

    def referrals(self):
        return self.filter(relationship_type=REFERRAL)

    def touching(self, person_id):
        return self.filter(Q(person_a_id=person_id) | Q(person_b_id=person_id))


class Relationship(TimeStampedModel):
    """
    A directed, typed edge: person_a → person_b.

    For referral edges person_a is the referrer and person_b the referred
    person. Either endpoint is nulled (and the edge marked orphaned) when a
    person is deleted under the orphan policy.
    """

    person_a = models.ForeignKey(Person, on_delete=models.SET_NULL, null=True, related_name='outgoing_relationships', help_text='Source person (the referrer for referral edges)')
    person_b = models.ForeignKey(Person, on_delete=models.SET_NULL, null=True, related_name='incoming_relationships', help_text='Target person (the referred person for referral edges)')
    relationship_type = models.CharField(max_length=30, db_index=True, help_text='referral, family, friend, ...')
    direction = models.CharField(max_length=20, choices=Direction.choices, default=Direction.A_TO_B)

    # Referral metadata
    referral_date = models.DateTimeField(null=True, blank=True)
    referral_channel = models.CharField(max_length=50, blank=True, default='')
    referral_campaign = models.CharField(max_length=100, blank=True, default='')
    referral_link_id = models.CharField(max_length=100, blank=True, default='')

    # Attribution
    is_primary_referrer = models.BooleanField(default=False)
    attribution_percentage = models.PositiveSmallIntegerField(default=100, validators=[MinValueValidator(0), MaxValueValidator(100)])

    # Status and strength
    status = models.CharField(max_length=20, default=RelationshipStatus.ACTIVE, db_index=True)
    relationship_level = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    relationship_strength = models.CharField(max_length=20, blank=True, default='')
    notes = models.TextField(blank=True, default='')

    range_fields = {
        'attribution_percentage': ATTRIBUTION_RANGE,
        'relationship_level': RELATIONSHIP_LEVEL_RANGE,
    }

    objects = RelationshipQuerySet.as_manager()

    class Meta:
        verbose_name = 'Relationship'
        verbose_name_plural = 'Relationships'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['person_a', 'relationship_type'], name='relationship_source_idx'),
            models.Index(fields=['person_b', 'relationship_type'], name='relationship_target_idx'),
        ]
        constraints = [
            models.UniqueConstraint(fields=['person_a', 'person_b', 'relationship_type'], name='unique_relationship_triple'),
            models.CheckConstraint(condition=~Q(person_a=F('person_b')), name='relationship_not_self'),
            models.CheckConstraint(condition=Q(attribution_percentage__gte=0, attribution_percentage__lte=100), name='relationship_attribution_range'),
            models.CheckConstraint(condition=Q(relationship_level__gte=1), name='relationship_level_min'),
        ]

    def __str__(self):
        return f'{self.person_a_id} -[{self.relationship_type}]-> {self.person_b_id}'

    @property
    def is_referral(self):
        return self.relationship_type == REFERRAL
