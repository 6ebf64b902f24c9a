"""
Primary-referrer attribution.

A referred person may have several incoming referral edges; at most one of
them is the primary referrer and carries 100% of the attribution, the
others 0%.
"""
import logging

from django.db import transaction
from django.utils import timezone

from apps.contacts.models import Person
from apps.core.db import store_operation
from apps.core.exceptions import ConstraintViolation
from apps.core.validators import as_uuid

from .models import Relationship


logger = logging.getLogger(__name__)


def _referrals_of(person_pk):
    return Relationship.objects.referrals().filter(person_b_id=person_pk)


@store_operation
def mark_primary_referrer(relationship_id, referred_person_id):
    """
    Make `relationship_id` the primary referral edge of `referred_person_id`.

    Every referral edge pointing at the referred person is reset to
    (is_primary_referrer=False, attribution_percentage=0), then the chosen
    edge is set to (True, 100). Both writes run in one transaction with the
    affected rows locked, so the split is never observed half-applied.
    Calling it again with the same arguments changes nothing.

    Returns:
        The referred person's referral edges after the update, oldest first.

    Raises:
        NotFound: unknown person or relationship
        ConstraintViolation: the relationship is not a referral edge into
            the referred person
    """
    referred = Person.objects.fetch(referred_person_id)
    target_pk = as_uuid(relationship_id)

    with transaction.atomic():
        edges = list(_referrals_of(referred.pk).select_for_update().order_by('created_at'))
        edge_ids = [edge.pk for edge in edges]

        if target_pk not in edge_ids:
            relationship = Relationship.objects.fetch(relationship_id)
            raise ConstraintViolation(
                f'Relationship {relationship.pk} is not a referral of person {referred.pk}',
                field='relationship_id',
                constraint='referral_into_person',
            )

        now = timezone.now()
        Relationship.objects.filter(pk__in=edge_ids).update(
            is_primary_referrer=False,
            attribution_percentage=0,
            updated_at=now,
        )
        Relationship.objects.filter(pk=target_pk).update(
            is_primary_referrer=True,
            attribution_percentage=100,
            updated_at=now,
        )

    logger.info('Primary referrer of %s is now relationship %s', referred.pk, target_pk)
    return list(_referrals_of(referred.pk).select_related('person_a', 'person_b').order_by('created_at'))


@store_operation
def primary_referrer_for(person_id):
    """The primary referral edge into `person_id`, or None."""
    pk = as_uuid(person_id)
    if pk is None:
        return None
    return (
        _referrals_of(pk)
        .filter(is_primary_referrer=True)
        .select_related('person_a')
        .order_by('-updated_at')
        .first()
    )
