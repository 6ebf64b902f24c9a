"""
Relationship graph operations.

Edges are directed (person_a → person_b) and unique per
(person_a, person_b, relationship_type). Every check runs before the
write; the database constraints on Relationship are only the backstop.
Referral side effects on the referred person live in signals.py so they
fire for edges created from the admin too.
"""
import logging

from django.db import transaction
from django.utils import timezone

from apps.contacts.models import Person
from apps.core.db import store_operation
from apps.core.exceptions import ConstraintViolation, DuplicateEdge, ValidationError
from apps.core.validators import (
    as_uuid,
    check_ranges,
    check_unknown_fields,
    clean_model_fields,
    parse_timestamp,
)

from .attribution import mark_primary_referrer
from .models import REFERRAL, Direction, Relationship, RelationshipStatus


logger = logging.getLogger(__name__)


EDGE_FIELDS = (
    'person_a', 'person_b', 'relationship_type', 'direction',
    'referral_date', 'referral_channel', 'referral_campaign', 'referral_link_id',
    'is_primary_referrer', 'attribution_percentage',
    'status', 'relationship_level', 'relationship_strength', 'notes',
)
TEXT_FIELDS = (
    'referral_channel', 'referral_campaign', 'referral_link_id',
    'status', 'relationship_strength', 'notes',
)
IMMUTABLE_FIELDS = ('id', 'created_at', 'updated_at')

DIRECTIONS = ('outgoing', 'incoming', 'both')
RELATIONSHIP_FILTERS = ('relationship_type', 'status')
REFERRAL_FILTERS = (
    'referrer_id', 'referred_id', 'channel', 'campaign', 'status',
    'is_primary_referrer', 'date_from', 'date_to',
)

DELETE_POLICIES = ('block', 'cascade', 'orphan')


def _edge_data(edge):
    """Copy `edge`, accepting person_a_id / person_b_id as aliases."""
    data = dict(edge or {})
    for endpoint in ('person_a', 'person_b'):
        alias = f'{endpoint}_id'
        if alias in data:
            data.setdefault(endpoint, data.pop(alias))
    return data


def _clean_edge(data, partial):
    check_unknown_fields(data, EDGE_FIELDS, 'relationship')

    cleaned = {}
    for endpoint in ('person_a', 'person_b'):
        if endpoint in data:
            if data[endpoint] in (None, ''):
                raise ValidationError(f'{endpoint} is required', field=endpoint, constraint='required')
            cleaned[endpoint] = data[endpoint]
        elif not partial:
            raise ValidationError(f'{endpoint} is required', field=endpoint, constraint='required')

    if 'relationship_type' in data or not partial:
        value = data.get('relationship_type')
        if not isinstance(value, str) or not value.strip():
            raise ValidationError('relationship_type is required', field='relationship_type', constraint='required')
        cleaned['relationship_type'] = value.strip().lower()

    if 'direction' in data:
        if data['direction'] not in Direction.values:
            raise ValidationError(
                f'direction must be one of {", ".join(Direction.values)}',
                field='direction',
                constraint='choices',
            )
        cleaned['direction'] = data['direction']

    check_ranges(data, Relationship.range_fields, ValidationError)
    for field in Relationship.range_fields:
        if field in data:
            if data[field] is None:
                raise ValidationError(f'{field} cannot be null', field=field, constraint='required')
            cleaned[field] = data[field]

    if 'is_primary_referrer' in data:
        if not isinstance(data['is_primary_referrer'], bool):
            raise ValidationError('is_primary_referrer must be a boolean', field='is_primary_referrer', constraint='type:boolean')
        cleaned['is_primary_referrer'] = data['is_primary_referrer']

    if 'referral_date' in data:
        cleaned['referral_date'] = parse_timestamp(data['referral_date'], 'referral_date')

    for field in TEXT_FIELDS:
        if field in data:
            value = data[field]
            if value is None:
                value = ''
            if not isinstance(value, str):
                raise ValidationError(f'{field} must be a string', field=field, constraint='type:string')
            cleaned[field] = value.strip()

    if cleaned.get('status') == '':
        cleaned['status'] = RelationshipStatus.ACTIVE

    return cleaned


def _check_not_self(person_a_id, person_b_id):
    if person_a_id is not None and person_a_id == person_b_id:
        raise ConstraintViolation(
            'A person cannot have a relationship with themselves',
            field='person_b',
            constraint='no_self_relationship',
        )


def _check_unique(person_a_id, person_b_id, relationship_type, exclude_id=None):
    # An orphaned edge has lost an endpoint and cannot collide with anything
    if person_a_id is None or person_b_id is None:
        return

    duplicates = Relationship.objects.filter(
        person_a_id=person_a_id,
        person_b_id=person_b_id,
        relationship_type=relationship_type,
    )
    if exclude_id is not None:
        duplicates = duplicates.exclude(pk=exclude_id)

    if duplicates.exists():
        raise DuplicateEdge(
            f'A {relationship_type} relationship from {person_a_id} to {person_b_id} already exists',
            field='relationship_type',
            constraint='unique_relationship_triple',
        )


def _settle_primary(relationship):
    """A primary referral edge takes the flag (and 100%) from the other referrers of its target."""
    if relationship.is_referral and relationship.is_primary_referrer and relationship.person_b_id is not None:
        mark_primary_referrer(relationship.pk, relationship.person_b_id)
        relationship.refresh_from_db()


@store_operation
def create_relationship(edge):
    """
    Record a new edge person_a → person_b.

    A client-supplied `id` makes the call idempotent: when an edge with that
    id exists it is returned unchanged. A referral edge written as primary
    takes the flag from any other referrer of the same person.

    Raises:
        NotFound: either endpoint is unknown
        ConstraintViolation: person_a == person_b
        DuplicateEdge: the (person_a, person_b, relationship_type) triple exists
        ValidationError: malformed fields, attribution outside 0-100, level below 1
    """
    data = _edge_data(edge)

    relationship_id = data.pop('id', None)
    if relationship_id is not None:
        relationship_id = as_uuid(relationship_id)
        if relationship_id is None:
            raise ValidationError('id must be a UUID', field='id', constraint='uuid')
        existing = Relationship.objects.filter(pk=relationship_id).first()
        if existing is not None:
            logger.info('Relationship %s already recorded, returning it', relationship_id)
            return existing

    cleaned = _clean_edge(data, partial=False)
    person_a = Person.objects.fetch(cleaned.pop('person_a'))
    person_b = Person.objects.fetch(cleaned.pop('person_b'))

    _check_not_self(person_a.pk, person_b.pk)
    _check_unique(person_a.pk, person_b.pk, cleaned['relationship_type'])

    relationship = Relationship(person_a=person_a, person_b=person_b, **cleaned)
    if relationship_id is not None:
        relationship.id = relationship_id
    if relationship.is_referral and relationship.referral_date is None:
        relationship.referral_date = timezone.now()
    clean_model_fields(relationship, exclude=['person_a', 'person_b'])

    with transaction.atomic():
        relationship.save(force_insert=True)
        _settle_primary(relationship)

    logger.info(
        'Relationship %s created: %s -[%s]-> %s',
        relationship.pk, person_a.pk, relationship.relationship_type, person_b.pk,
    )
    return relationship


@store_operation
def get_relationship(relationship_id):
    return Relationship.objects.select_related('person_a', 'person_b').fetch(relationship_id)


@store_operation
def update_relationship(relationship_id, patch):
    """
    Partially update an edge.

    Changing an endpoint or the type re-checks the self-loop rule and the
    uniqueness of the triple, excluding the edge itself.
    """
    data = _edge_data(patch)
    for field in IMMUTABLE_FIELDS:
        if field in data:
            raise ValidationError(f'{field} cannot be changed', field=field, constraint='immutable')

    cleaned = _clean_edge(data, partial=True)

    with transaction.atomic():
        relationship = Relationship.objects.fetch(relationship_id, lock=True)

        if 'person_a' in cleaned:
            relationship.person_a = Person.objects.fetch(cleaned.pop('person_a'))
        if 'person_b' in cleaned:
            relationship.person_b = Person.objects.fetch(cleaned.pop('person_b'))

        for field, value in cleaned.items():
            setattr(relationship, field, value)

        _check_not_self(relationship.person_a_id, relationship.person_b_id)
        _check_unique(
            relationship.person_a_id,
            relationship.person_b_id,
            relationship.relationship_type,
            exclude_id=relationship.pk,
        )
        clean_model_fields(relationship, exclude=['person_a', 'person_b'])
        relationship.save()
        _settle_primary(relationship)

    logger.info('Relationship %s updated: %s', relationship.pk, ', '.join(sorted(data)) or 'no fields')
    return relationship


@store_operation
def delete_relationship(relationship_id):
    relationship = Relationship.objects.fetch(relationship_id)
    relationship.delete()
    logger.info('Relationship %s deleted', relationship_id)


@store_operation
def relationships_for(person_id, direction='both', filters=None):
    """
    Edges touching a person, newest first.

    direction: 'outgoing' (person is A), 'incoming' (person is B) or 'both'.
    Each returned edge carries `query_direction` ('outgoing' / 'incoming')
    relative to the person asked about.
    """
    if direction not in DIRECTIONS:
        raise ValidationError(
            f'direction must be one of {", ".join(DIRECTIONS)}',
            field='direction',
            constraint='choices',
        )

    filters = {key: value for key, value in (filters or {}).items() if value not in (None, '')}
    check_unknown_fields(filters, RELATIONSHIP_FILTERS, 'relationship filter')
    if 'relationship_type' in filters:
        filters['relationship_type'] = str(filters['relationship_type']).strip().lower()

    person = Person.objects.fetch(person_id)
    queryset = Relationship.objects.select_related('person_a', 'person_b').filter(**filters)

    results = []
    if direction in ('outgoing', 'both'):
        for relationship in queryset.filter(person_a=person):
            relationship.query_direction = 'outgoing'
            results.append(relationship)
    if direction in ('incoming', 'both'):
        for relationship in queryset.filter(person_b=person):
            relationship.query_direction = 'incoming'
            results.append(relationship)

    results.sort(key=lambda relationship: relationship.created_at, reverse=True)
    return results


@store_operation
def record_referral(referrer_id, referred_id, **edge):
    """
    Record that `referrer_id` referred `referred_id`.

    Defaults: channel 'app', primary referrer, attribution 100 (0 when not
    primary). A primary referral takes the primary flag from any earlier
    referrer of the same person.
    """
    is_primary = edge.pop('is_primary_referrer', True)
    data = {
        'person_a': referrer_id,
        'person_b': referred_id,
        'relationship_type': REFERRAL,
        'direction': Direction.A_TO_B,
        'referral_date': timezone.now(),
        'referral_channel': 'app',
        'is_primary_referrer': is_primary,
        'attribution_percentage': 100 if is_primary else 0,
        'status': RelationshipStatus.ACTIVE,
        'relationship_level': 1,
        'relationship_strength': 'medium',
    }
    data.update(edge)

    return create_relationship(data)


@store_operation
def referral_relationships(filters=None):
    """Referral edges matching `filters`, most recent referral first."""
    filters = {key: value for key, value in (filters or {}).items() if value not in (None, '')}
    check_unknown_fields(filters, REFERRAL_FILTERS, 'referral filter')

    queryset = Relationship.objects.referrals().select_related('person_a', 'person_b')

    if 'referrer_id' in filters:
        queryset = queryset.filter(person_a_id=as_uuid(filters['referrer_id']))
    if 'referred_id' in filters:
        queryset = queryset.filter(person_b_id=as_uuid(filters['referred_id']))
    if 'channel' in filters:
        queryset = queryset.filter(referral_channel=filters['channel'])
    if 'campaign' in filters:
        queryset = queryset.filter(referral_campaign=filters['campaign'])
    if 'status' in filters:
        queryset = queryset.filter(status=filters['status'])
    if 'is_primary_referrer' in filters:
        queryset = queryset.filter(is_primary_referrer=bool(filters['is_primary_referrer']))
    if 'date_from' in filters:
        queryset = queryset.filter(referral_date__gte=parse_timestamp(filters['date_from'], 'date_from'))
    if 'date_to' in filters:
        queryset = queryset.filter(referral_date__lte=parse_timestamp(filters['date_to'], 'date_to'))

    return list(queryset.order_by('-referral_date', '-created_at'))


def detach_person(person, policy):
    """
    Apply the relationship delete policy before `person` is removed.

    block   - refuse while any edge touches the person
    cascade - delete those edges
    orphan  - keep them marked orphaned; the endpoint is nulled on delete
    """
    if policy not in DELETE_POLICIES:
        raise ValidationError(
            f'policy must be one of {", ".join(DELETE_POLICIES)}',
            field='policy',
            constraint='choices',
        )

    edges = Relationship.objects.touching(person.pk)

    if policy == 'block':
        count = edges.count()
        if count:
            raise ConstraintViolation(
                f'{person.get_full_name()} still has {count} relationship(s)',
                field='policy',
                constraint='delete_blocked_by_relationships',
                relationships=count,
            )
    elif policy == 'cascade':
        deleted, _ = edges.delete()
        logger.info('Deleted %s relationship(s) of person %s', deleted, person.pk)
    else:
        orphaned = edges.update(status=RelationshipStatus.ORPHANED, updated_at=timezone.now())
        logger.info('Orphaned %s relationship(s) of person %s', orphaned, person.pk)
