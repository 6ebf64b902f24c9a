"""
Contact Store, Extension Store and the per-person Interaction Log.

A Person is the single record behind every role; role data lives in at
most one extension per role. The rules kept here:

- at least one role flag is true on every Person
- an extension only exists while its role flag is true (creating one sets
  the flag, clearing the flag is refused while the extension exists)
- status columns and status_history are only written by
  apps.pipeline.machine.transition
- every extension write bumps `version`, and callers may pass the version
  they read as `expected_version` to refuse stale writes

All checks run before the write and raise typed errors from
apps.core.exceptions.
"""
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.paginator import Paginator
from django.db import models, transaction
from django.utils import timezone

from apps.core.db import store_operation
from apps.core.exceptions import ConstraintViolation, ValidationError
from apps.core.validators import (
    as_uuid,
    check_ranges,
    check_unknown_fields,
    clean_model_fields,
    normalize_email,
    normalize_phone,
    parse_timestamp,
    require_text,
)
from apps.network.services import detach_person
from apps.pipeline.machine import transition
from apps.pipeline.scoring import derive_lead_scoring
from apps.pipeline.states import INITIAL_STATUS, Role, parse_role, require_status

from .models import EXTENSION_MODELS, Interaction, InteractionStatus, InteractionType, Person


logger = logging.getLogger(__name__)


ROLE_FLAGS = tuple(f'is_{role.value}' for role in Role)
PERSON_TEXT_FIELDS = (
    'acquisition_source', 'acquisition_campaign', 'referral_source',
    'interest_level', 'goals', 'notes',
)
PERSON_FIELDS = (
    'first_name', 'last_name', 'email', 'phone', 'secondary_phone',
    'active_status', 'assigned_to', 'tags', 'custom_fields', 'last_contacted',
) + ROLE_FLAGS + PERSON_TEXT_FIELDS
IMMUTABLE_FIELDS = ('id', 'created_at', 'updated_at')

PERSON_FILTERS = (
    'is_lead', 'is_referral', 'is_member', 'active_status', 'assigned_to',
    'acquisition_source', 'interest_level', 'tag', 'search',
)
MAX_PAGE_SIZE = 100

# Written only by the state machine or by the store itself
EXTENSION_RESERVED_FIELDS = ('status_history', 'version')


# ==============================================================================
# Contact Store
# ==============================================================================

def _resolve_owner(user_id):
    if user_id in (None, ''):
        return None

    User = get_user_model()
    try:
        return User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise ValidationError(f'Unknown user {user_id}', field='assigned_to', constraint='exists')


def _clean_person_data(data, partial):
    """
    Validate and normalise Person input.

    Returns (fields, tags); tags is None when the input does not mention them.
    """
    check_unknown_fields(data, PERSON_FIELDS, 'person')
    cleaned = {}

    for field in ('first_name', 'last_name'):
        if field in data or not partial:
            cleaned[field] = require_text(data, field)

    if 'email' in data:
        cleaned['email'] = normalize_email(data['email'])
    for field in ('phone', 'secondary_phone'):
        if field in data:
            cleaned[field] = normalize_phone(data[field], field=field)

    for field in ROLE_FLAGS + ('active_status',):
        if field in data:
            if not isinstance(data[field], bool):
                raise ValidationError(f'{field} must be a boolean', field=field, constraint='type:boolean')
            cleaned[field] = data[field]

    for field in PERSON_TEXT_FIELDS:
        if field in data:
            value = data[field]
            if value is None:
                value = ''
            if not isinstance(value, str):
                raise ValidationError(f'{field} must be a string', field=field, constraint='type:string')
            cleaned[field] = value.strip()

    if 'custom_fields' in data:
        value = data['custom_fields']
        if value is None:
            value = {}
        if not isinstance(value, dict):
            raise ValidationError('custom_fields must be an object', field='custom_fields', constraint='type:object')
        cleaned['custom_fields'] = value

    if 'last_contacted' in data:
        cleaned['last_contacted'] = parse_timestamp(data['last_contacted'], 'last_contacted')

    if 'assigned_to' in data:
        cleaned['assigned_to'] = _resolve_owner(data['assigned_to'])

    tags = None
    if 'tags' in data:
        tags = data['tags'] or []
        if isinstance(tags, str) or not all(isinstance(tag, str) for tag in tags):
            raise ValidationError('tags must be a list of strings', field='tags', constraint='type:list[string]')
        tags = sorted({tag.strip() for tag in tags if tag.strip()})

    return cleaned, tags


def _require_role(values):
    if not any(values.get(flag) for flag in ROLE_FLAGS):
        raise ValidationError(
            'A person needs at least one role: lead, referral or member',
            field='is_lead',
            constraint='at_least_one_role',
        )


@store_operation
def create_person(data, *, caller_id=None, extensions=None):
    """
    Create a Person, optionally with role extensions.

    Args:
        data: Person fields; first_name and last_name are required. A
            client-supplied `id` makes the call idempotent.
        caller_id: user id of the caller, becomes assigned_to when no owner
            is given
        extensions: {role: extension data}; each role's flag is set and the
            extensions are created in the given order

    Returns:
        The Person (the existing one on an idempotent replay).
    """
    data = dict(data or {})
    extensions = dict(extensions or {})

    person_id = data.pop('id', None)
    if person_id is not None:
        person_id = as_uuid(person_id)
        if person_id is None:
            raise ValidationError('id must be a UUID', field='id', constraint='uuid')
        existing = Person.objects.filter(pk=person_id).first()
        if existing is not None:
            logger.info('Person %s already exists, returning it unchanged', person_id)
            return existing

    roles = [parse_role(role) for role in extensions]
    cleaned, tags = _clean_person_data(data, partial=False)
    for role in roles:
        cleaned[f'is_{role.value}'] = True
    _require_role(cleaned)

    if 'assigned_to' not in cleaned and caller_id is not None:
        cleaned['assigned_to'] = _resolve_owner(caller_id)

    person = Person(**cleaned)
    if person_id is not None:
        person.id = person_id
    clean_model_fields(person, exclude=['assigned_to'])

    with transaction.atomic():
        person.save(force_insert=True)
        if tags:
            person.tags.set(tags)

        for role, role_data in zip(roles, extensions.values()):
            create_extension(person.pk, role, role_data)

    logger.info('Person %s created (%s) by %s', person.pk, ', '.join(person.roles), caller_id)
    return person


@store_operation
def get_person(person_id):
    return Person.objects.select_related('assigned_to').fetch(person_id)


@store_operation
def update_person(person_id, patch, *, caller_id=None):
    """
    Apply a partial update; absent keys stay as they are.

    id and timestamps cannot be changed. `tags` replaces the whole tag set.
    A changed interest_level re-derives the lead's readiness score and
    temperature.
    """
    patch = dict(patch or {})
    for field in IMMUTABLE_FIELDS:
        if field in patch:
            raise ValidationError(f'{field} cannot be changed', field=field, constraint='immutable')

    cleaned, tags = _clean_person_data(patch, partial=True)

    with transaction.atomic():
        person = Person.objects.fetch(person_id, lock=True)

        for role in Role:
            flag = f'is_{role.value}'
            if cleaned.get(flag) is False and person.has_extension(role):
                raise ConstraintViolation(
                    f'Cannot clear {flag} while the {role.value} extension exists',
                    field=flag,
                    constraint='extension_requires_role',
                )

        interest_changed = 'interest_level' in cleaned and cleaned['interest_level'] != person.interest_level

        for field, value in cleaned.items():
            setattr(person, field, value)
        _require_role({flag: getattr(person, flag) for flag in ROLE_FLAGS})
        clean_model_fields(person, exclude=['assigned_to'])
        person.save()

        if tags is not None:
            person.tags.set(tags)
        if interest_changed:
            _apply_lead_scoring(person)

    logger.info('Person %s updated by %s: %s', person.pk, caller_id, ', '.join(sorted(patch)) or 'no fields')
    return person


def _apply_lead_scoring(person):
    lead = person.get_extension(Role.LEAD)
    if lead is None:
        return

    lead.readiness_score, lead.lead_temperature = derive_lead_scoring(person.interest_level)
    lead.version += 1
    lead.save(update_fields=['readiness_score', 'lead_temperature', 'version', 'updated_at'])
    logger.info('Lead %s rescored from interest level %r', person.pk, person.interest_level)


@store_operation
def delete_person(person_id, *, policy=None, caller_id=None):
    """
    Delete a Person and its extensions.

    policy decides what happens to relationships touching the person:
    'block' refuses, 'cascade' deletes them, 'orphan' keeps them with the
    endpoint nulled and status 'orphaned'. Defaults to PERSON_DELETE_POLICY.
    """
    policy = policy or settings.PERSON_DELETE_POLICY

    with transaction.atomic():
        person = Person.objects.fetch(person_id, lock=True)
        detach_person(person, policy)
        person.delete()

    logger.info('Person %s deleted by %s (policy=%s)', person_id, caller_id, policy)


@store_operation
def list_persons(filters=None, page=1, limit=None):
    """
    One page of persons matching `filters`, newest first.

    Returns:
        {'items': [Person, ...], 'total': int, 'page': int, 'num_pages': int}
    """
    limit = settings.PERSONS_PAGE_SIZE if limit is None else limit
    check_ranges({'page': page, 'limit': limit}, {'page': (1, None), 'limit': (1, MAX_PAGE_SIZE)})

    filters = {key: value for key, value in (filters or {}).items() if value not in (None, '')}
    check_unknown_fields(filters, PERSON_FILTERS, 'person filter')

    persons = Person.objects.select_related('assigned_to').prefetch_related('tags')

    for flag in ROLE_FLAGS + ('active_status',):
        if flag in filters:
            persons = persons.filter(**{flag: bool(filters[flag])})

    if 'assigned_to' in filters:
        persons = persons.filter(assigned_to_id=filters['assigned_to'])
    if 'acquisition_source' in filters:
        persons = persons.filter(acquisition_source__iexact=filters['acquisition_source'])
    if 'interest_level' in filters:
        persons = persons.filter(interest_level__iexact=filters['interest_level'])
    if 'tag' in filters:
        persons = persons.filter(tags__name__in=[filters['tag']]).distinct()
    if 'search' in filters:
        persons = persons.search(filters['search'])

    paginator = Paginator(persons.order_by('-created_at', '-id'), limit)
    page_obj = paginator.get_page(page)

    return {
        'items': list(page_obj.object_list),
        'total': paginator.count,
        'page': page_obj.number,
        'num_pages': paginator.num_pages,
    }


@store_operation
def search_persons(query, limit=25):
    """Case-insensitive match on names, "First Last", email or phone."""
    check_ranges({'limit': limit}, {'limit': (1, MAX_PAGE_SIZE)})
    return list(Person.objects.search(query).order_by('last_name', 'first_name')[:limit])


# ==============================================================================
# Extension Store
# ==============================================================================

def _extension_fields(model):
    """Fields a caller may write on `model`."""
    excluded = {'id', 'person', 'created_at', 'updated_at', model.status_field()}
    excluded.update(EXTENSION_RESERVED_FIELDS)
    return [field.name for field in model._meta.concrete_fields if field.name not in excluded]


def _clean_extension_data(model, data):
    """
    Validate extension input against `model`.

    Range violations raise ConstraintViolation naming the field and bound.
    """
    for field in EXTENSION_RESERVED_FIELDS:
        if field in data:
            raise ValidationError(f'{field} is managed by the store', field=field, constraint='read_only')
    check_unknown_fields(data, _extension_fields(model), f'{model.role.value} extension')

    check_ranges(data, model.range_fields, ConstraintViolation)

    cleaned = dict(data)
    for name, value in data.items():
        field = model._meta.get_field(name)
        if isinstance(field, models.DateTimeField):
            cleaned[name] = parse_timestamp(value, name)
        elif isinstance(field, models.BooleanField) and not isinstance(value, bool):
            raise ValidationError(f'{name} must be a boolean', field=name, constraint='type:boolean')
        elif isinstance(field, models.JSONField) and value is None:
            cleaned[name] = field.get_default()

    if cleaned.get('conversion_blockers') is not None:
        blockers = cleaned['conversion_blockers']
        if isinstance(blockers, str) or not all(isinstance(blocker, str) for blocker in blockers):
            raise ValidationError(
                'conversion_blockers must be a list of strings',
                field='conversion_blockers',
                constraint='type:list[string]',
            )
        cleaned['conversion_blockers'] = sorted(set(blockers))

    return cleaned


@store_operation
def create_extension(person_id, role, data):
    """
    Attach the `role` extension to a person and set the matching role flag.

    The status starts at the role's initial status (or the given one) and
    status_history is seeded with a single "created" entry.

    Raises:
        NotFound: unknown person
        ConstraintViolation: the person already has this extension, or a
            numeric field is out of range
        InvalidState: an explicit initial status that the role does not know
    """
    role = parse_role(role)
    model = EXTENSION_MODELS[role]
    data = dict(data or {})

    initial_status = require_status(role, data.pop(model.status_field(), INITIAL_STATUS[role]))
    cleaned = _clean_extension_data(model, data)

    with transaction.atomic():
        person = Person.objects.fetch(person_id, lock=True)
        if person.has_extension(role):
            raise ConstraintViolation(
                f'{person.get_full_name()} already has a {role.value} extension',
                field='role',
                constraint='one_extension_per_role',
            )

        extension = model(person=person, **cleaned)
        setattr(extension, model.status_field(), initial_status.value)
        extension.append_history(initial_status, 'created')

        if role == Role.LEAD and person.interest_level and 'readiness_score' not in cleaned and 'lead_temperature' not in cleaned:
            extension.readiness_score, extension.lead_temperature = derive_lead_scoring(person.interest_level)
        if role == Role.MEMBER and extension.join_date is None:
            extension.join_date = timezone.now()

        clean_model_fields(extension, exclude=['person', model.status_field()])
        extension.save(force_insert=True)

        flag = f'is_{role.value}'
        if not getattr(person, flag):
            setattr(person, flag, True)
            person.save(update_fields=[flag, 'updated_at'])

    logger.info('%s extension created for person %s', role.label, person.pk)
    return extension


@store_operation
def get_extension(person_id, role):
    role = parse_role(role)
    return EXTENSION_MODELS[role].objects.for_person(person_id)


@store_operation
def update_extension(person_id, role, patch, *, expected_version=None):
    """
    Partially update the `role` extension of a person.

    A status key in `patch` is not written directly; it is handed to the
    pipeline state machine after the other fields are saved, so it lands in
    status_history. With `expected_version`, a write against a newer stored
    version raises ConstraintViolation.
    """
    role = parse_role(role)
    model = EXTENSION_MODELS[role]
    patch = dict(patch or {})

    new_status = patch.pop(model.status_field(), None)
    if new_status is not None:
        require_status(role, new_status)
    cleaned = _clean_extension_data(model, patch)

    with transaction.atomic():
        extension = model.objects.for_person(person_id, lock=True)

        if expected_version is not None and expected_version != extension.version:
            raise ConstraintViolation(
                f'{role.label} extension of {person_id} changed since it was read',
                field='version',
                constraint='version_match',
                expected=expected_version,
                current=extension.version,
            )

        if cleaned:
            for field, value in cleaned.items():
                setattr(extension, field, value)
            clean_model_fields(extension, exclude=['person', model.status_field()])
            extension.version += 1
            extension.save()

        if new_status is not None:
            extension = transition(person_id, role, new_status, note='Status updated')

    logger.info('%s extension of %s updated: %s', role.label, person_id, ', '.join(sorted(cleaned)) or 'status only')
    return extension


@store_operation
def record_check_in(person_id, when=None):
    """
    Count a member visit.

    Consecutive-day visits extend attendance_streak; a gap restarts it at 1
    and a second visit on the same day leaves it unchanged. A visit dated
    before the last recorded check-in is refused.
    """
    model = EXTENSION_MODELS[Role.MEMBER]
    when = parse_timestamp(when, 'when') or timezone.now()

    with transaction.atomic():
        member = model.objects.for_person(person_id, lock=True)
        if member.last_check_in and when < member.last_check_in:
            raise ValidationError(
                f'Check-in at {when.isoformat()} is older than the last one',
                field='when',
                constraint='not_before_last_check_in',
            )

        today = timezone.localdate(when)
        last_day = timezone.localdate(member.last_check_in) if member.last_check_in else None
        if last_day is None or (today - last_day).days > 1:
            member.attendance_streak = 1
        elif (today - last_day).days == 1:
            member.attendance_streak += 1

        member.check_in_count += 1
        member.last_check_in = when
        member.version += 1
        member.save(update_fields=['check_in_count', 'attendance_streak', 'last_check_in', 'version', 'updated_at'])

    logger.info('Check-in recorded for member %s (streak %s)', person_id, member.attendance_streak)
    return member


# ==============================================================================
# Interaction Log
# ==============================================================================

INTERACTION_TEXT_FIELDS = (
    'subject', 'content', 'response_content', 'sentiment', 'campaign_id', 'notes',
)
INTERACTION_TIME_FIELDS = ('scheduled_at', 'completed_at', 'response_date')
INTERACTION_FIELDS = (
    'interaction_type', 'status', 'duration_minutes', 'response_received', 'custom_fields',
) + INTERACTION_TEXT_FIELDS + INTERACTION_TIME_FIELDS
INTERACTION_FILTERS = ('interaction_type', 'status')


def _choice(data, field, choices):
    value = data[field]
    if isinstance(value, str):
        value = value.strip().lower()
    if value not in choices.values:
        raise ValidationError(
            f'{field} must be one of {", ".join(choices.values)}',
            field=field,
            constraint='choices',
        )
    return value


def _clean_interaction_data(data, partial):
    check_unknown_fields(data, INTERACTION_FIELDS, 'interaction')
    cleaned = {}

    if 'interaction_type' in data or not partial:
        if data.get('interaction_type') in (None, ''):
            raise ValidationError('interaction_type is required', field='interaction_type', constraint='required')
        cleaned['interaction_type'] = _choice(data, 'interaction_type', InteractionType)
    if 'status' in data:
        cleaned['status'] = _choice(data, 'status', InteractionStatus)

    check_ranges(data, Interaction.range_fields)
    if 'duration_minutes' in data:
        cleaned['duration_minutes'] = data['duration_minutes']

    if 'response_received' in data:
        if not isinstance(data['response_received'], bool):
            raise ValidationError('response_received must be a boolean', field='response_received', constraint='type:boolean')
        cleaned['response_received'] = data['response_received']

    for field in INTERACTION_TIME_FIELDS:
        if field in data:
            cleaned[field] = parse_timestamp(data[field], field)

    for field in INTERACTION_TEXT_FIELDS:
        if field in data:
            value = data[field]
            if value is None:
                value = ''
            if not isinstance(value, str):
                raise ValidationError(f'{field} must be a string', field=field, constraint='type:string')
            cleaned[field] = value.strip()

    if 'custom_fields' in data:
        value = data['custom_fields'] or {}
        if not isinstance(value, dict):
            raise ValidationError('custom_fields must be an object', field='custom_fields', constraint='type:object')
        cleaned['custom_fields'] = value

    return cleaned


def _settle_interaction(interaction):
    """A scheduled interaction needs a time; a completed one gets completed_at."""
    if interaction.status == InteractionStatus.SCHEDULED and interaction.scheduled_at is None:
        raise ValidationError(
            'A scheduled interaction needs scheduled_at',
            field='scheduled_at',
            constraint='required',
        )

    if interaction.is_completed and interaction.completed_at is None:
        interaction.completed_at = timezone.now()


def _touch_last_contacted(interaction):
    if not interaction.is_completed:
        return

    updated = Person.objects.filter(pk=interaction.person_id).filter(
        models.Q(last_contacted__isnull=True) | models.Q(last_contacted__lt=interaction.completed_at)
    ).update(last_contacted=interaction.completed_at, updated_at=timezone.now())
    if updated:
        logger.debug('Person %s last contacted %s', interaction.person_id, interaction.completed_at.isoformat())


@store_operation
def log_interaction(person_id, data, *, caller_id=None):
    """
    Record a call, meeting or other touchpoint with a person.

    Status defaults to completed; a completed interaction without
    completed_at is stamped now. Completing one moves the person's
    last_contacted forward (never backwards). A scheduled interaction
    needs scheduled_at.
    """
    cleaned = _clean_interaction_data(dict(data or {}), partial=False)

    with transaction.atomic():
        person = Person.objects.fetch(person_id)
        interaction = Interaction(person=person, user=_resolve_owner(caller_id), **cleaned)
        _settle_interaction(interaction)
        clean_model_fields(interaction, exclude=['person', 'user'])
        interaction.save(force_insert=True)
        _touch_last_contacted(interaction)

    logger.info('%s logged for person %s by %s', interaction.get_interaction_type_display(), person.pk, caller_id)
    return interaction


@store_operation
def get_interaction(interaction_id):
    return Interaction.objects.select_related('person', 'user').fetch(interaction_id)


@store_operation
def update_interaction(interaction_id, patch):
    """Partially update an interaction; marking it completed stamps the person too."""
    patch = dict(patch or {})
    for field in IMMUTABLE_FIELDS + ('person', 'user'):
        if field in patch:
            raise ValidationError(f'{field} cannot be changed', field=field, constraint='immutable')

    cleaned = _clean_interaction_data(patch, partial=True)

    with transaction.atomic():
        interaction = Interaction.objects.fetch(interaction_id, lock=True)
        for field, value in cleaned.items():
            setattr(interaction, field, value)
        _settle_interaction(interaction)
        clean_model_fields(interaction, exclude=['person', 'user'])
        interaction.save()
        _touch_last_contacted(interaction)

    logger.info('Interaction %s updated: %s', interaction.pk, ', '.join(sorted(patch)) or 'no fields')
    return interaction


@store_operation
def delete_interaction(interaction_id):
    interaction = Interaction.objects.fetch(interaction_id)
    interaction.delete()
    logger.info('Interaction %s deleted', interaction_id)


@store_operation
def interactions_for(person_id, filters=None, page=1, limit=None):
    """
    One page of a person's interactions, newest first.

    Returns:
        {'items': [Interaction, ...], 'total': int, 'page': int, 'num_pages': int}
    """
    limit = settings.PERSONS_PAGE_SIZE if limit is None else limit
    check_ranges({'page': page, 'limit': limit}, {'page': (1, None), 'limit': (1, MAX_PAGE_SIZE)})

    filters = {key: value for key, value in (filters or {}).items() if value not in (None, '')}
    check_unknown_fields(filters, INTERACTION_FILTERS, 'interaction filter')

    person = Person.objects.fetch(person_id)
    interactions = person.interactions.select_related('user')
    if 'interaction_type' in filters:
        interactions = interactions.filter(interaction_type=_choice(filters, 'interaction_type', InteractionType))
    if 'status' in filters:
        interactions = interactions.filter(status=_choice(filters, 'status', InteractionStatus))

    paginator = Paginator(interactions.order_by('-created_at', '-id'), limit)
    page_obj = paginator.get_page(page)

    return {
        'items': list(page_obj.object_list),
        'total': paginator.count,
        'page': page_obj.number,
        'num_pages': paginator.num_pages,
    }


@store_operation
def interaction_counts(person_id):
    """Number of interactions per type for a person; types never used are left out."""
    person = Person.objects.fetch(person_id)
    rows = person.interactions.values('interaction_type').annotate(total=models.Count('id'))
    return {row['interaction_type']: row['total'] for row in rows.order_by('interaction_type')}
