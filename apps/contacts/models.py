# Models:
# 1. Person - the unified contact behind every role
# 2. UUIDTaggedItem - taggit through table for UUID-keyed persons
# 3. LeadExtension / ReferralExtension / MemberExtension - role data, 1:1 with Person
# 4. Interaction - calls, meetings and other touchpoints with a person

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from taggit.managers import TaggableManager
from taggit.models import GenericUUIDTaggedItemBase, TaggedItemBase

from apps.core.exceptions import NotFound
from apps.core.models import TimeStampedModel
from apps.core.validators import as_uuid, email_validator, phone_validator
from apps.pipeline.states import (
    INITIAL_STATUS,
    LeadStatus,
    LeadTemperature,
    MembershipStatus,
    ReferralStatus,
    Role,
    STATUS_FIELDS,
    parse_status,
)


# Numeric bounds, enforced before every write and again by CHECK constraints
READINESS_SCORE_RANGE = (1, 10)
CONVERSION_PROBABILITY_RANGE = (0, 100)
BILLING_DAY_RANGE = (1, 31)
SATISFACTION_SCORE_RANGE = (1, 10)


def range_validators(bounds):
    minimum, maximum = bounds
    return [MinValueValidator(minimum), MaxValueValidator(maximum)]


def range_check(field, bounds, name):
    minimum, maximum = bounds
    return models.CheckConstraint(
        condition=Q(**{f'{field}__isnull': True}) | Q(**{f'{field}__gte': minimum, f'{field}__lte': maximum}),
        name=name,
    )


class UUIDTaggedItem(GenericUUIDTaggedItemBase, TaggedItemBase):

    class Meta:
        verbose_name = 'Tagged Item'
        verbose_name_plural = 'Tagged Items'


class PersonQuerySet(models.QuerySet):

    def fetch(self, person_id, lock=False):
        """Get one person by id or raise NotFound; `lock` takes a row lock."""
        pk = as_uuid(person_id)
        if pk is None:
            raise NotFound.for_object('Person', person_id)

        queryset = self.select_for_update() if lock else self
        try:
            return queryset.get(pk=pk)
        except self.model.DoesNotExist:
            raise NotFound.for_object('Person', person_id)

    def with_role(self, role):
        return self.filter(**{f'is_{Role(role).value}': True})

    def search(self, term):
        """Case-insensitive match on first/last name, "First Last", email or phone."""
        term = (term or '').strip()
        if not term:
            return self.none()

        query = (
            Q(first_name__icontains=term) |
            Q(last_name__icontains=term) |
            Q(email__icontains=term) |
            Q(phone__icontains=term)
        )

        parts = term.split(None, 1)
        if len(parts) == 2:
            query |= Q(first_name__icontains=parts[0], last_name__icontains=parts[1])

        return self.filter(query)


class Person(TimeStampedModel):

    # Basic Information
    first_name = models.CharField(max_length=100, help_text="Person's first name")
    last_name = models.CharField(max_length=100, help_text="Person's last name")
    email = models.CharField(max_length=254, blank=True, default='', db_index=True, validators=[email_validator], help_text='Email address (optional), stored lower-case')
    phone = models.CharField(max_length=20, blank=True, default='', db_index=True, validators=[phone_validator], help_text='Phone number, 10-15 digits with optional +')
    secondary_phone = models.CharField(max_length=20, blank=True, default='', validators=[phone_validator])

    # Roles and status
    is_lead = models.BooleanField(default=False, db_index=True, help_text='Prospective customer')
    is_referral = models.BooleanField(default=False, db_index=True, help_text='Invited by an existing customer')
    is_member = models.BooleanField(default=False, db_index=True, help_text='Paying customer')
    active_status = models.BooleanField(default=True)

    # Source information
    acquisition_source = models.CharField(max_length=100, blank=True, default='')
    acquisition_campaign = models.CharField(max_length=100, blank=True, default='')
    referral_source = models.CharField(max_length=64, blank=True, default='', help_text='Id of the person who referred this person')

    # Qualification data
    interest_level = models.CharField(max_length=20, blank=True, default='', help_text='High / Medium / Low')
    goals = models.TextField(blank=True, default='')

    # Assignment & Management
    assigned_to = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_persons', help_text='Owner responsible for this person')
    last_contacted = models.DateTimeField(null=True, blank=True)

    # Additional Information
    tags = TaggableManager(blank=True, through=UUIDTaggedItem)
    custom_fields = models.JSONField(default=dict, blank=True, help_text='Arbitrary key/value data')
    notes = models.TextField(blank=True, default='')

    objects = PersonQuerySet.as_manager()

    class Meta:
        verbose_name = 'Person'
        verbose_name_plural = 'Persons'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['last_name', 'first_name'], name='person_name_idx'),
            models.Index(fields=['assigned_to'], name='person_owner_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(is_lead=True) | Q(is_referral=True) | Q(is_member=True),
                name='person_has_role',
            ),
        ]

    def __str__(self):
        return f'{self.get_full_name()} ({", ".join(self.roles) or "no role"})'

    def get_full_name(self):
        return f'{self.first_name} {self.last_name}'.strip()

    @property
    def roles(self):
        return [role.value for role in Role if getattr(self, f'is_{role.value}')]

    def get_extension(self, role):
        """Return this person's extension for `role`, or None."""
        role = Role(role)
        try:
            return getattr(self, EXTENSION_MODELS[role].related_name)
        except EXTENSION_MODELS[role].DoesNotExist:
            return None

    def has_extension(self, role):
        return self.get_extension(role) is not None


class ExtensionQuerySet(models.QuerySet):

    def for_person(self, person_id, lock=False):
        """
        The extension owned by `person_id`.

        Raises NotFound naming the Person when the person is unknown, and
        naming the extension when the person exists without one.
        """
        role = self.model.role
        pk = as_uuid(person_id)
        if pk is None:
            raise NotFound.for_object('Person', person_id)

        queryset = self.select_related('person')
        if lock:
            queryset = queryset.select_for_update()

        try:
            return queryset.get(person_id=pk)
        except self.model.DoesNotExist:
            if not Person.objects.filter(pk=pk).exists():
                raise NotFound.for_object('Person', person_id)
            raise NotFound(
                f'Person {person_id} has no {role.value} extension',
                kind=f'{role.value}_extension',
                id=str(person_id),
            )


class ExtensionBase(TimeStampedModel):
    """
    Shared shape of the role extensions.

    Subclasses set `role` and declare their own status column; the matching
    column name comes from STATUS_FIELDS. `status_history` is append-only:
    entries are {status, timestamp, note} and are never rewritten.
    """

    role = None
    related_name = None
    range_fields = {}

    status_history = models.JSONField(default=list, blank=True, help_text='Append-only list of {status, timestamp, note}')
    version = models.PositiveIntegerField(default=1, help_text='Bumped on every write; optimistic concurrency token')

    objects = ExtensionQuerySet.as_manager()

    class Meta:
        abstract = True

    @classmethod
    def status_field(cls):
        return STATUS_FIELDS[cls.role]

    @property
    def current_status(self):
        return parse_status(self.role, getattr(self, self.status_field()))

    @staticmethod
    def history_entry(status, note='', timestamp=None):
        return {
            'status': str(status),
            'timestamp': (timestamp or timezone.now()).isoformat(),
            'note': note or '',
        }

    def append_history(self, status, note='', timestamp=None):
        # Build a new list so the JSON field is marked dirty
        self.status_history = list(self.status_history or []) + [self.history_entry(status, note, timestamp)]
        return self.status_history[-1]


class LeadExtension(ExtensionBase):

    role = Role.LEAD
    related_name = 'lead_extension'
    range_fields = {
        'readiness_score': READINESS_SCORE_RANGE,
        'conversion_probability': CONVERSION_PROBABILITY_RANGE,
    }

    person = models.OneToOneField(Person, on_delete=models.CASCADE, related_name='lead_extension')

    # Pipeline data
    lead_status = models.CharField(max_length=40, default=INITIAL_STATUS[Role.LEAD], choices=LeadStatus.choices, db_index=True)

    # Qualification data
    readiness_score = models.PositiveSmallIntegerField(null=True, blank=True, validators=range_validators(READINESS_SCORE_RANGE), help_text='1-10')
    lead_temperature = models.CharField(max_length=10, blank=True, default='', choices=LeadTemperature.choices)
    decision_authority = models.CharField(max_length=100, blank=True, default='')
    decision_timeline = models.CharField(max_length=100, blank=True, default='')
    pain_points = models.JSONField(default=list, blank=True)
    motivations = models.JSONField(default=list, blank=True)

    # Activity data
    visit_completed = models.BooleanField(default=False)
    visit_date = models.DateTimeField(null=True, blank=True)

    # Conversion tracking
    conversion_probability = models.PositiveSmallIntegerField(null=True, blank=True, validators=range_validators(CONVERSION_PROBABILITY_RANGE), help_text='0-100')
    conversion_blockers = models.JSONField(default=list, blank=True, help_text='Set of blocker labels')
    estimated_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    class Meta:
        verbose_name = 'Lead Extension'
        verbose_name_plural = 'Lead Extensions'
        constraints = [
            range_check('readiness_score', READINESS_SCORE_RANGE, 'lead_readiness_score_range'),
            range_check('conversion_probability', CONVERSION_PROBABILITY_RANGE, 'lead_conversion_probability_range'),
        ]

    def __str__(self):
        return f'Lead: {self.person.get_full_name()} - {self.lead_status}'


class ReferralExtension(ExtensionBase):

    role = Role.REFERRAL
    related_name = 'referral_extension'
    range_fields = {
        'conversion_probability': CONVERSION_PROBABILITY_RANGE,
    }

    person = models.OneToOneField(Person, on_delete=models.CASCADE, related_name='referral_extension')

    # Referral journey
    referral_status = models.CharField(max_length=40, default=INITIAL_STATUS[Role.REFERRAL], choices=ReferralStatus.choices, db_index=True)
    relationship_to_referrer = models.CharField(max_length=30, blank=True, default='', help_text='friend, family, colleague, ...')
    permission_level = models.CharField(max_length=20, blank=True, default='', help_text='explicit, implied, cold')

    # Appointment data
    appointment_date = models.DateTimeField(null=True, blank=True)
    appointment_status = models.CharField(max_length=30, blank=True, default='')

    # Conversion tracking
    conversion_probability = models.PositiveSmallIntegerField(null=True, blank=True, validators=range_validators(CONVERSION_PROBABILITY_RANGE), help_text='0-100')
    conversion_date = models.DateTimeField(null=True, blank=True)

    # Incentive tracking
    eligible_incentives = models.JSONField(default=list, blank=True)
    incentives_awarded = models.JSONField(default=list, blank=True, help_text='[{incentive_id, award_date, status}]')

    class Meta:
        verbose_name = 'Referral Extension'
        verbose_name_plural = 'Referral Extensions'
        constraints = [
            range_check('conversion_probability', CONVERSION_PROBABILITY_RANGE, 'referral_conversion_probability_range'),
        ]

    def __str__(self):
        return f'Referral: {self.person.get_full_name()} - {self.referral_status}'


class MemberExtension(ExtensionBase):

    role = Role.MEMBER
    related_name = 'member_extension'
    range_fields = {
        'billing_day': BILLING_DAY_RANGE,
        'satisfaction_score': SATISFACTION_SCORE_RANGE,
        'check_in_count': (0, None),
        'attendance_streak': (0, None),
        'referral_count': (0, None),
        'successful_referrals': (0, None),
    }

    person = models.OneToOneField(Person, on_delete=models.CASCADE, related_name='member_extension')

    # Membership data
    membership_status = models.CharField(max_length=40, default=INITIAL_STATUS[Role.MEMBER], choices=MembershipStatus.choices, db_index=True)
    membership_type = models.CharField(max_length=50, blank=True, default='')
    join_date = models.DateTimeField(null=True, blank=True)
    billing_day = models.PositiveSmallIntegerField(null=True, blank=True, validators=range_validators(BILLING_DAY_RANGE), help_text='Day of month, 1-31')

    # Attendance and engagement
    check_in_count = models.PositiveIntegerField(default=0)
    attendance_streak = models.PositiveIntegerField(default=0)
    last_check_in = models.DateTimeField(null=True, blank=True)

    # Retention and satisfaction
    satisfaction_score = models.PositiveSmallIntegerField(null=True, blank=True, validators=range_validators(SATISFACTION_SCORE_RANGE), help_text='1-10')

    # Referral program
    referral_count = models.PositiveIntegerField(default=0)
    successful_referrals = models.PositiveIntegerField(default=0)
    referral_rewards_earned = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    class Meta:
        verbose_name = 'Member Extension'
        verbose_name_plural = 'Member Extensions'
        constraints = [
            range_check('billing_day', BILLING_DAY_RANGE, 'member_billing_day_range'),
            range_check('satisfaction_score', SATISFACTION_SCORE_RANGE, 'member_satisfaction_score_range'),
        ]

    def __str__(self):
        return f'Member: {self.person.get_full_name()} - {self.membership_status}'


# Closed set of role extensions, keyed by role
EXTENSION_MODELS = {
    Role.LEAD: LeadExtension,
    Role.REFERRAL: ReferralExtension,
    Role.MEMBER: MemberExtension,
}


class InteractionType(models.TextChoices):
    CALL = 'call', 'Call'
    MEETING = 'meeting', 'Meeting'
    EMAIL = 'email', 'Email'
    MESSAGE = 'message', 'Message'
    VISIT = 'visit', 'Visit'
    NOTE = 'note', 'Note'


class InteractionStatus(models.TextChoices):
    SCHEDULED = 'scheduled', 'Scheduled'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    NO_SHOW = 'no_show', 'No Show'


class InteractionQuerySet(models.QuerySet):

    def fetch(self, interaction_id, lock=False):
        pk = as_uuid(interaction_id)
        if pk is None:
            raise NotFound.for_object('Interaction', interaction_id)

        queryset = self.select_for_update() if lock else self
        try:
            return queryset.get(pk=pk)
        except self.model.DoesNotExist:
            raise NotFound.for_object('Interaction', interaction_id)


class Interaction(TimeStampedModel):
    """
    A call, meeting or other touchpoint with a person.

    Scheduled interactions carry `scheduled_at`; completing one stamps
    `completed_at` and moves the person's `last_contacted` forward.
    """

    person = models.ForeignKey(Person, on_delete=models.CASCADE, related_name='interactions', help_text='Who this interaction was with')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='interactions', help_text='Who performed or booked it')
    interaction_type = models.CharField(max_length=20, choices=InteractionType.choices, db_index=True)

    # Content
    subject = models.CharField(max_length=200, blank=True, default='')
    content = models.TextField(blank=True, default='')

    # Status and timing
    status = models.CharField(max_length=20, choices=InteractionStatus.choices, default=InteractionStatus.COMPLETED, db_index=True)
    scheduled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    duration_minutes = models.PositiveIntegerField(null=True, blank=True)

    # Response tracking
    response_received = models.BooleanField(default=False)
    response_date = models.DateTimeField(null=True, blank=True)
    response_content = models.TextField(blank=True, default='')
    sentiment = models.CharField(max_length=20, blank=True, default='')

    campaign_id = models.CharField(max_length=100, blank=True, default='')
    notes = models.TextField(blank=True, default='')
    custom_fields = models.JSONField(default=dict, blank=True)

    range_fields = {'duration_minutes': (0, None)}

    objects = InteractionQuerySet.as_manager()

    class Meta:
        verbose_name = 'Interaction'
        verbose_name_plural = 'Interactions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['person', '-created_at'], name='interaction_person_idx'),
            models.Index(fields=['status', 'scheduled_at'], name='interaction_schedule_idx'),
        ]

    def __str__(self):
        return f'{self.get_interaction_type_display()} with {self.person.get_full_name()} ({self.status})'

    @property
    def is_completed(self):
        return self.status == InteractionStatus.COMPLETED
