"""
Closed status enumerations for every role.

Status columns are plain strings in the database, and older rows may hold
values that are no longer offered. Reading such a value yields a
`LegacyStatus` so the record still loads; writing one is refused with
`InvalidState`.
"""
from django.db import models

from apps.core.exceptions import InvalidState, ValidationError


class Role(models.TextChoices):
    LEAD = 'lead', 'Lead'
    REFERRAL = 'referral', 'Referral'
    MEMBER = 'member', 'Member'


class LeadStatus(models.TextChoices):
    NEW = 'new', 'New'
    CONTACTED = 'contacted', 'Contacted'
    APPOINTMENT_SCHEDULED = 'appointment_scheduled', 'Appointment Scheduled'
    APPOINTMENT_COMPLETED = 'appointment_completed', 'Appointment Completed'
    PROPOSAL_MADE = 'proposal_made', 'Proposal Made'
    NEGOTIATION = 'negotiation', 'Negotiation'
    WON = 'won', 'Won'
    LOST = 'lost', 'Lost'


class ReferralStatus(models.TextChoices):
    SUBMITTED = 'submitted', 'Submitted'
    CONTACTED = 'contacted', 'Contacted'
    APPOINTMENT_SCHEDULED = 'appointment_scheduled', 'Appointment Scheduled'
    APPOINTMENT_CONFIRMED = 'appointment_confirmed', 'Appointment Confirmed'
    APPOINTMENT_COMPLETED = 'appointment_completed', 'Appointment Completed'
    APPOINTMENT_RESCHEDULED = 'appointment_rescheduled', 'Appointment Rescheduled'
    APPOINTMENT_CANCELLED = 'appointment_cancelled', 'Appointment Cancelled'
    NO_SHOW = 'no_show', 'No Show'
    CONVERTED = 'converted', 'Converted'
    LOST = 'lost', 'Lost'


class MembershipStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    PAUSED = 'paused', 'Paused'
    FROZEN = 'frozen', 'Frozen'
    CANCELLED = 'cancelled', 'Cancelled'
    EXPIRED = 'expired', 'Expired'


class LeadTemperature(models.TextChoices):
    HOT = 'hot', 'Hot'
    WARM = 'warm', 'Warm'
    COLD = 'cold', 'Cold'


STATUS_ENUMS = {
    Role.LEAD: LeadStatus,
    Role.REFERRAL: ReferralStatus,
    Role.MEMBER: MembershipStatus,
}

# Name of the current-status column on each extension
STATUS_FIELDS = {
    Role.LEAD: 'lead_status',
    Role.REFERRAL: 'referral_status',
    Role.MEMBER: 'membership_status',
}

INITIAL_STATUS = {
    Role.LEAD: LeadStatus.NEW,
    Role.REFERRAL: ReferralStatus.SUBMITTED,
    Role.MEMBER: MembershipStatus.ACTIVE,
}

# Terminal states close the pipeline but can still be re-opened by a transition
TERMINAL_STATUSES = {
    Role.LEAD: {LeadStatus.WON, LeadStatus.LOST},
    Role.REFERRAL: {ReferralStatus.CONVERTED, ReferralStatus.LOST},
    Role.MEMBER: {MembershipStatus.CANCELLED, MembershipStatus.EXPIRED},
}

# Referral appointment_status → referral_status
APPOINTMENT_STATUS_MAP = {
    'scheduled': ReferralStatus.APPOINTMENT_SCHEDULED,
    'confirmed': ReferralStatus.APPOINTMENT_CONFIRMED,
    'completed': ReferralStatus.APPOINTMENT_COMPLETED,
    'no_show': ReferralStatus.NO_SHOW,
    'cancelled': ReferralStatus.APPOINTMENT_CANCELLED,
    'rescheduled': ReferralStatus.APPOINTMENT_RESCHEDULED,
}


class LegacyStatus:
    """A stored status value outside the current enumeration."""

    is_legacy = True

    def __init__(self, value):
        self.value = value
        self.label = value

    def __eq__(self, other):
        if isinstance(other, LegacyStatus):
            return self.value == other.value
        return self.value == other

    def __hash__(self):
        return hash(self.value)

    def __str__(self):
        return self.value

    def __repr__(self):
        return f'LegacyStatus({self.value!r})'


def parse_role(value):
    """Return the Role for `value` or raise ValidationError."""
    try:
        return Role(value)
    except ValueError:
        raise ValidationError(
            f'Unknown role {value!r}; expected one of {", ".join(Role.values)}',
            field='role',
            constraint='choices',
        )


def parse_status(role, value):
    """Read side: a known enum member, or LegacyStatus for anything else."""
    enum = STATUS_ENUMS[parse_role(role)]
    try:
        return enum(value)
    except ValueError:
        return LegacyStatus(value)


def require_status(role, value):
    """Write side: the enum member for `value` or InvalidState."""
    role = parse_role(role)
    enum = STATUS_ENUMS[role]
    try:
        return enum(value)
    except ValueError:
        raise InvalidState(
            f'{value!r} is not a valid {role.value} status',
            field=STATUS_FIELDS[role],
            constraint='choices',
            allowed=list(enum.values),
        )


def is_terminal(role, status):
    return parse_status(role, status) in TERMINAL_STATUSES[parse_role(role)]
