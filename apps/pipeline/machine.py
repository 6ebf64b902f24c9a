"""
Pipeline state machine.

Every status change for every role goes through `transition()`: the new
status is validated against the role's enumeration, appended to the
extension's status_history and written to the status column, all under a
row lock so concurrent transitions never lose a history entry. The status
column itself is last-write-wins.

Any named status may move to any other named status, terminal ones
included; a same-state transition is still recorded.
"""
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.contacts.models import EXTENSION_MODELS, MemberExtension, ReferralExtension
from apps.core.db import store_operation
from apps.core.exceptions import ValidationError
from apps.core.validators import parse_timestamp
from apps.network.attribution import primary_referrer_for

from .states import APPOINTMENT_STATUS_MAP, ReferralStatus, Role, parse_role, require_status


logger = logging.getLogger(__name__)


@store_operation
def transition(person_id, role, new_status, note='', *, caller_id=None):
    """
    Move the `role` extension of `person_id` to `new_status`.

    Args:
        person_id: Person id
        role: 'lead', 'referral' or 'member'
        new_status: target status, must belong to the role's enumeration
        note: free text stored with the history entry
        caller_id: who asked for the change (logged only)

    Returns:
        The updated extension.

    Raises:
        InvalidState: `new_status` is not a status of `role`
        NotFound: unknown person, or the person has no such extension
    """
    role = parse_role(role)
    status = require_status(role, new_status)
    model = EXTENSION_MODELS[role]

    with transaction.atomic():
        extension = model.objects.for_person(person_id, lock=True)
        old_status = extension.current_status

        setattr(extension, model.status_field(), status.value)
        extension.append_history(status, note)
        extension.version += 1

        if role == Role.REFERRAL and status == ReferralStatus.CONVERTED and old_status != status:
            _record_conversion(extension)

        extension.save()

    logger.info(
        '%s %s moved %s -> %s (caller=%s)',
        role.value, person_id, old_status, status.value, caller_id,
    )
    return extension


def _record_conversion(referral):
    """Stamp conversion_date and credit the primary referrer, if a member."""
    now = timezone.now()
    referral.conversion_date = now

    edge = primary_referrer_for(referral.person_id)
    if edge is None or edge.person_a_id is None:
        return

    credited = MemberExtension.objects.filter(person_id=edge.person_a_id).update(
        successful_referrals=F('successful_referrals') + 1,
        version=F('version') + 1,
        updated_at=now,
    )
    if credited:
        logger.info('Credited member %s with a successful referral', edge.person_a_id)


@store_operation
def update_appointment(person_id, appointment_status, appointment_date=None, note=''):
    """
    Record a referral's appointment outcome and move its pipeline to match.

    scheduled → appointment_scheduled, confirmed → appointment_confirmed,
    completed → appointment_completed, no_show → no_show,
    cancelled → appointment_cancelled, rescheduled → appointment_rescheduled.
    """
    key = (appointment_status or '').strip().lower() if isinstance(appointment_status, str) else None
    if key not in APPOINTMENT_STATUS_MAP:
        raise ValidationError(
            f'Unknown appointment status {appointment_status!r}',
            field='appointment_status',
            constraint='choices',
            allowed=sorted(APPOINTMENT_STATUS_MAP),
        )

    appointment_date = parse_timestamp(appointment_date, 'appointment_date')

    with transaction.atomic():
        referral = ReferralExtension.objects.for_person(person_id, lock=True)
        referral.appointment_status = key
        update_fields = ['appointment_status', 'updated_at']
        if appointment_date is not None:
            referral.appointment_date = appointment_date
            update_fields.append('appointment_date')
        referral.save(update_fields=update_fields)

        return transition(
            person_id,
            Role.REFERRAL,
            APPOINTMENT_STATUS_MAP[key],
            note=note or f'Appointment {key}',
        )
