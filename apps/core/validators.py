"""
Field validators shared by the Contact Store, Extension Store and
Relationship Graph.

Each helper raises one of our typed errors naming the offending field and
the violated constraint, so the caller can show a field-level message.
"""
import re
import uuid
from datetime import date, datetime

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import RegexValidator
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .exceptions import ValidationError


# Phone: optional leading +, then 10-15 digits once spaces, dashes and brackets are removed
PHONE_NOISE_RE = re.compile(r'[\s\-()]')
phone_validator = RegexValidator(
    regex=r'^\+?[0-9]{10,15}$',
    message='Phone number must contain 10 to 15 digits, optionally prefixed with +.',
)

email_validator = RegexValidator(
    regex=r'^[^\s@]+@[^\s@]+\.[^\s@]+$',
    message='Enter a valid email address.',
)


def normalize_email(value, field='email'):
    """Return a trimmed, lower-cased email, or '' when empty."""
    if value is None or value == '':
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string', field=field, constraint='type:string')

    value = value.strip().lower()
    try:
        email_validator(value)
    except DjangoValidationError:
        raise ValidationError(f'Invalid email format: {value!r}', field=field, constraint='email_format')
    return value


def normalize_phone(value, field='phone'):
    """Return the phone without formatting noise, or '' when empty."""
    if value is None or value == '':
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{field} must be a string', field=field, constraint='type:string')

    value = PHONE_NOISE_RE.sub('', value)
    try:
        phone_validator(value)
    except DjangoValidationError:
        raise ValidationError(f'Invalid phone format: {value!r}', field=field, constraint='phone_format')
    return value


def require_text(data, field):
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field} is required', field=field, constraint='required')
    return value.strip()


def describe_range(field, minimum, maximum):
    if maximum is None:
        return f'{field} >= {minimum}'
    return f'{minimum} <= {field} <= {maximum}'


def check_ranges(data, ranges, error_class=ValidationError):
    """
    Check every integer field in `data` that has declared bounds.

    `ranges` maps field name -> (minimum, maximum); maximum may be None.
    None values are accepted (the columns are nullable); booleans and
    non-integers are rejected rather than coerced, and out-of-range values
    are rejected rather than clamped.
    """
    for field, (minimum, maximum) in ranges.items():
        if field not in data or data[field] is None:
            continue

        value = data[field]
        constraint = describe_range(field, minimum, maximum)

        if isinstance(value, bool) or not isinstance(value, int):
            raise error_class(f'{field} must be an integer', field=field, constraint=constraint, value=value)

        if value < minimum or (maximum is not None and value > maximum):
            if maximum is None:
                message = f'{field} must be greater than or equal to {minimum}'
            else:
                message = f'{field} must be between {minimum} and {maximum}'
            raise error_class(
                message,
                field=field,
                constraint=constraint,
                value=value,
                minimum=minimum,
                maximum=maximum,
            )


def check_unknown_fields(data, allowed, kind):
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ValidationError(
            f'Unknown {kind} field(s): {", ".join(unknown)}',
            field=unknown[0],
            constraint='unknown_field',
        )


def as_uuid(value):
    """Return `value` as a UUID, or None when it cannot be one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def clean_model_fields(instance, exclude=None):
    """
    Run Django's per-field cleaning on `instance` and raise our ValidationError.

    clean_fields() also coerces raw values (ISO strings to datetimes, numbers
    to Decimal) in place, so callers can hand it JSON input directly.
    """
    try:
        instance.clean_fields(exclude=exclude)
    except DjangoValidationError as exc:
        field, messages = next(iter(exc.message_dict.items()))
        raise ValidationError(f'{field}: {" ".join(messages)}', field=field, constraint='field_format')


def parse_timestamp(value, field):
    """Accept a datetime, a date or an ISO-8601 string; None passes through."""
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, datetime.min.time())
    else:
        try:
            parsed = parse_datetime(value) if isinstance(value, str) else None
            if parsed is None and isinstance(value, str):
                day = parse_date(value)
                parsed = datetime.combine(day, datetime.min.time()) if day else None
        except ValueError:
            parsed = None

    if parsed is None:
        raise ValidationError(f'{field} must be an ISO-8601 datetime', field=field, constraint='datetime', value=str(value))

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, timezone.get_default_timezone())
    return parsed
