# Datastore error translation
#
# Every public store operation is wrapped with @store_operation so callers
# only ever see our typed errors:
# - OperationalError / InterfaceError  → TransientStoreError (caller may retry)
# - IntegrityError escaping our own checks → ConstraintViolation
#
# The core never retries by itself; backoff is the caller's job.
# ==============================================================================

import logging
from functools import wraps

from django.db import IntegrityError, InterfaceError, OperationalError

from .exceptions import ConstraintViolation, TransientStoreError


logger = logging.getLogger(__name__)


def store_operation(func):
    """
    Decorator: translate database failures raised inside `func`.

    Our own CRMError subclasses pass through untouched.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as exc:
            # The pre-write checks should have caught this; the database
            # constraint is only the backstop.
            logger.warning('Integrity error in %s: %s', func.__qualname__, exc)
            raise ConstraintViolation(
                'The datastore rejected the write',
                constraint='integrity',
                operation=func.__name__,
            ) from exc
        except (OperationalError, InterfaceError) as exc:
            logger.error('Datastore unavailable in %s: %s', func.__qualname__, exc)
            raise TransientStoreError(
                'The datastore is temporarily unavailable, try again',
                operation=func.__name__,
            ) from exc

    return wrapper
