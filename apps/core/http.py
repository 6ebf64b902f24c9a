# JSON API helpers shared by every app's views.
#
# Decorators in this file:
# 1. api_login_required - 401 JSON instead of a login redirect
# 2. api_view - method check + typed error → JSON error response
# ==============================================================================

import json
import logging
from functools import wraps

from django.http import JsonResponse

from .exceptions import CRMError, ValidationError


logger = logging.getLogger(__name__)


def error_response(error):
    """Turn a CRMError into the JSON body the UI shows inline."""
    return JsonResponse({'success': False, 'error': error.to_dict()}, status=error.status_code)


def api_login_required(view_func):
    """
    Decorator: caller must be authenticated

    The authenticated user's pk is what the views hand to the core as caller_id.
    """

    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({
                'success': False,
                'error': {'code': 'unauthenticated', 'message': 'Authentication required'}
            }, status=401)
        return view_func(request, *args, **kwargs)

    return wrapper


def api_view(*methods):
    """
    Decorator: restrict HTTP methods and map typed errors to responses

    ValidationError → 400, NotFound → 404, ConstraintViolation → 409,
    TransientStoreError → 503. Anything else is logged and answered with a
    generic 500.
    """

    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if methods and request.method not in methods:
                return JsonResponse({
                    'success': False,
                    'error': {'code': 'method_not_allowed', 'message': f'{request.method} not allowed'}
                }, status=405)

            try:
                return view_func(request, *args, **kwargs)
            except CRMError as error:
                if error.status_code >= 500:
                    logger.error('%s failed: %s', view_func.__name__, error.message)
                else:
                    logger.info('%s rejected: %s', view_func.__name__, error.message)
                return error_response(error)
            except Exception:
                logger.exception('Unexpected error in %s', view_func.__name__)
                return JsonResponse({
                    'success': False,
                    'error': {'code': 'server_error', 'message': 'Something went wrong, try again'}
                }, status=500)

        return wrapper

    return decorator


def json_body(request):
    """Parse a JSON object from the request body."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except json.JSONDecodeError:
        raise ValidationError('Invalid JSON format', constraint='json')
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object', constraint='json_object')
    return data


def query_bool(request, name):
    """?is_lead=true → True, ?is_lead=false → False, missing → None."""
    value = request.GET.get(name)
    if value is None or value == '':
        return None
    return value.lower() in ('1', 'true', 'yes', 'on')


def query_int(request, name, default):
    value = request.GET.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f'{name} must be an integer', field=name, constraint='integer')


def isoformat(value):
    return value.isoformat() if value else None
