from django.http import JsonResponse

from apps.contacts.views import extension_dict
from apps.core.exceptions import ValidationError
from apps.core.http import api_login_required, api_view, json_body

from . import machine


@api_login_required
@api_view('POST')
def transition_view(request, pk, role):
    data = json_body(request)
    new_status = data.get('status')
    if not new_status:
        raise ValidationError('status is required', field='status', constraint='required')

    extension = machine.transition(pk, role, new_status, note=data.get('note') or '', caller_id=request.user.pk)
    return JsonResponse({'success': True, 'extension': extension_dict(extension)})


@api_login_required
@api_view('POST')
def appointment_view(request, pk):
    data = json_body(request)
    extension = machine.update_appointment(
        pk,
        data.get('appointment_status'),
        appointment_date=data.get('appointment_date'),
        note=data.get('note') or '',
    )
    return JsonResponse({'success': True, 'extension': extension_dict(extension)})
