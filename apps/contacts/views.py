from django.http import JsonResponse

from apps.core.http import api_login_required, api_view, isoformat, json_body, query_bool, query_int

from . import services


PERSON_TEXT_FILTERS = ('assigned_to', 'acquisition_source', 'interest_level', 'tag', 'search')


def person_dict(person):
    return {
        'id': str(person.pk),
        'first_name': person.first_name,
        'last_name': person.last_name,
        'name': person.get_full_name(),
        'email': person.email,
        'phone': person.phone,
        'secondary_phone': person.secondary_phone,

        # Roles
        'is_lead': person.is_lead,
        'is_referral': person.is_referral,
        'is_member': person.is_member,
        'roles': person.roles,
        'active_status': person.active_status,

        # Source and qualification
        'acquisition_source': person.acquisition_source,
        'acquisition_campaign': person.acquisition_campaign,
        'referral_source': person.referral_source,
        'interest_level': person.interest_level,
        'goals': person.goals,

        # Assignment
        'assigned_to': {
            'id': person.assigned_to.pk,
            'name': person.assigned_to.get_full_name() or person.assigned_to.get_username(),
        } if person.assigned_to else None,

        # Additional info
        'tags': sorted(person.tags.names()),
        'custom_fields': person.custom_fields,
        'notes': person.notes,

        # Dates
        'last_contacted': isoformat(person.last_contacted),
        'created_at': isoformat(person.created_at),
        'updated_at': isoformat(person.updated_at),
    }


def extension_dict(extension):
    data = {
        'id': str(extension.pk),
        'person_id': str(extension.person_id),
        'role': extension.role.value,
        'status': str(extension.current_status),
    }
    for field in extension._meta.concrete_fields:
        if field.name in ('id', 'person'):
            continue
        value = getattr(extension, field.attname)
        if hasattr(value, 'isoformat'):
            value = value.isoformat()
        data[field.name] = value
    return data


@api_login_required
@api_view('GET', 'POST')
def persons_view(request):
    if request.method == 'POST':
        data = json_body(request)
        extensions = data.pop('extensions', None)
        person = services.create_person(data, caller_id=request.user.pk, extensions=extensions)
        return JsonResponse({'success': True, 'person': person_dict(person)}, status=201)

    filters = {flag: query_bool(request, flag) for flag in ('is_lead', 'is_referral', 'is_member', 'active_status')}
    for name in PERSON_TEXT_FILTERS:
        filters[name] = request.GET.get(name, '').strip()

    page = services.list_persons(
        filters,
        page=query_int(request, 'page', 1),
        limit=query_int(request, 'limit', None),
    )
    return JsonResponse({
        'success': True,
        'persons': [person_dict(person) for person in page['items']],
        'total': page['total'],
        'page': page['page'],
        'num_pages': page['num_pages'],
    })


@api_login_required
@api_view('GET')
def person_search_view(request):
    persons = services.search_persons(request.GET.get('q', ''), limit=query_int(request, 'limit', 25))
    return JsonResponse({'success': True, 'persons': [person_dict(person) for person in persons]})


@api_login_required
@api_view('GET', 'PATCH', 'DELETE')
def person_detail_view(request, pk):
    if request.method == 'PATCH':
        person = services.update_person(pk, json_body(request), caller_id=request.user.pk)
        return JsonResponse({'success': True, 'person': person_dict(person)})

    if request.method == 'DELETE':
        services.delete_person(pk, policy=request.GET.get('policy') or None, caller_id=request.user.pk)
        return JsonResponse({'success': True})

    person = services.get_person(pk)
    data = person_dict(person)
    data['extensions'] = {
        role: extension_dict(person.get_extension(role)) for role in person.roles if person.has_extension(role)
    }
    return JsonResponse({'success': True, 'person': data})


@api_login_required
@api_view('GET', 'POST', 'PATCH')
def person_extension_view(request, pk, role):
    if request.method == 'POST':
        extension = services.create_extension(pk, role, json_body(request))
        return JsonResponse({'success': True, 'extension': extension_dict(extension)}, status=201)

    if request.method == 'PATCH':
        data = json_body(request)
        expected_version = data.pop('expected_version', None)
        extension = services.update_extension(pk, role, data, expected_version=expected_version)
        return JsonResponse({'success': True, 'extension': extension_dict(extension)})

    extension = services.get_extension(pk, role)
    return JsonResponse({'success': True, 'extension': extension_dict(extension)})


@api_login_required
@api_view('POST')
def member_check_in_view(request, pk):
    member = services.record_check_in(pk, json_body(request).get('when'))
    return JsonResponse({'success': True, 'extension': extension_dict(member)})


def interaction_dict(interaction):
    return {
        'id': str(interaction.pk),
        'person_id': str(interaction.person_id),
        'user_id': interaction.user_id,
        'interaction_type': interaction.interaction_type,
        'subject': interaction.subject,
        'content': interaction.content,
        'status': interaction.status,
        'scheduled_at': isoformat(interaction.scheduled_at),
        'completed_at': isoformat(interaction.completed_at),
        'duration_minutes': interaction.duration_minutes,
        'response_received': interaction.response_received,
        'response_date': isoformat(interaction.response_date),
        'response_content': interaction.response_content,
        'sentiment': interaction.sentiment,
        'campaign_id': interaction.campaign_id,
        'notes': interaction.notes,
        'custom_fields': interaction.custom_fields,
        'created_at': isoformat(interaction.created_at),
        'updated_at': isoformat(interaction.updated_at),
    }


@api_login_required
@api_view('GET', 'POST')
def person_interactions_view(request, pk):
    if request.method == 'POST':
        interaction = services.log_interaction(pk, json_body(request), caller_id=request.user.pk)
        return JsonResponse({'success': True, 'interaction': interaction_dict(interaction)}, status=201)

    filters = {
        'interaction_type': request.GET.get('type', '').strip(),
        'status': request.GET.get('status', '').strip(),
    }
    page = services.interactions_for(
        pk,
        filters,
        page=query_int(request, 'page', 1),
        limit=query_int(request, 'limit', None),
    )
    return JsonResponse({
        'success': True,
        'interactions': [interaction_dict(interaction) for interaction in page['items']],
        'counts': services.interaction_counts(pk),
        'total': page['total'],
        'page': page['page'],
        'num_pages': page['num_pages'],
    })


@api_login_required
@api_view('GET', 'PATCH', 'DELETE')
def interaction_detail_view(request, pk):
    if request.method == 'PATCH':
        interaction = services.update_interaction(pk, json_body(request))
        return JsonResponse({'success': True, 'interaction': interaction_dict(interaction)})

    if request.method == 'DELETE':
        services.delete_interaction(pk)
        return JsonResponse({'success': True})

    interaction = services.get_interaction(pk)
    return JsonResponse({'success': True, 'interaction': interaction_dict(interaction)})
