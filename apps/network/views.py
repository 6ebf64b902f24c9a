from django.http import JsonResponse

from apps.core.http import api_login_required, api_view, isoformat, json_body, query_bool, query_int

from . import services
from .attribution import mark_primary_referrer
from .traversal import network


REFERRAL_TEXT_FILTERS = ('referrer_id', 'referred_id', 'channel', 'campaign', 'status', 'date_from', 'date_to')


def relationship_dict(relationship):
    data = {
        'id': str(relationship.pk),
        'person_a_id': str(relationship.person_a_id) if relationship.person_a_id else None,
        'person_b_id': str(relationship.person_b_id) if relationship.person_b_id else None,
        'relationship_type': relationship.relationship_type,
        'direction': relationship.direction,

        # Referral metadata
        'referral_date': isoformat(relationship.referral_date),
        'referral_channel': relationship.referral_channel,
        'referral_campaign': relationship.referral_campaign,
        'referral_link_id': relationship.referral_link_id,

        # Attribution
        'is_primary_referrer': relationship.is_primary_referrer,
        'attribution_percentage': relationship.attribution_percentage,

        'status': relationship.status,
        'relationship_level': relationship.relationship_level,
        'relationship_strength': relationship.relationship_strength,
        'notes': relationship.notes,
        'created_at': isoformat(relationship.created_at),
        'updated_at': isoformat(relationship.updated_at),
    }
    if hasattr(relationship, 'query_direction'):
        data['query_direction'] = relationship.query_direction
    return data


@api_login_required
@api_view('GET')
def person_relationships_view(request, pk):
    filters = {
        'relationship_type': request.GET.get('type', '').strip(),
        'status': request.GET.get('status', '').strip(),
    }
    relationships = services.relationships_for(pk, request.GET.get('direction', 'both'), filters)
    return JsonResponse({'success': True, 'relationships': [relationship_dict(rel) for rel in relationships]})


@api_login_required
@api_view('GET')
def person_network_view(request, pk):
    graph = network(pk, query_int(request, 'levels', None))
    return JsonResponse({'success': True, **graph})


@api_login_required
@api_view('POST')
def relationships_view(request):
    relationship = services.create_relationship(json_body(request))
    return JsonResponse({'success': True, 'relationship': relationship_dict(relationship)}, status=201)


@api_login_required
@api_view('GET', 'PATCH', 'DELETE')
def relationship_detail_view(request, pk):
    if request.method == 'PATCH':
        relationship = services.update_relationship(pk, json_body(request))
        return JsonResponse({'success': True, 'relationship': relationship_dict(relationship)})

    if request.method == 'DELETE':
        services.delete_relationship(pk)
        return JsonResponse({'success': True})

    relationship = services.get_relationship(pk)
    return JsonResponse({'success': True, 'relationship': relationship_dict(relationship)})


@api_login_required
@api_view('POST')
def relationship_primary_view(request, pk):
    referred_person_id = json_body(request).get('referred_person_id')
    if not referred_person_id:
        referred_person_id = services.get_relationship(pk).person_b_id

    edges = mark_primary_referrer(pk, referred_person_id)
    return JsonResponse({'success': True, 'relationships': [relationship_dict(rel) for rel in edges]})


@api_login_required
@api_view('GET', 'POST')
def referrals_view(request):
    if request.method == 'POST':
        data = json_body(request)
        referrer_id = data.pop('referrer_id', None)
        referred_id = data.pop('referred_id', None)
        relationship = services.record_referral(referrer_id, referred_id, **data)
        return JsonResponse({'success': True, 'relationship': relationship_dict(relationship)}, status=201)

    filters = {name: request.GET.get(name, '').strip() for name in REFERRAL_TEXT_FILTERS}
    filters['is_primary_referrer'] = query_bool(request, 'is_primary_referrer')
    relationships = services.referral_relationships(filters)
    return JsonResponse({'success': True, 'relationships': [relationship_dict(rel) for rel in relationships]})
