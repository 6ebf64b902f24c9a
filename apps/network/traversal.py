"""
Referral network traversal.

Breadth-first walk over outgoing referral edges, one query per level.
Each person appears once (at the depth it was first reached) and each
edge once, so cycles terminate.
"""
import logging
import time

from django.conf import settings

from apps.contacts.models import Person
from apps.core.db import store_operation
from apps.core.exceptions import TransientStoreError, ValidationError

from .models import Relationship


logger = logging.getLogger(__name__)


def clamp_levels(max_levels):
    """None → NETWORK_DEFAULT_LEVELS; otherwise clamped to [1, NETWORK_MAX_LEVELS]."""
    if max_levels is None:
        max_levels = settings.NETWORK_DEFAULT_LEVELS
    if isinstance(max_levels, bool) or not isinstance(max_levels, int):
        raise ValidationError('max_levels must be an integer', field='max_levels', constraint='integer')
    return max(1, min(max_levels, settings.NETWORK_MAX_LEVELS))


def node_dict(person, depth):
    return {
        'id': str(person.pk),
        'name': person.get_full_name(),
        'email': person.email,
        'phone': person.phone,
        'roles': person.roles,
        'is_lead': person.is_lead,
        'is_referral': person.is_referral,
        'is_member': person.is_member,
        'depth': depth,
    }


def edge_dict(relationship):
    return {
        'id': str(relationship.pk),
        'source': str(relationship.person_a_id),
        'target': str(relationship.person_b_id),
        'type': relationship.relationship_type,
        'strength': relationship.relationship_strength,
        'is_primary': relationship.is_primary_referrer,
        'attribution_percentage': relationship.attribution_percentage,
    }


@store_operation
def network(person_id, max_levels=None, *, timeout=None):
    """
    Everyone reachable from `person_id` over referral edges within `max_levels` hops.

    Args:
        person_id: root person
        max_levels: hop limit, defaults to NETWORK_DEFAULT_LEVELS, clamped
            to [1, NETWORK_MAX_LEVELS]
        timeout: seconds; checked between levels

    Returns:
        {"nodes": [...], "edges": [...]}; both empty when the root has no
        outgoing referral edges. The root is the node with depth 0.

    Raises:
        NotFound: unknown root
        TransientStoreError: the walk ran past `timeout`
    """
    levels = clamp_levels(max_levels)
    root = Person.objects.fetch(person_id)
    started = time.monotonic()

    nodes = {root.pk: node_dict(root, 0)}
    edges = {}
    frontier = [root.pk]

    for depth in range(1, levels + 1):
        if not frontier:
            break
        if timeout is not None and time.monotonic() - started > timeout:
            logger.warning('Network walk from %s stopped at depth %s after %.2fs', root.pk, depth - 1, timeout)
            raise TransientStoreError(
                f'Network traversal exceeded {timeout}s',
                constraint='timeout',
                depth=depth - 1,
            )

        level_edges = (
            Relationship.objects.referrals()
            .filter(person_a_id__in=frontier, person_b__isnull=False)
            .select_related('person_b')
            .order_by('created_at')
        )

        next_frontier = []
        for relationship in level_edges:
            if relationship.pk in edges:
                continue
            edges[relationship.pk] = edge_dict(relationship)

            target = relationship.person_b
            if target.pk not in nodes:
                nodes[target.pk] = node_dict(target, depth)
                next_frontier.append(target.pk)

        frontier = next_frontier

    if not edges:
        return {'nodes': [], 'edges': []}

    logger.debug('Network of %s: %s nodes, %s edges over %s level(s)', root.pk, len(nodes), len(edges), levels)
    return {'nodes': list(nodes.values()), 'edges': list(edges.values())}
