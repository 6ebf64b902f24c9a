from django.contrib import admin
from django.utils.html import format_html

from .models import Relationship


@admin.register(Relationship)
class RelationshipAdmin(admin.ModelAdmin):

    list_display = [
        'person_a',
        'type_badge',
        'person_b',
        'direction',
        'is_primary_referrer',
        'attribution_percentage',
        'status',
        'created_at',
    ]

    list_filter = [
        'relationship_type',
        'direction',
        'status',
        'is_primary_referrer',
        'referral_channel',
    ]

    search_fields = [
        'person_a__first_name',
        'person_a__last_name',
        'person_b__first_name',
        'person_b__last_name',
        'referral_campaign',
    ]

    list_select_related = ['person_a', 'person_b']
    raw_id_fields = ['person_a', 'person_b']
    ordering = ['-created_at']
    list_per_page = 50

    fieldsets = [
        ('Edge', {
            'fields': ['person_a', 'person_b', 'relationship_type', 'direction', 'status']
        }),
        ('Referral', {
            'fields': ['referral_date', 'referral_channel', 'referral_campaign', 'referral_link_id']
        }),
        ('Attribution', {
            'fields': ['is_primary_referrer', 'attribution_percentage']
        }),
        ('Strength', {
            'fields': ['relationship_level', 'relationship_strength', 'notes'],
            'classes': ['collapse'],
        }),
        ('Timestamps', {
            'fields': ['created_at', 'updated_at'],
            'classes': ['collapse'],
        }),
    ]

    readonly_fields = ['created_at', 'updated_at']

    def type_badge(self, obj):
        color = '#667eea' if obj.is_referral else '#6c757d'
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            color,
            obj.relationship_type,
        )
    type_badge.short_description = 'Type'
