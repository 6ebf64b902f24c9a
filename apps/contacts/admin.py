from django.contrib import admin
from django.utils.html import format_html_join

from .models import Interaction, LeadExtension, MemberExtension, Person, ReferralExtension


ROLE_COLORS = {
    'lead': '#17a2b8',
    'referral': '#667eea',
    'member': '#28a745',
}


class ExtensionInline(admin.StackedInline):

    extra = 0
    max_num = 1
    can_delete = False
    classes = ['collapse']

    # Status and history only change through the pipeline
    readonly_fields = ['status_history', 'version', 'created_at', 'updated_at']

    def get_readonly_fields(self, request, obj=None):
        return [self.model.status_field()] + self.readonly_fields


class LeadExtensionInline(ExtensionInline):
    model = LeadExtension


class ReferralExtensionInline(ExtensionInline):
    model = ReferralExtension


class MemberExtensionInline(ExtensionInline):
    model = MemberExtension


@admin.register(Person)
class PersonAdmin(admin.ModelAdmin):

    list_display = [
        'full_name',
        'email',
        'phone',
        'roles_badge',
        'active_status',
        'assigned_to',
        'created_at',
    ]

    list_filter = [
        'is_lead',
        'is_referral',
        'is_member',
        'active_status',
        'acquisition_source',
        'assigned_to',
        'created_at',
    ]

    search_fields = [
        'first_name',
        'last_name',
        'email',
        'phone',
    ]

    ordering = ['-created_at']
    list_per_page = 50
    date_hierarchy = 'created_at'

    fieldsets = [
        ('Basic Information', {
            'fields': ['first_name', 'last_name', 'email', 'phone', 'secondary_phone']
        }),
        ('Roles', {
            'fields': ['is_lead', 'is_referral', 'is_member', 'active_status']
        }),
        ('Source & Qualification', {
            'fields': ['acquisition_source', 'acquisition_campaign', 'referral_source', 'interest_level', 'goals']
        }),
        ('Assignment', {
            'fields': ['assigned_to', 'last_contacted']
        }),
        ('Additional Info', {
            'fields': ['tags', 'custom_fields', 'notes'],
            'classes': ['collapse'],
        }),
        ('Timestamps', {
            'fields': ['created_at', 'updated_at'],
            'classes': ['collapse'],
        }),
    ]

    readonly_fields = ['created_at', 'updated_at']
    inlines = [LeadExtensionInline, ReferralExtensionInline, MemberExtensionInline]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('assigned_to')

    def full_name(self, obj):
        return obj.get_full_name()
    full_name.short_description = 'Name'

    def roles_badge(self, obj):
        """Display each role as a colored badge"""
        if not obj.roles:
            return '-'
        return format_html_join(
            '',
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px; margin-right: 3px;">{}</span>',
            ((ROLE_COLORS[role], role.title()) for role in obj.roles),
        )
    roles_badge.short_description = 'Roles'


class ExtensionAdmin(admin.ModelAdmin):

    list_select_related = ['person']
    search_fields = ['person__first_name', 'person__last_name', 'person__email']
    readonly_fields = ['status_history', 'version', 'created_at', 'updated_at']
    ordering = ['-updated_at']

    def get_readonly_fields(self, request, obj=None):
        return [self.model.status_field()] + self.readonly_fields


@admin.register(LeadExtension)
class LeadExtensionAdmin(ExtensionAdmin):
    list_display = ['person', 'lead_status', 'lead_temperature', 'readiness_score', 'conversion_probability', 'updated_at']
    list_filter = ['lead_status', 'lead_temperature', 'visit_completed']


@admin.register(ReferralExtension)
class ReferralExtensionAdmin(ExtensionAdmin):
    list_display = ['person', 'referral_status', 'appointment_status', 'appointment_date', 'conversion_date', 'updated_at']
    list_filter = ['referral_status', 'appointment_status']


@admin.register(MemberExtension)
class MemberExtensionAdmin(ExtensionAdmin):
    list_display = ['person', 'membership_status', 'membership_type', 'check_in_count', 'referral_count', 'successful_referrals']
    list_filter = ['membership_status', 'membership_type']


@admin.register(Interaction)
class InteractionAdmin(admin.ModelAdmin):

    list_display = ['person', 'interaction_type', 'subject', 'status', 'scheduled_at', 'completed_at', 'user']
    list_filter = ['interaction_type', 'status', 'response_received', 'created_at']
    search_fields = ['subject', 'content', 'person__first_name', 'person__last_name']
    list_select_related = ['person', 'user']
    raw_id_fields = ['person']
    ordering = ['-created_at']
    date_hierarchy = 'created_at'
    readonly_fields = ['created_at', 'updated_at']
