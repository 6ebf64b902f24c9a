import uuid

import django.core.validators
import django.db.models.deletion
import taggit.managers
from django.conf import settings
from django.db import migrations, models

import apps.core.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('contenttypes', '0002_remove_content_type_name'),
        ('taggit', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='UUIDTaggedItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('object_id', models.UUIDField(db_index=True, verbose_name='object ID')),
                ('content_type', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='%(app_label)s_%(class)s_tagged_items', to='contenttypes.contenttype', verbose_name='content type')),
                ('tag', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='%(app_label)s_%(class)s_items', to='taggit.tag')),
            ],
            options={
                'verbose_name': 'Tagged Item',
                'verbose_name_plural': 'Tagged Items',
            },
        ),
        migrations.CreateModel(
            name='Person',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='When was this record created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='When was this record last updated')),
                ('first_name', models.CharField(help_text="Person's first name", max_length=100)),
                ('last_name', models.CharField(help_text="Person's last name", max_length=100)),
                ('email', models.CharField(blank=True, db_index=True, default='', help_text='Email address (optional), stored lower-case', max_length=254, validators=[apps.core.validators.email_validator])),
                ('phone', models.CharField(blank=True, db_index=True, default='', help_text='Phone number, 10-15 digits with optional +', max_length=20, validators=[apps.core.validators.phone_validator])),
                ('secondary_phone', models.CharField(blank=True, default='', max_length=20, validators=[apps.core.validators.phone_validator])),
                ('is_lead', models.BooleanField(db_index=True, default=False, help_text='Prospective customer')),
                ('is_referral', models.BooleanField(db_index=True, default=False, help_text='Invited by an existing customer')),
                ('is_member', models.BooleanField(db_index=True, default=False, help_text='Paying customer')),
                ('active_status', models.BooleanField(default=True)),
                ('acquisition_source', models.CharField(blank=True, default='', max_length=100)),
                ('acquisition_campaign', models.CharField(blank=True, default='', max_length=100)),
                ('referral_source', models.CharField(blank=True, default='', help_text='Id of the person who referred this person', max_length=64)),
                ('interest_level', models.CharField(blank=True, default='', help_text='High / Medium / Low', max_length=20)),
                ('goals', models.TextField(blank=True, default='')),
                ('last_contacted', models.DateTimeField(blank=True, null=True)),
                ('custom_fields', models.JSONField(blank=True, default=dict, help_text='Arbitrary key/value data')),
                ('notes', models.TextField(blank=True, default='')),
                ('assigned_to', models.ForeignKey(blank=True, help_text='Owner responsible for this person', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_persons', to=settings.AUTH_USER_MODEL)),
                ('tags', taggit.managers.TaggableManager(blank=True, help_text='A comma-separated list of tags.', through='contacts.UUIDTaggedItem', to='taggit.Tag', verbose_name='Tags')),
            ],
            options={
                'verbose_name': 'Person',
                'verbose_name_plural': 'Persons',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['last_name', 'first_name'], name='person_name_idx'),
                    models.Index(fields=['assigned_to'], name='person_owner_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('is_lead', True), ('is_referral', True), ('is_member', True), _connector='OR'), name='person_has_role'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LeadExtension',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='When was this record created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='When was this record last updated')),
                ('status_history', models.JSONField(blank=True, default=list, help_text='Append-only list of {status, timestamp, note}')),
                ('version', models.PositiveIntegerField(default=1, help_text='Bumped on every write; optimistic concurrency token')),
                ('lead_status', models.CharField(choices=[('new', 'New'), ('contacted', 'Contacted'), ('appointment_scheduled', 'Appointment Scheduled'), ('appointment_completed', 'Appointment Completed'), ('proposal_made', 'Proposal Made'), ('negotiation', 'Negotiation'), ('won', 'Won'), ('lost', 'Lost')], db_index=True, default='new', max_length=40)),
                ('readiness_score', models.PositiveSmallIntegerField(blank=True, help_text='1-10', null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ('lead_temperature', models.CharField(blank=True, choices=[('hot', 'Hot'), ('warm', 'Warm'), ('cold', 'Cold')], default='', max_length=10)),
                ('decision_authority', models.CharField(blank=True, default='', max_length=100)),
                ('decision_timeline', models.CharField(blank=True, default='', max_length=100)),
                ('pain_points', models.JSONField(blank=True, default=list)),
                ('motivations', models.JSONField(blank=True, default=list)),
                ('visit_completed', models.BooleanField(default=False)),
                ('visit_date', models.DateTimeField(blank=True, null=True)),
                ('conversion_probability', models.PositiveSmallIntegerField(blank=True, help_text='0-100', null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('conversion_blockers', models.JSONField(blank=True, default=list, help_text='Set of blocker labels')),
                ('estimated_value', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('person', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='lead_extension', to='contacts.person')),
            ],
            options={
                'verbose_name': 'Lead Extension',
                'verbose_name_plural': 'Lead Extensions',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('readiness_score__isnull', True), models.Q(('readiness_score__gte', 1), ('readiness_score__lte', 10)), _connector='OR'), name='lead_readiness_score_range'),
                    models.CheckConstraint(condition=models.Q(('conversion_probability__isnull', True), models.Q(('conversion_probability__gte', 0), ('conversion_probability__lte', 100)), _connector='OR'), name='lead_conversion_probability_range'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReferralExtension',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='When was this record created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='When was this record last updated')),
                ('status_history', models.JSONField(blank=True, default=list, help_text='Append-only list of {status, timestamp, note}')),
                ('version', models.PositiveIntegerField(default=1, help_text='Bumped on every write; optimistic concurrency token')),
                ('referral_status', models.CharField(choices=[('submitted', 'Submitted'), ('contacted', 'Contacted'), ('appointment_scheduled', 'Appointment Scheduled'), ('appointment_confirmed', 'Appointment Confirmed'), ('appointment_completed', 'Appointment Completed'), ('appointment_rescheduled', 'Appointment Rescheduled'), ('appointment_cancelled', 'Appointment Cancelled'), ('no_show', 'No Show'), ('converted', 'Converted'), ('lost', 'Lost')], db_index=True, default='submitted', max_length=40)),
                ('relationship_to_referrer', models.CharField(blank=True, default='', help_text='friend, family, colleague, ...', max_length=30)),
                ('permission_level', models.CharField(blank=True, default='', help_text='explicit, implied, cold', max_length=20)),
                ('appointment_date', models.DateTimeField(blank=True, null=True)),
                ('appointment_status', models.CharField(blank=True, default='', max_length=30)),
                ('conversion_probability', models.PositiveSmallIntegerField(blank=True, help_text='0-100', null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('conversion_date', models.DateTimeField(blank=True, null=True)),
                ('eligible_incentives', models.JSONField(blank=True, default=list)),
                ('incentives_awarded', models.JSONField(blank=True, default=list, help_text='[{incentive_id, award_date, status}]')),
                ('person', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='referral_extension', to='contacts.person')),
            ],
            options={
                'verbose_name': 'Referral Extension',
                'verbose_name_plural': 'Referral Extensions',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('conversion_probability__isnull', True), models.Q(('conversion_probability__gte', 0), ('conversion_probability__lte', 100)), _connector='OR'), name='referral_conversion_probability_range'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MemberExtension',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='When was this record created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='When was this record last updated')),
                ('status_history', models.JSONField(blank=True, default=list, help_text='Append-only list of {status, timestamp, note}')),
                ('version', models.PositiveIntegerField(default=1, help_text='Bumped on every write; optimistic concurrency token')),
                ('membership_status', models.CharField(choices=[('active', 'Active'), ('paused', 'Paused'), ('frozen', 'Frozen'), ('cancelled', 'Cancelled'), ('expired', 'Expired')], db_index=True, default='active', max_length=40)),
                ('membership_type', models.CharField(blank=True, default='', max_length=50)),
                ('join_date', models.DateTimeField(blank=True, null=True)),
                ('billing_day', models.PositiveSmallIntegerField(blank=True, help_text='Day of month, 1-31', null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(31)])),
                ('check_in_count', models.PositiveIntegerField(default=0)),
                ('attendance_streak', models.PositiveIntegerField(default=0)),
                ('last_check_in', models.DateTimeField(blank=True, null=True)),
                ('satisfaction_score', models.PositiveSmallIntegerField(blank=True, help_text='1-10', null=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)])),
                ('referral_count', models.PositiveIntegerField(default=0)),
                ('successful_referrals', models.PositiveIntegerField(default=0)),
                ('referral_rewards_earned', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('person', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='member_extension', to='contacts.person')),
            ],
            options={
                'verbose_name': 'Member Extension',
                'verbose_name_plural': 'Member Extensions',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('billing_day__isnull', True), models.Q(('billing_day__gte', 1), ('billing_day__lte', 31)), _connector='OR'), name='member_billing_day_range'),
                    models.CheckConstraint(condition=models.Q(('satisfaction_score__isnull', True), models.Q(('satisfaction_score__gte', 1), ('satisfaction_score__lte', 10)), _connector='OR'), name='member_satisfaction_score_range'),
                ],
            },
        ),
    ]
