import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('contacts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Interaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='When was this record created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='When was this record last updated')),
                ('interaction_type', models.CharField(choices=[('call', 'Call'), ('meeting', 'Meeting'), ('email', 'Email'), ('message', 'Message'), ('visit', 'Visit'), ('note', 'Note')], db_index=True, max_length=20)),
                ('subject', models.CharField(blank=True, default='', max_length=200)),
                ('content', models.TextField(blank=True, default='')),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('completed', 'Completed'), ('cancelled', 'Cancelled'), ('no_show', 'No Show')], db_index=True, default='completed', max_length=20)),
                ('scheduled_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('duration_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('response_received', models.BooleanField(default=False)),
                ('response_date', models.DateTimeField(blank=True, null=True)),
                ('response_content', models.TextField(blank=True, default='')),
                ('sentiment', models.CharField(blank=True, default='', max_length=20)),
                ('campaign_id', models.CharField(blank=True, default='', max_length=100)),
                ('notes', models.TextField(blank=True, default='')),
                ('custom_fields', models.JSONField(blank=True, default=dict)),
                ('person', models.ForeignKey(help_text='Who this interaction was with', on_delete=django.db.models.deletion.CASCADE, related_name='interactions', to='contacts.person')),
                ('user', models.ForeignKey(blank=True, help_text='Who performed or booked it', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='interactions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Interaction',
                'verbose_name_plural': 'Interactions',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['person', '-created_at'], name='interaction_person_idx'),
                    models.Index(fields=['status', 'scheduled_at'], name='interaction_schedule_idx'),
                ],
            },
        ),
    ]
