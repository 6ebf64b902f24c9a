import uuid

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('contacts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Relationship',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='When was this record created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='When was this record last updated')),
                ('relationship_type', models.CharField(db_index=True, help_text='referral, family, friend, ...', max_length=30)),
                ('direction', models.CharField(choices=[('a_to_b', 'A → B'), ('b_to_a', 'B → A'), ('bidirectional', 'Bidirectional')], default='a_to_b', max_length=20)),
                ('referral_date', models.DateTimeField(blank=True, null=True)),
                ('referral_channel', models.CharField(blank=True, default='', max_length=50)),
                ('referral_campaign', models.CharField(blank=True, default='', max_length=100)),
                ('referral_link_id', models.CharField(blank=True, default='', max_length=100)),
                ('is_primary_referrer', models.BooleanField(default=False)),
                ('attribution_percentage', models.PositiveSmallIntegerField(default=100, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('status', models.CharField(db_index=True, default='active', max_length=20)),
                ('relationship_level', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ('relationship_strength', models.CharField(blank=True, default='', max_length=20)),
                ('notes', models.TextField(blank=True, default='')),
                ('person_a', models.ForeignKey(help_text='Source person (the referrer for referral edges)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='outgoing_relationships', to='contacts.person')),
                ('person_b', models.ForeignKey(help_text='Target person (the referred person for referral edges)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='incoming_relationships', to='contacts.person')),
            ],
            options={
                'verbose_name': 'Relationship',
                'verbose_name_plural': 'Relationships',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['person_a', 'relationship_type'], name='relationship_source_idx'),
                    models.Index(fields=['person_b', 'relationship_type'], name='relationship_target_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('person_a', 'person_b', 'relationship_type'), name='unique_relationship_triple'),
                    models.CheckConstraint(condition=models.Q(('person_a', models.F('person_b')), _negated=True), name='relationship_not_self'),
                    models.CheckConstraint(condition=models.Q(('attribution_percentage__gte', 0), ('attribution_percentage__lte', 100)), name='relationship_attribution_range'),
                    models.CheckConstraint(condition=models.Q(('relationship_level__gte', 1)), name='relationship_level_min'),
                ],
            },
        ),
    ]
