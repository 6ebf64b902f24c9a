import uuid

from django.db import models


class TimeStampedModel(models.Model):
    """
    Abstract base for every record in the CRM.

    Opaque UUID identity plus creation/update timestamps. `updated_at` is
    stamped on every save(); callers using update_fields must include it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True, db_index=True, help_text='When was this record created')
    updated_at = models.DateTimeField(auto_now=True, help_text='When was this record last updated')

    class Meta:
        abstract = True
        ordering = ['-created_at']
