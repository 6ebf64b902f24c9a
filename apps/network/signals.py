import logging

from django.db.models import F
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils import timezone

from apps.contacts.models import MemberExtension

from .models import Relationship


logger = logging.getLogger(__name__)


@receiver(post_save, sender=Relationship)
def apply_referral_side_effects(sender, instance, created, raw=False, **kwargs):

    # Only for newly recorded referral edges (fixtures load raw)
    if not created or raw or not instance.is_referral:
        return

    referred = instance.person_b
    if referred is not None:
        update_fields = []
        if not referred.is_referral:
            referred.is_referral = True
            update_fields.append('is_referral')
        if not referred.referral_source and instance.person_a_id:
            referred.referral_source = str(instance.person_a_id)
            update_fields.append('referral_source')
        if update_fields:
            referred.save(update_fields=update_fields + ['updated_at'])

    # Referrer's member stats
    if instance.person_a_id:
        counted = MemberExtension.objects.filter(person_id=instance.person_a_id).update(
            referral_count=F('referral_count') + 1,
            version=F('version') + 1,
            updated_at=timezone.now(),
        )
        if counted:
            logger.debug('Referral counted for member %s', instance.person_a_id)
