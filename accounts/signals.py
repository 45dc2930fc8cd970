from __future__ import annotations

import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Profile, UserSettings

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_rows(sender, instance, created: bool, **kwargs) -> None:
    if not created:
        return
    Profile.objects.get_or_create(user=instance)
    UserSettings.objects.get_or_create(user=instance)
    logger.info("Created profile and settings for user %s", instance.pk)
