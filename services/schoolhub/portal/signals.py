"""File cleanup hooks for storage-backed model fields.

These handlers remove uploaded files when rows are deleted or when a file
field is replaced with a new upload. Allocated resource copies share their
template's stored file, so a resource file is only removed once no other row
points at it.
"""

from __future__ import annotations

import logging

from django.db.models.signals import post_delete, pre_save
from django.dispatch import receiver

from .models import Organization, Resource, UserProfile

logger = logging.getLogger(__name__)


def _remove_file_from_storage(field_file) -> None:
    """Delete a FieldFile without writing model updates."""
    if not field_file:
        return
    name = (getattr(field_file, "name", "") or "").strip()
    if not name:
        return
    try:
        field_file.delete(save=False)
    except OSError as exc:
        # Deletion failures should not break the request that triggered them.
        logger.warning("file_cleanup_failed name=%s err=%s", name, exc)


def _cleanup_replaced_file(*, instance, model, field_name: str) -> None:
    """Delete the old stored file when a file field is replaced."""
    if not instance.pk:
        return

    try:
        current = model.objects.only(field_name).get(pk=instance.pk)
    except model.DoesNotExist:
        return

    old_file = getattr(current, field_name, None)
    new_file = getattr(instance, field_name, None)
    old_name = (getattr(old_file, "name", "") or "").strip()
    new_name = (getattr(new_file, "name", "") or "").strip()

    if old_name and old_name != new_name:
        _remove_file_from_storage(old_file)


@receiver(pre_save, sender=UserProfile)
def _profile_picture_replaced(sender, instance: UserProfile, **kwargs):
    _cleanup_replaced_file(instance=instance, model=UserProfile, field_name="profile_picture")


@receiver(post_delete, sender=UserProfile)
def _profile_picture_deleted(sender, instance: UserProfile, **kwargs):
    _remove_file_from_storage(getattr(instance, "profile_picture", None))


@receiver(pre_save, sender=Organization)
def _organization_logo_replaced(sender, instance: Organization, **kwargs):
    _cleanup_replaced_file(instance=instance, model=Organization, field_name="logo")


@receiver(post_delete, sender=Organization)
def _organization_logo_deleted(sender, instance: Organization, **kwargs):
    _remove_file_from_storage(getattr(instance, "logo", None))


@receiver(post_delete, sender=Resource)
def _resource_file_deleted(sender, instance: Resource, **kwargs):
    if instance.template_id is not None:
        return
    name = (getattr(instance.file, "name", "") or "").strip()
    if name and Resource.objects.filter(file=name).exists():
        return
    _remove_file_from_storage(instance.file)
