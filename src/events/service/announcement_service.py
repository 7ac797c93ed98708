"""Announcements shown on the public site."""

import uuid

import structlog
from django.shortcuts import get_object_or_404

from events.models import Announcement
from events.schema import AnnouncementCreateSchema

logger = structlog.get_logger(__name__)


def create_announcement(payload: AnnouncementCreateSchema, created_by: str) -> Announcement:
    announcement = Announcement.objects.create(**payload.model_dump(), created_by=created_by)
    logger.info("announcement_created", announcement_id=str(announcement.pk), created_by=created_by)
    return announcement


def delete_announcement(announcement_id: uuid.UUID, deleted_by: str) -> None:
    announcement = get_object_or_404(Announcement, pk=announcement_id)
    announcement.delete()
    logger.info("announcement_deleted", announcement_id=str(announcement_id), deleted_by=deleted_by)
