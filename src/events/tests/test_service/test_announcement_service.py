import uuid

import pytest
from django.http import Http404

from events.models import Announcement
from events.schema import AnnouncementCreateSchema
from events.service import announcement_service

pytestmark = pytest.mark.django_db


def test_create_announcement_strips_and_records_author() -> None:
    payload = AnnouncementCreateSchema(title="  Venue change ", body=" Hall B instead of Hall A. ", is_pinned=True)

    announcement = announcement_service.create_announcement(payload, created_by="desk")

    assert announcement.title == "Venue change"
    assert announcement.body == "Hall B instead of Hall A."
    assert announcement.is_pinned
    assert announcement.created_by == "desk"


def test_delete_announcement() -> None:
    announcement = Announcement.objects.create(title="Lunch", body="Served at 1 PM.")

    announcement_service.delete_announcement(announcement.pk, deleted_by="desk")

    assert not Announcement.objects.exists()


def test_delete_unknown_announcement() -> None:
    with pytest.raises(Http404):
        announcement_service.delete_announcement(uuid.uuid4(), deleted_by="desk")
