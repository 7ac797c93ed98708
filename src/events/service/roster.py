"""Partner roster backed by the PartnerStudent table."""

import functools

import structlog
from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string

from events.models import PartnerStudent
from events.protocols import PartnerRoster, RosterEntry

logger = structlog.get_logger(__name__)


def normalize_roll_number(roll_number: str) -> str:
    return roll_number.strip().upper()


class DatabaseRoster:
    """Looks roll numbers up in the PartnerStudent table.

    ``lookup`` locks the row, so call it inside the registration transaction to keep two
    registrations from using the same roll number.
    """

    def lookup(self, roll_number: str) -> RosterEntry | None:
        student = (
            PartnerStudent.objects.select_for_update()
            .filter(roll_number=normalize_roll_number(roll_number))
            .first()
        )
        if student is None:
            return None
        return RosterEntry(roll_number=student.roll_number, name=student.name, already_registered=student.is_registered)

    def mark_registered(self, roll_number: str) -> None:
        PartnerStudent.objects.filter(roll_number=normalize_roll_number(roll_number)).update(
            is_registered=True, registered_at=timezone.now()
        )
        logger.info("roster_roll_number_used", roll_number=normalize_roll_number(roll_number))


@functools.cache
def get_roster() -> PartnerRoster:
    """Instantiate the roster configured in ``PARTNER_ROSTER_BACKEND``."""
    roster_class = import_string(settings.PARTNER_ROSTER_BACKEND)
    return roster_class()  # type: ignore[no-any-return]
