from django.db.models import QuerySet
from ninja import Query
from ninja_extra import ControllerBase, api_controller, route

from events import filters, models, schema
from events.service import event_service


@api_controller("/events", tags=["Events"])
class EventController(ControllerBase):
    @route.get("/", url_name="list_events", response=list[schema.EventSchema])
    def list_events(
        self,
        params: filters.EventFilterSchema = Query(...),  # type: ignore[type-arg]
    ) -> QuerySet[models.Event]:
        """List the symposium's workshops and events with their remaining seats.

        Only open events are listed unless include_inactive is set. Events are closed
        automatically once the configured closing moment has passed.
        """
        event_service.close_events_if_due()
        return params.filter(models.Event.objects.all())

    @route.get("/dates", url_name="event_dates", response=schema.EventDatesSchema)
    def event_dates(self) -> schema.EventDatesSchema:
        """Symposium dates, registration deadline and countdowns in seconds."""
        return event_service.get_dates()


@api_controller("/announcements", tags=["Announcements"])
class AnnouncementController(ControllerBase):
    @route.get("/", url_name="list_announcements", response=list[schema.AnnouncementSchema])
    def list_announcements(self) -> QuerySet[models.Announcement]:
        """Announcements, pinned first, newest first."""
        return models.Announcement.objects.all()
