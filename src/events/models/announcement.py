from django.db import models

from common.models import TimeStampedModel


class Announcement(TimeStampedModel):
    title = models.CharField(max_length=200)
    body = models.TextField()
    is_pinned = models.BooleanField(default=False)
    created_by = models.CharField(max_length=150, blank=True, default="")

    class Meta:
        ordering = ["-is_pinned", "-created_at"]

    def __str__(self) -> str:
        return self.title
