"""Base model and the outgoing-mail log."""

import gzip
import typing as t
import uuid

from django.db import models


class TimeStampedModel(models.Model):
    """UUID primary key plus creation and modification times.

    ``save`` runs ``full_clean`` first, so field choices and unique checks are
    enforced for every write that goes through the ORM instance API.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        abstract = True

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        self.full_clean()
        super().save(*args, **kwargs)


def _pack(text: str) -> bytes:
    return gzip.compress(text.encode())


def _unpack(blob: bytes | memoryview | None) -> str | None:
    if not blob:
        return None
    return gzip.decompress(bytes(blob)).decode()


class EmailLog(TimeStampedModel):
    """One row per recipient of every mail the backend sends.

    Bodies are stored gzipped and dropped by ``cleanup_email_logs`` once the
    one-time codes they carry have long expired; the row itself is kept a little
    longer for delivery questions.
    """

    to = models.EmailField(db_index=True)
    subject = models.TextField(db_index=True)
    sent_at = models.DateTimeField(auto_now_add=True, db_index=True)
    compressed_body = models.BinaryField(null=True, blank=True)
    compressed_html = models.BinaryField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["to", "sent_at"], name="ix_emaillog_to_sentat"),
        ]

    def __str__(self) -> str:
        return f"{self.subject} -> {self.to}"

    def set_body(self, body: str) -> None:
        self.compressed_body = _pack(body)

    def set_html(self, html_body: str) -> None:
        self.compressed_html = _pack(html_body)

    @property
    def body(self) -> str | None:
        return _unpack(self.compressed_body)

    @property
    def html(self) -> str | None:
        return _unpack(self.compressed_html)
